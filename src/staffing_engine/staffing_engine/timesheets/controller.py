from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.web import actor_required, json_body, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    engine = container.engine
    login_required = actor_required(engine.get_user)

    def _timesheet_json(ts, *, with_entries: bool = False) -> dict:
        payload = {"timesheet": to_json(ts)}
        if with_entries:
            payload["entries"] = to_json(engine.timesheet_entries(ts.timesheet_id))
        return payload

    @app.route("/api/shifts/<int:shift_id>/timesheet", methods=["POST"], endpoint="open_timesheet")
    @login_required
    def open_timesheet(shift_id: int):
        body = json_body()
        ts = engine.open_timesheet(actor=g.actor, shift_id=shift_id)
        if body.get("submit"):
            ts = engine.submit_timesheet(actor=g.actor, timesheet_id=ts.timesheet_id)
        return jsonify(_timesheet_json(ts)), 201

    @app.route("/api/timesheets/<int:timesheet_id>", methods=["GET"], endpoint="get_timesheet")
    @login_required
    def get_timesheet(timesheet_id: int):
        return jsonify(_timesheet_json(engine.get_timesheet(timesheet_id), with_entries=True))

    @app.route("/api/timesheets/<int:timesheet_id>/submit", methods=["POST"], endpoint="submit_timesheet")
    @login_required
    def submit_timesheet(timesheet_id: int):
        return jsonify(_timesheet_json(engine.submit_timesheet(actor=g.actor, timesheet_id=timesheet_id)))

    @app.route("/api/timesheets/<int:timesheet_id>/approve-company", methods=["POST"], endpoint="approve_company")
    @login_required
    def approve_company(timesheet_id: int):
        body = json_body()
        ts = engine.approve_as_company(
            actor=g.actor,
            timesheet_id=timesheet_id,
            signature=body.get("signature"),
            notes=body.get("notes"),
        )
        return jsonify(_timesheet_json(ts))

    @app.route("/api/timesheets/<int:timesheet_id>/approve-manager", methods=["POST"], endpoint="approve_manager")
    @login_required
    def approve_manager(timesheet_id: int):
        body = json_body()
        ts = engine.approve_as_manager(
            actor=g.actor,
            timesheet_id=timesheet_id,
            signature=body.get("signature"),
            notes=body.get("notes"),
        )
        return jsonify(_timesheet_json(ts))

    @app.route("/api/timesheets/<int:timesheet_id>/reject", methods=["POST"], endpoint="reject_timesheet")
    @login_required
    def reject_timesheet(timesheet_id: int):
        body = json_body()
        ts = engine.reject_timesheet(actor=g.actor, timesheet_id=timesheet_id, reason=body.get("reason"))
        return jsonify(_timesheet_json(ts))

    @app.route("/api/timesheets/<int:timesheet_id>/unlock", methods=["POST"], endpoint="unlock_timesheet")
    @login_required
    def unlock_timesheet(timesheet_id: int):
        body = json_body()
        ts = engine.unlock_timesheet(actor=g.actor, timesheet_id=timesheet_id, reason=body.get("reason"))
        return jsonify(_timesheet_json(ts))

    @app.route("/api/timesheets/<int:timesheet_id>/documents", methods=["POST"], endpoint="record_documents")
    @login_required
    def record_documents(timesheet_id: int):
        body = json_body()
        ts = engine.record_documents(
            actor=g.actor,
            timesheet_id=timesheet_id,
            unsigned_ref=body.get("unsigned_ref"),
            signed_ref=body.get("signed_ref"),
        )
        return jsonify(_timesheet_json(ts))
