from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.web import actor_required, int_field, json_body, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    engine = container.engine
    login_required = actor_required(engine.get_user)

    @app.route("/api/shifts/<int:shift_id>/assignments", methods=["GET"], endpoint="list_assignments")
    @login_required
    def list_assignments(shift_id: int):
        return jsonify({"assignments": to_json(engine.list_assignments(shift_id))})

    @app.route("/api/shifts/<int:shift_id>/assignments", methods=["POST"], endpoint="assign_worker")
    @login_required
    def assign_worker(shift_id: int):
        body = json_body()
        assignment = engine.assign_worker(
            actor=g.actor,
            shift_id=shift_id,
            user_id=int_field(body, "user_id"),
            role_code=str(body.get("role_code") or ""),
        )
        return jsonify({"assignment": to_json(assignment)}), 201

    @app.route("/api/assignments/<int:assignment_id>", methods=["DELETE"], endpoint="unassign_worker")
    @login_required
    def unassign_worker(assignment_id: int):
        engine.unassign_worker(actor=g.actor, assignment_id=assignment_id)
        return "", 204

    @app.route("/api/assignments/<int:assignment_id>/replace", methods=["POST"], endpoint="replace_assignment")
    @login_required
    def replace_assignment(assignment_id: int):
        body = json_body()
        assignment = engine.replace_assignment(
            actor=g.actor,
            assignment_id=assignment_id,
            new_user_id=int_field(body, "user_id"),
            role_code=str(body.get("role_code") or ""),
        )
        return jsonify({"assignment": to_json(assignment)})

    @app.route("/api/shifts/<int:shift_id>/conflicts", methods=["GET"], endpoint="check_conflicts")
    @login_required
    def check_conflicts(shift_id: int):
        conflicts = engine.check_conflicts(shift_id, int_field(request.args, "user_id"))
        return jsonify({"has_conflicts": bool(conflicts), "conflicts": to_json(conflicts)})

    @app.route("/api/assignments/<int:assignment_id>/clock-in", methods=["POST"], endpoint="clock_in")
    @login_required
    def clock_in(assignment_id: int):
        return jsonify({"assignment": to_json(engine.clock_in(actor=g.actor, assignment_id=assignment_id))})

    @app.route("/api/assignments/<int:assignment_id>/clock-out", methods=["POST"], endpoint="clock_out")
    @login_required
    def clock_out(assignment_id: int):
        return jsonify({"assignment": to_json(engine.clock_out(actor=g.actor, assignment_id=assignment_id))})

    @app.route("/api/assignments/<int:assignment_id>/end-shift", methods=["POST"], endpoint="end_shift")
    @login_required
    def end_shift(assignment_id: int):
        return jsonify({"assignment": to_json(engine.end_shift(actor=g.actor, assignment_id=assignment_id))})

    @app.route("/api/assignments/<int:assignment_id>/no-show", methods=["POST"], endpoint="mark_no_show")
    @login_required
    def mark_no_show(assignment_id: int):
        return jsonify({"assignment": to_json(engine.mark_no_show(actor=g.actor, assignment_id=assignment_id))})

    @app.route("/api/shifts/<int:shift_id>/start-break-all", methods=["POST"], endpoint="start_break_all")
    @login_required
    def start_break_all(shift_id: int):
        result = engine.start_break_all(actor=g.actor, shift_id=shift_id)
        return jsonify({"result": _bulk_json(result)})

    @app.route("/api/shifts/<int:shift_id>/end-shift-all", methods=["POST"], endpoint="end_shift_all")
    @login_required
    def end_shift_all(shift_id: int):
        result = engine.end_shift_all(actor=g.actor, shift_id=shift_id)
        return jsonify({"result": _bulk_json(result)})


def _bulk_json(result) -> dict:
    payload = to_json(result)
    payload["affected_count"] = result.affected_count
    payload["skipped_count"] = result.skipped_count
    return payload
