from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.web import actor_required, json_body, to_json
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    engine = container.engine
    login_required = actor_required(engine.get_user)

    @app.route("/api/shifts/<int:shift_id>", methods=["GET"], endpoint="get_shift")
    @login_required
    def get_shift(shift_id: int):
        return jsonify({"shift": to_json(engine.get_shift(shift_id))})

    @app.route("/api/shifts/<int:shift_id>/fulfillment", methods=["GET"], endpoint="shift_fulfillment")
    @login_required
    def shift_fulfillment(shift_id: int):
        result = engine.compute_fulfillment(shift_id)
        needed, total_needed = engine.workers_needed(shift_id)
        return jsonify(
            {
                "fulfillment": to_json(result),
                "workers_needed": to_json(needed),
                "total_needed": total_needed,
            }
        )

    @app.route("/api/shifts/<int:shift_id>/requirements", methods=["PUT"], endpoint="update_requirements")
    @login_required
    def update_requirements(shift_id: int):
        body = json_body()
        counts = body.get("requirements", body)
        if not isinstance(counts, dict) or not counts:
            raise ValidationError("Requirements must map role codes to worker counts")
        shift = engine.update_requirements(actor=g.actor, shift_id=shift_id, counts=counts)
        return jsonify({"shift": to_json(shift)})

    @app.route("/api/shifts/<int:shift_id>/hours", methods=["GET"], endpoint="shift_hours")
    @login_required
    def shift_hours(shift_id: int):
        return jsonify({"hours": to_json(engine.shift_hours(shift_id))})
