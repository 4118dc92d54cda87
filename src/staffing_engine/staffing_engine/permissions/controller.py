from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.web import actor_required, int_field, json_body, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    engine = container.engine
    login_required = actor_required(engine.get_user)

    @app.route("/api/crew-chief-permissions", methods=["POST"], endpoint="grant_permission")
    @login_required
    def grant_permission():
        body = json_body()
        permission = engine.grant_permission(
            actor=g.actor,
            user_id=int_field(body, "user_id"),
            permission_type=str(body.get("permission_type") or ""),
            target_id=int_field(body, "target_id"),
        )
        return jsonify({"permission": to_json(permission)}), 201

    @app.route("/api/crew-chief-permissions/<int:permission_id>", methods=["DELETE"], endpoint="revoke_permission")
    @login_required
    def revoke_permission(permission_id: int):
        engine.revoke_permission(actor=g.actor, permission_id=permission_id)
        return "", 204
