from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.web import actor_required, json_body, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    engine = container.engine
    login_required = actor_required(engine.get_user)

    @app.route("/api/roles", methods=["GET"], endpoint="list_roles")
    @login_required
    def list_roles():
        return jsonify({"roles": to_json(engine.list_roles())})

    @app.route("/api/roles", methods=["POST"], endpoint="register_role")
    @login_required
    def register_role():
        body = json_body()
        metadata = body.get("metadata") or {}
        if body.get("color"):
            metadata = {**metadata, "color": body["color"]}
        role = engine.register_custom_role(
            actor=g.actor,
            code=str(body.get("code") or ""),
            name=str(body.get("name") or ""),
            metadata=metadata,
        )
        return jsonify({"role": to_json(role)}), 201

    @app.route("/api/roles/<code>", methods=["DELETE"], endpoint="remove_role")
    @login_required
    def remove_role(code: str):
        engine.remove_custom_role(actor=g.actor, code=code)
        return "", 204
