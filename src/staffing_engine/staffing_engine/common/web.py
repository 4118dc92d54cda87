from __future__ import annotations

import dataclasses
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Any, Callable, Mapping

from flask import g, request, session
from werkzeug.exceptions import BadRequest, Unauthorized

from ..core.exceptions import NotFoundError, ValidationError


def to_json(value: Any) -> Any:
    """Dataclasses, enums and datetimes as plain JSON values (ISO-8601 timestamps)."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    return payload


def actor_required(load_user: Callable[[int], Any]):
    """Resolve the acting user from the session into ``g.actor``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                raise Unauthorized("Authentication required")
            try:
                actor = load_user(int(session["user_id"]))
            except NotFoundError:
                raise Unauthorized("Authentication required")
            if not actor.is_active:
                raise Unauthorized("Account is disabled")
            g.actor = actor
            return view(*args, **kwargs)

        return wrapper

    return decorator


def int_field(body: Mapping[str, Any], key: str) -> int:
    value = body.get(key)
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer")
