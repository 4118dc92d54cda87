from __future__ import annotations

import logging
from uuid import uuid4

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import (
    AuthorizationError,
    ConcurrentModification,
    DomainError,
    DuplicateRoleCode,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger("staffing_engine.request")

_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidTransition, 409),
    (DuplicateRoleCode, 409),
    (ConcurrentModification, 409),
)


def status_for(exc: DomainError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def get_request_id() -> str:
    return str(getattr(g, "request_id", None) or "unknown")


def error_response(*, status_code: int, code: str, message: str):
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(),
        }
    }
    return jsonify(payload), status_code


def register_error_handlers(app: Flask) -> None:
    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-Id") or str(uuid4())

    @app.after_request
    def _echo_request_id(response):
        response.headers["X-Request-Id"] = get_request_id()
        return response

    @app.errorhandler(DomainError)
    def _handle_domain_error(exc: DomainError):
        status_code = status_for(exc)
        if isinstance(exc, AuthorizationError):
            logger.warning("request_forbidden", extra={"request_id": get_request_id(), "path": request.path})
        return error_response(status_code=status_code, code=exc.code, message=str(exc))

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return error_response(status_code=exc.code or 500, code="HTTP_ERROR", message=exc.description or exc.name)
        logger.exception(
            "unhandled_error",
            extra={"request_id": get_request_id(), "path": request.path, "method": request.method},
        )
        return error_response(status_code=500, code="INTERNAL_ERROR", message="Unexpected server error.")
