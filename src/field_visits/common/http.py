"""Flask glue shared by the feature controllers: bearer auth, JSON bodies, error mapping."""
from __future__ import annotations

from functools import wraps

from flask import Flask, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidTransitionError, 409),
)


def status_for(err: DomainError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(err, cls):
            return status
    return 400


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Access token missing", code="token_missing")
    return token.strip()


def token_required(account_service):
    """Decorator factory: resolve the live caller from the bearer token into `g.caller`."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.caller = account_service.resolve_caller(bearer_token())
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_caller():
    return g.caller


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", code="bad_body")
    return data


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(err: DomainError):
        body = {"success": False, "code": err.code, "message": str(err)}
        if isinstance(err, InvalidTransitionError):
            body["actual"] = err.actual
            body["expected"] = list(err.expected)
        return jsonify(body), status_for(err)

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        return jsonify({"success": False, "code": err.name.lower().replace(" ", "_"), "message": err.description}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        body = {"success": False, "code": "internal_error", "message": "Internal server error"}
        if current_app.config.get("DEBUG"):
            body["error"] = f"{type(err).__name__}: {err}"
        return jsonify(body), 500
