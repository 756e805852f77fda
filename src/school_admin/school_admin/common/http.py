from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Any, Mapping

from flask import Flask, jsonify, session
from mysql.connector import Error as MySQLError

from ..core.context import RequestContext
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleError,
    DomainError,
    NotFoundError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS = (
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (BusinessRuleError, 409),
    (StorageError, 500),
    (ValidationError, 400),
)


def fail(message: str, status: int, **extra: Any):
    return jsonify({"success": False, "message": message, **extra}), status


def ok(**data: Any):
    return jsonify({"success": True, **data})


def current_context() -> RequestContext:
    if "user_id" not in session:
        return RequestContext.public()
    return RequestContext(user_id=int(session["user_id"]), role=Role(session["role"]))


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return fail("Please sign in to continue", 401)
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return fail("Please sign in to continue", 401)
        if session.get("role") != Role.ADMIN.value:
            return fail("You do not have permission for this action", 403)
        return view(*args, **kwargs)

    return wrapper


def json_field(source: Mapping[str, Any], name: str, default: Any) -> Any:
    """A field that may arrive as a JSON string (multipart form) or as-is (JSON body)."""

    value = source.get(name)
    if value is None or value == "":
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            raise ValidationError(f"{name} is not valid JSON")
    return value


def register_error_handlers(app: Flask, *, banner_seconds: int) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = next((code for cls, code in _STATUS if isinstance(exc, cls)), 400)
        if isinstance(exc, BusinessRuleError):
            logger.warning("Refused: %s", exc)
            return fail(str(exc), status, dismiss_after=int(banner_seconds))
        return fail(str(exc), status)

    @app.errorhandler(MySQLError)
    def handle_db_error(exc: MySQLError):
        logger.exception("Database error")
        if app.config.get("DEBUG"):
            return fail(f"Database error: {exc}", 500)
        return fail("Database error", 500)
