"""
Uniform error envelope: {code, message, details?, requestId}.

Everything that can go wrong in a request ends up in one of the handlers
registered here, so routes only ever raise.
"""
from __future__ import annotations

from enum import Enum
import logging

from flask import jsonify, current_app, g, has_request_context
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError

from models import storage

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"
    INSUFFICIENT_ROLES = "INSUFFICIENT_ROLES"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    ACCOUNT_BLOCKED = "ACCOUNT_BLOCKED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    FORBIDDEN = "FORBIDDEN"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"


HTTP_STATUS_CODES = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.TOKEN_INVALID,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.TOO_MANY_REQUESTS,
}


class APIError(Exception):
    """An error with a known status and code, rendered as the envelope."""

    def __init__(self, status: int, code: ErrorCode | str, message: str, details=None):
        super().__init__(message)
        self.status = status
        self.code = ErrorCode(code)
        self.message = message
        self.details = details


def api_abort(status: int, code: ErrorCode | str, message: str, details=None):
    raise APIError(status, code, message, details)


def status_to_code(status: int) -> ErrorCode:
    if status in HTTP_STATUS_CODES:
        return HTTP_STATUS_CODES[status]
    return ErrorCode.BAD_REQUEST if 400 <= status < 500 else ErrorCode.INTERNAL_ERROR


def current_request_id() -> str:
    if has_request_context():
        return getattr(g, "request_id", None) or "unknown"
    return "unknown"


def error_response(code: ErrorCode | str, message: str, status: int, details=None):
    payload = {"code": str(ErrorCode(code).value), "message": message}
    if details:
        payload["details"] = details
    payload["requestId"] = current_request_id()
    return jsonify(payload), status


def flatten_messages(messages, prefix: str = "") -> list[dict]:
    """Turn marshmallow's nested {field: [msg]} into [{field, message}]."""
    if isinstance(messages, str):
        return [{"field": prefix, "message": messages}]
    if isinstance(messages, list):
        out = []
        for item in messages:
            out.extend(flatten_messages(item, prefix))
        return out
    out = []
    for key, value in messages.items():
        field = f"{prefix}.{key}" if prefix else str(key)
        out.extend(flatten_messages(value, field))
    return out


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        return error_response(err.code, err.message, err.status, details=err.details)

    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return error_response(
            ErrorCode.VALIDATION_ERROR, "Validation failed", 400, details=flatten_messages(err.messages)
        )

    # Integrity errors (unique constraints, FK violations, check constraints)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        storage.rollback()
        message = str(getattr(err, "orig", err))
        lower_msg = message.lower()
        logger.warning("Integrity error: %s", message)
        details = {"db_error": message} if current_app.debug else None
        if "unique" in lower_msg or "duplicate" in lower_msg:
            return error_response(ErrorCode.CONFLICT, "Resource already exists", 409, details=details)
        if "foreign key" in lower_msg:
            return error_response(ErrorCode.BAD_REQUEST, "Invalid reference", 400, details=details)
        return error_response(ErrorCode.BAD_REQUEST, "Integrity error", 400, details=details)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or 500
        return error_response(status_to_code(status), err.description or err.name, status)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        details = None
        if current_app.debug:
            details = {"type": err.__class__.__name__}
        return error_response(ErrorCode.INTERNAL_ERROR, "Internal server error", 500, details=details)
