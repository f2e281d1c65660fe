"""Standardised API error responses.

Usage
-----
    from tracker.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Project not found")
    return api_error(E.VALIDATION_REQUIRED, "email is required")

Service-layer exceptions from ``tracker.core.exceptions`` are turned into
the same body shape by :func:`register_error_handlers`.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tracker.core.exceptions import (
    AuthenticationRequired,
    ConflictError,
    InvalidPinError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from tracker.models import db

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation - HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Authentication - HTTP 401
    AUTH_REQUIRED = "ERR_AUTH_REQUIRED"
    INVALID_PIN = "ERR_INVALID_PIN"

    # Permissions - HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found - HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate - HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Payload - HTTP 413
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"

    # Throttling - HTTP 429
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Server - HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.AUTH_REQUIRED: 401,
    E.INVALID_PIN: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.PAYLOAD_TOO_LARGE: 413,
    E.RATE_LIMITED: 429,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for the client.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` - drop-in for Flask views.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


# ── App-wide handlers ─────────────────────────────────────────────────

def register_error_handlers(app):
    """Map service exceptions and stock HTTP errors to ``api_error`` bodies."""

    @app.errorhandler(NotFoundError)
    def _not_found_error(exc):
        logger.info("Not found: %s", exc)
        return api_error(E.NOT_FOUND, exc.public_message)

    @app.errorhandler(ValidationError)
    def _validation_error(exc):
        return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)

    @app.errorhandler(ConflictError)
    def _conflict_error(exc):
        return api_error(E.CONFLICT_STATE, str(exc))

    @app.errorhandler(PermissionDenied)
    def _permission_denied(exc):
        return api_error(E.FORBIDDEN, str(exc))

    @app.errorhandler(AuthenticationRequired)
    def _auth_required(exc):
        return api_error(E.AUTH_REQUIRED, str(exc))

    @app.errorhandler(InvalidPinError)
    def _invalid_pin(exc):
        logger.warning("Invalid PIN attempt doc=%s addr=%s", exc.doc_id, request.remote_addr)
        return api_error(E.INVALID_PIN, str(exc))

    @app.errorhandler(IntegrityError)
    def _integrity_error(exc):
        db.session.rollback()
        logger.warning("Integrity error on %s %s: %s", request.method, request.path, exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")

    @app.errorhandler(SQLAlchemyError)
    def _database_error(exc):
        db.session.rollback()
        logger.exception("Unhandled database error on %s %s", request.method, request.path)
        return api_error(E.DATABASE, "Database error")

    @app.errorhandler(404)
    def _http_not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(413)
    def _too_large(e):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(429)
    def _rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"retryAfter": e.description})

    @app.errorhandler(500)
    def _server_error(e):
        logger.error("500 error on %s %s: %s", request.method, request.path, e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")
