"""
Rate limiting configuration.

The Limiter instance is created in tracker/__init__.py with no default
limits.  This module holds the key/limit callables used by individual
routes and applies blueprint-wide limits.

Share-link PIN attempts are throttled per (document, client address) so a
single client cannot brute-force the 4-digit space, while other clients
opening the same link are unaffected.

Usage:
    from tracker.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import current_app, request as flask_request

logger = logging.getLogger(__name__)

DEFAULT_PIN_ATTEMPT_LIMIT = "5/minute;30/hour"


def pin_attempt_key():
    """Rate limit key for PIN verification: document id + remote address."""
    doc_id = (flask_request.view_args or {}).get("doc_id", "unknown")
    return f"pin:{doc_id}:{flask_request.remote_addr or 'unknown'}"


def pin_attempt_limit():
    """Limit string for PIN verification, read from config at request time."""
    return current_app.config.get("PIN_ATTEMPT_LIMIT") or DEFAULT_PIN_ATTEMPT_LIMIT


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Auth helpers:     20/minute  (OTP generation, availability checks)
        - Write endpoints:  60/minute  (projects, documents, edit access)
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit("20/minute")(bp)

    for bp_name in ("projects", "documents", "edit_access", "calendar"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("60/minute", methods=["POST", "PATCH", "DELETE"])(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: auth 20/min, writes 60/min, PIN %s",
        app.config.get("PIN_ATTEMPT_LIMIT", DEFAULT_PIN_ATTEMPT_LIMIT),
    )
