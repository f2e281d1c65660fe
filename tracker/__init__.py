"""
DOST Project Tracker
Flask Application Factory.

Usage:
    from tracker import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from tracker.config import config
from tracker.models import db

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per blueprint / route
    storage_uri=os.getenv("REDIS_URL") or "memory://",
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to the APP_ENV env var, or "development".

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse missing env vars
    app.config.from_object(config[config_name]())

    # Imported here so logging is configured before any module logs
    from tracker.middleware.logging_config import configure_logging
    from tracker.middleware.rate_limiter import init_rate_limits
    from tracker.middleware.session_context import init_session_context
    from tracker.middleware.timing import init_request_timing
    from tracker.utils.errors import register_error_handlers

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + session user ────────────────────────────────────
    init_request_timing(app)
    init_session_context(app)

    # ── Import all models so create_all / Alembic see them ───────────────
    from tracker.models import audit as _audit_models               # noqa: F401
    from tracker.models import auth as _auth_models                 # noqa: F401
    from tracker.models import calendar as _calendar_models         # noqa: F401
    from tracker.models import document as _document_models         # noqa: F401
    from tracker.models import notification as _notification_models  # noqa: F401
    from tracker.models import project as _project_models           # noqa: F401
    from tracker.models import reference as _reference_models       # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db.create_all()

    # ── Blueprints & error handlers ──────────────────────────────────────
    from tracker.blueprints import register_blueprints
    register_blueprints(app)
    register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-provinces")
    def seed_provinces_cmd():
        """Seed the Northern Mindanao provinces (idempotent)."""
        from tracker.models.reference import seed_provinces
        count = seed_provinces()
        db.session.commit()
        logger.info("Seeded %s new provinces.", count)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
