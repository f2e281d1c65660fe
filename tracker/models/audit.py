"""
DOST Project Tracker
Activity log model.

Models:
    - UserLog: append-only record of user actions (also feeds the snake-game
      leaderboard via resource_type SNAKE_SCORE)
"""

import json
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from tracker.models import db

logger = logging.getLogger(__name__)


# ── Constants ────────────────────────────────────────────────────────────────

ACTIVITY_ACTIONS = {"CREATE", "UPDATE", "DELETE", "SNAKE_SCORE"}

RESOURCE_PROJECT = "PROJECT"
RESOURCE_DOCUMENT = "DOCUMENT"
RESOURCE_CALENDAR_EVENT = "CALENDAR_EVENT"
RESOURCE_SNAKE_SCORE = "SNAKE_SCORE"


class UserLog(db.Model):
    __tablename__ = "user_logs"
    __table_args__ = (
        db.Index("idx_user_logs_resource", "resource_type", "resource_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    action = db.Column(db.String(30), nullable=False)
    resource_type = db.Column(db.String(40), nullable=False)
    resource_id = db.Column(db.String(36), nullable=True)
    resource_title = db.Column(db.String(300), nullable=True)
    details_json = db.Column(db.Text, default="{}")

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def details(self) -> dict:
        """Deserialise *details_json* to a Python dict."""
        try:
            value = json.loads(self.details_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}
        return value if isinstance(value, dict) else {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "action": self.action,
            "resourceType": self.resource_type,
            "resourceId": self.resource_id,
            "resourceTitle": self.resource_title,
            "details": self.details,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<UserLog {self.id}: {self.action} {self.resource_type}/{self.resource_id}>"


# ── Convenience writers ──────────────────────────────────────────────────────

def write_activity(
    *,
    user_id: int,
    action: str,
    resource_type: str,
    resource_id=None,
    resource_title: str | None = None,
    details: dict | None = None,
) -> UserLog:
    """
    Append a single activity row.  Uses ``flush`` so callers keep
    transaction control.
    """
    log = UserLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        resource_title=resource_title,
        details_json=json.dumps(details or {}, default=str),
    )
    db.session.add(log)
    db.session.flush()
    return log


def log_activity_best_effort(user_id, **kwargs):
    """
    Write and commit an activity row after the primary change has committed.

    Failures are logged and rolled back; they never reach the caller.
    """
    if not user_id:
        return None
    try:
        log = write_activity(user_id=user_id, **kwargs)
        db.session.commit()
        return log
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(
            "Activity log failed: user=%s action=%s resource=%s",
            user_id, kwargs.get("action"), kwargs.get("resource_type"),
        )
        return None
