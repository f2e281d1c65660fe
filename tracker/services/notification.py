"""
DOST Project Tracker
Notification Service.

Central service for creating, querying and updating in-app notifications.
Edit-access workflow and calendar invites deliver through
``notify_best_effort`` so a failed notification never undoes the change
that triggered it.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from tracker.core.exceptions import NotFoundError, ValidationError
from tracker.models import db
from tracker.models.auth import User
from tracker.models.notification import INVITE_STATUSES, Notification
from tracker.utils.helpers import get_or_raise, parse_bool

logger = logging.getLogger(__name__)


def actor_fields(user):
    """Snapshot of the triggering user, stored on the notification for display."""
    if user is None:
        return {}
    return {
        "booked_by_user_id": user.id,
        "booked_by_name": user.full_name,
        "booked_by_profile_url": user.profile_image_url,
    }


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def create(*, user_id, title, message="", type="system", event_id=None,
               project_id=None, invite_status=None, booked_by_user_id=None,
               booked_by_name=None, booked_by_profile_url=None, commit=True):
        """
        Create a single notification record.

        Returns:
            The created Notification instance (committed unless commit=False).
        """
        if invite_status is not None and invite_status not in INVITE_STATUSES:
            raise ValidationError(
                f"inviteStatus must be one of {', '.join(sorted(INVITE_STATUSES))}",
                details={"inviteStatus": invite_status},
            )
        notif = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message or "",
            event_id=event_id,
            project_id=project_id,
            invite_status=invite_status,
            booked_by_user_id=booked_by_user_id,
            booked_by_name=booked_by_name,
            booked_by_profile_url=booked_by_profile_url,
        )
        db.session.add(notif)
        if commit:
            db.session.commit()
        return notif

    @staticmethod
    def notify_best_effort(**kwargs):
        """
        Create and commit a notification, logging instead of raising on failure.

        Call only after the primary change has been committed: a failure
        rolls back the session.
        """
        try:
            return NotificationService.create(**kwargs)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception(
                "Notification delivery failed: user=%s type=%s",
                kwargs.get("user_id"), kwargs.get("type"),
            )
            return None

    @staticmethod
    def create_from_payload(data):
        """Validate an API payload and create the notification."""
        data = data or {}
        missing = [k for k in ("userId", "type", "title") if data.get(k) in (None, "")]
        if missing:
            raise ValidationError(
                f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
                details={k: "required" for k in missing},
            )
        try:
            user_id = int(data["userId"])
        except (TypeError, ValueError):
            raise ValidationError("userId must be an integer") from None
        if db.session.get(User, user_id) is None:
            raise NotFoundError("User", user_id)

        return NotificationService.create(
            user_id=user_id,
            type=str(data["type"]).strip(),
            title=str(data["title"]).strip(),
            message=data.get("message") or "",
            event_id=data.get("eventId"),
            project_id=data.get("projectId"),
            invite_status=data.get("inviteStatus"),
            booked_by_user_id=data.get("bookedByUserId"),
            booked_by_name=data.get("bookedByName"),
            booked_by_profile_url=data.get("bookedByProfileUrl"),
        )

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_user(user_id, unread_only=False, limit=100):
        """Retrieve notifications for a user, newest first."""
        q = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            q = q.filter_by(read=False)
        return (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def update(notification_id, data):
        """Apply ``read`` and/or ``inviteStatus`` from *data*."""
        notif = get_or_raise(Notification, notification_id, "Notification")
        data = data or {}
        if "read" not in data and "inviteStatus" not in data:
            raise ValidationError("Nothing to update: send read and/or inviteStatus")

        if "inviteStatus" in data:
            status = data["inviteStatus"]
            if status is not None and status not in INVITE_STATUSES:
                raise ValidationError(
                    f"inviteStatus must be one of {', '.join(sorted(INVITE_STATUSES))}",
                    details={"inviteStatus": status},
                )
            notif.invite_status = status
            # Answering an invite implies it was seen
            if status in ("accepted", "declined") and "read" not in data:
                notif.mark_read()
        if "read" in data:
            notif.mark_read(parse_bool(data["read"]))

        db.session.commit()
        return notif

    @staticmethod
    def delete(notification_id):
        notif = get_or_raise(Notification, notification_id, "Notification")
        db.session.delete(notif)
        db.session.commit()
