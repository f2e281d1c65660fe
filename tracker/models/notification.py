"""
DOST Project Tracker
Notification domain model.

Models:
    - Notification: in-app notification for one user, with read tracking and
      optional RSVP state for event invites
"""

from datetime import datetime, timezone

from tracker.models import db


# ── Constants ────────────────────────────────────────────────────────────────

TYPE_EVENT_INVITE = "event-invite"
TYPE_EDIT_REQUEST = "cest_edit_request"

INVITE_STATUSES = {"pending", "accepted", "declined"}


class Notification(db.Model):
    """
    In-app notification entity.

    One record per recipient per event.
    """

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    type = db.Column(db.String(40), nullable=False, default="system")
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")

    # Link to source entity
    event_id = db.Column(
        db.Integer, db.ForeignKey("calendar_events.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    invite_status = db.Column(db.String(20), nullable=True)

    # Who triggered it (snapshot for display)
    booked_by_user_id = db.Column(db.Integer, nullable=True)
    booked_by_name = db.Column(db.String(200), nullable=True)
    booked_by_profile_url = db.Column(db.String(500), nullable=True)

    read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def mark_read(self, value=True):
        self.read = bool(value)
        self.read_at = datetime.now(timezone.utc) if self.read else None

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "eventId": self.event_id,
            "projectId": self.project_id,
            "inviteStatus": self.invite_status,
            "bookedByUserId": self.booked_by_user_id,
            "bookedByName": self.booked_by_name,
            "bookedByProfileUrl": self.booked_by_profile_url,
            "read": self.read,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.id}: {self.title[:40]}>"
