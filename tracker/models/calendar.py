"""
DOST Project Tracker
Calendar / appointment booking model.
"""

from datetime import datetime, timezone

from tracker.models import db


EVENT_PRIORITIES = {"low", "medium", "high"}


class CalendarEvent(db.Model):
    __tablename__ = "calendar_events"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(20), nullable=True, comment="Free-form, e.g. 09:30 AM")
    location = db.Column(db.String(300), nullable=False)
    priority = db.Column(db.String(20), nullable=True)

    booked_by = db.Column(db.String(200), nullable=True)
    booked_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    booked_service = db.Column(db.String(200), nullable=True)
    booked_personnel = db.Column(db.String(200), nullable=True)
    booked_personnel_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    staff_involved = db.Column(db.Text, nullable=True, comment="Legacy free-text staff names")
    staff_involved_ids = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def invite_recipient_ids(self):
        """Staff involved plus booked personnel, deduplicated, in invite order."""
        recipients = list(dict.fromkeys(self.staff_involved_ids or []))
        if self.booked_personnel_id and self.booked_personnel_id not in recipients:
            recipients.append(self.booked_personnel_id)
        return recipients

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date.isoformat() if self.date else None,
            "time": self.time,
            "location": self.location,
            "priority": self.priority,
            "bookedBy": self.booked_by,
            "bookedById": self.booked_by_id,
            "bookedService": self.booked_service,
            "bookedPersonnel": self.booked_personnel,
            "bookedPersonnelId": self.booked_personnel_id,
            "staffInvolved": self.staff_involved,
            "staffInvolvedIds": list(self.staff_involved_ids or []),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<CalendarEvent {self.id}: {self.title[:40]} {self.date}>"
