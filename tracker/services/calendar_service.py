"""
DOST Project Tracker
Calendar Service: appointment booking and event-invite notifications.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from tracker.core.exceptions import NotFoundError, ValidationError
from tracker.models import db
from tracker.models.audit import RESOURCE_CALENDAR_EVENT, log_activity_best_effort
from tracker.models.auth import User
from tracker.models.calendar import EVENT_PRIORITIES, CalendarEvent
from tracker.models.notification import TYPE_EVENT_INVITE, Notification
from tracker.services.notification import NotificationService, actor_fields
from tracker.utils.helpers import parse_date

logger = logging.getLogger(__name__)

INVITE_TITLE = "Event Invitation"


def _optional_id(data, key):
    value = data.get(key)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer", details={key: value}) from None


def _id_list(data, key):
    values = data.get(key) or []
    if not isinstance(values, list):
        raise ValidationError(f"{key} must be a list", details={key: values})
    try:
        return list(dict.fromkeys(int(v) for v in values))
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must contain user ids", details={key: values}) from None


def _users_by_id(ids):
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    return {u.id: u for u in User.query.filter(User.id.in_(ids)).all()}


def _invite_message(booker, event, assigned):
    date_str = f" on {event.date.strftime('%b')} {event.date.day}, {event.date.year}" if event.date else ""
    time_str = f" at {event.time}" if event.time else ""
    verb = "assigned you to" if assigned else "invited you to"
    name = booker.full_name if booker else "Someone"
    return f"{name} {verb}: {event.title}{date_str}{time_str}"


# ═════════════════════════════════════════════════════════════════════════════
# Read model
# ═════════════════════════════════════════════════════════════════════════════

def enrich_events(events):
    """Attach user summaries and per-recipient invite statuses to each event."""
    user_ids = set()
    for e in events:
        user_ids.update(e.staff_involved_ids or [])
        user_ids.update((e.booked_by_id, e.booked_personnel_id))
    users = _users_by_id(user_ids)

    statuses = {}
    event_ids = [e.id for e in events]
    if event_ids:
        rows = (
            db.session.query(Notification.event_id, Notification.user_id, Notification.invite_status)
            .filter(Notification.event_id.in_(event_ids), Notification.type == TYPE_EVENT_INVITE)
            .all()
        )
        for event_id, user_id, status in rows:
            statuses.setdefault(event_id, {})[user_id] = status or "pending"

    result = []
    for e in events:
        staff = [users[i] for i in (e.staff_involved_ids or []) if i in users]
        booked_by = users.get(e.booked_by_id)
        personnel = users.get(e.booked_personnel_id)
        event_statuses = statuses.get(e.id, {})

        d = e.to_dict()
        d["staffInvolvedNames"] = ", ".join(u.full_name for u in staff) or e.staff_involved or "N/A"
        d["staffInvolvedUsers"] = [u.to_summary() for u in staff]
        d["bookedByUser"] = booked_by.to_summary() if booked_by else None
        d["bookedPersonnelUser"] = personnel.to_summary() if personnel else None
        d["inviteStatuses"] = [
            {"userId": uid, "status": event_statuses.get(uid, "pending")}
            for uid in e.invite_recipient_ids()
        ]
        result.append(d)
    return result


def list_events():
    events = CalendarEvent.query.order_by(
        CalendarEvent.created_at.desc(), CalendarEvent.id.desc(),
    ).all()
    return enrich_events(events)


# ═════════════════════════════════════════════════════════════════════════════
# Create
# ═════════════════════════════════════════════════════════════════════════════

def create_event(data, actor=None):
    """
    Book an event and invite its staff and booked personnel.

    Invites are delivered after the event is committed; a failure there is
    logged and does not undo the booking.
    """
    data = data or {}
    missing = [k for k in ("title", "date", "location") if not str(data.get(k) or "").strip()]
    if missing:
        raise ValidationError(
            f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
            details={k: "required" for k in missing},
        )
    event_date = parse_date(data["date"])
    if event_date is None:
        raise ValidationError("date must be YYYY-MM-DD", details={"date": data["date"]})

    priority = data.get("priority")
    if priority:
        priority = str(priority).strip().lower()
        if priority not in EVENT_PRIORITIES:
            raise ValidationError(
                f"priority must be one of {', '.join(sorted(EVENT_PRIORITIES))}",
                details={"priority": data.get("priority")},
            )

    booked_by_id = _optional_id(data, "bookedById")
    if booked_by_id is None and actor is not None:
        booked_by_id = actor.id
    booked_personnel_id = _optional_id(data, "bookedPersonnelId")
    known = _users_by_id((booked_by_id, booked_personnel_id))
    for key, uid in (("bookedById", booked_by_id), ("bookedPersonnelId", booked_personnel_id)):
        if uid is not None and uid not in known:
            raise NotFoundError("User", uid, message=f"{key} does not match a user")

    event = CalendarEvent(
        title=str(data["title"]).strip(),
        date=event_date,
        time=(data.get("time") or None),
        location=str(data["location"]).strip(),
        priority=priority or None,
        booked_by=data.get("bookedBy"),
        booked_by_id=booked_by_id,
        booked_service=data.get("bookedService"),
        booked_personnel=data.get("bookedPersonnel"),
        booked_personnel_id=booked_personnel_id,
        staff_involved=data.get("staffInvolved"),
        staff_involved_ids=_id_list(data, "staffInvolvedIds"),
    )
    db.session.add(event)
    db.session.commit()
    logger.info("Calendar event created: id=%s date=%s", event.id, event.date)

    _send_invites(event)

    log_activity_best_effort(
        getattr(actor, "id", None),
        action="CREATE",
        resource_type=RESOURCE_CALENDAR_EVENT,
        resource_id=event.id,
        resource_title=event.title,
        details={"date": event.date, "time": event.time,
                 "location": event.location, "priority": event.priority},
    )
    return enrich_events([event])[0]


def _send_invites(event):
    recipients = event.invite_recipient_ids()
    if not recipients:
        return 0
    users = _users_by_id(recipients + [event.booked_by_id])
    booker = users.get(event.booked_by_id)
    staff_ids = set(event.staff_involved_ids or [])

    try:
        sent = 0
        for uid in recipients:
            if uid not in users:
                logger.warning("Skipping invite for unknown user %s on event %s", uid, event.id)
                continue
            assigned = uid == event.booked_personnel_id and uid not in staff_ids
            NotificationService.create(
                user_id=uid,
                type=TYPE_EVENT_INVITE,
                title=INVITE_TITLE,
                message=_invite_message(booker, event, assigned),
                event_id=event.id,
                invite_status="pending",
                commit=False,
                **actor_fields(booker),
            )
            sent += 1
        db.session.commit()
        return sent
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to create invites for event %s", event.id)
        return 0
