"""
User Service: listing, approval, availability checks and password-reset OTPs.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from email_validator import EmailNotValidError, validate_email
from flask import current_app
from sqlalchemy import func

from tracker.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from tracker.models import db
from tracker.models.auth import User
from tracker.services.email_service import EmailService
from tracker.utils.helpers import get_or_raise

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_EMAIL_LENGTH = 3
OTP_DIGITS = 4


# ═══════════════════════════════════════════════════════════════
# Listing & approval
# ═══════════════════════════════════════════════════════════════
def list_users(approved_only=False):
    q = User.query
    if approved_only:
        q = q.filter_by(is_approved=True)
    return q.order_by(User.created_at.desc(), User.id.desc()).all()


def approve_user(actor, user_id, approved=True):
    """Set the approval flag of *user_id*. Admin only."""
    if actor is None or not actor.is_admin:
        raise PermissionDenied("Only an admin can approve accounts")
    user = get_or_raise(User, user_id, "User")
    newly_approved = bool(approved) and not user.is_approved
    user.is_approved = bool(approved)
    db.session.commit()
    logger.info("User %s %s by admin %s", user.id,
                "approved" if user.is_approved else "unapproved", actor.id)

    if newly_approved and not EmailService.send_account_approved(
            to_email=user.email, to_name=user.full_name):
        logger.warning("Approval email not delivered for user %s", user.id)
    return user


# ═══════════════════════════════════════════════════════════════
# Availability checks (signup form)
# ═══════════════════════════════════════════════════════════════
def name_exists(full_name) -> bool:
    name = (full_name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        return False
    return db.session.query(
        User.query.filter(func.lower(User.full_name) == name.lower()).exists()
    ).scalar()


def email_exists(email) -> bool:
    email = (email or "").strip().lower()
    if len(email) < MIN_EMAIL_LENGTH:
        return False
    return db.session.query(
        User.query.filter(func.lower(User.email) == email).exists()
    ).scalar()


# ═══════════════════════════════════════════════════════════════
# Password reset
# ═══════════════════════════════════════════════════════════════
def generate_otp() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(OTP_DIGITS))


def start_password_reset(email):
    """
    Store a fresh OTP on the account for *email* and email it.

    Email delivery is best-effort; the OTP is stored either way.
    """
    raw = (email or "").strip()
    if not raw:
        raise ValidationError("Email is required", details={"email": "required"})
    try:
        email = validate_email(raw, check_deliverability=False).normalized.lower()
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": raw}) from None

    user = User.query.filter(func.lower(User.email) == email).first()
    if user is None:
        raise NotFoundError("User", message="No account found with that email")

    ttl = current_app.config.get("OTP_TTL_MINUTES", 5)
    otp = generate_otp()
    user.reset_otp = otp
    user.reset_otp_expires_at = datetime.now(timezone.utc) + timedelta(minutes=ttl)
    db.session.commit()
    logger.info("Password reset OTP issued for user %s", user.id)

    if not EmailService.send_otp(to_email=user.email, to_name=user.full_name,
                                 otp=otp, ttl_minutes=ttl):
        logger.warning("Password reset OTP email not delivered for user %s", user.id)
    return user
