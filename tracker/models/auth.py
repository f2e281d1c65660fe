"""
DOST Project Tracker
User domain model.

Models:
    - User: staff account with role and approval flag
"""

from datetime import datetime, timezone

from tracker.models import db


# ── Constants ────────────────────────────────────────────────────────────────

ROLE_ADMIN = "ADMIN"
ROLE_STAFF = "STAFF"
USER_ROLES = {ROLE_ADMIN, ROLE_STAFF}


class User(db.Model):
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "role IN (" + ",".join(f"'{r}'" for r in sorted(USER_ROLES)) + ")",
            name="ck_users_role",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True)
    full_name = db.Column(db.String(200), nullable=False)
    contact_no = db.Column(db.String(30), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_STAFF)
    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    profile_image_url = db.Column(db.String(500), nullable=True)
    birthday = db.Column(db.Date, nullable=True)

    # Password reset (forgot-password flow)
    reset_otp = db.Column(db.String(4), nullable=True)
    reset_otp_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def to_summary(self):
        """Compact shape embedded in events and edit-access listings."""
        return {
            "id": self.id,
            "fullName": self.full_name,
            "profileImageUrl": self.profile_image_url,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "contactNo": self.contact_no,
            "role": self.role,
            "isApproved": self.is_approved,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "profileImageUrl": self.profile_image_url,
            "birthday": self.birthday.isoformat() if self.birthday else None,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.full_name}>"
