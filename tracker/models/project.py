"""
DOST Project Tracker
Project domain model.

Models:
    - Project: SETUP or CEST program project (single table, ``kind`` discriminant)
    - ProjectEditPermission: per (project, user) edit-access state
"""

from datetime import datetime, timezone

from tracker.models import db


# ── Constants ────────────────────────────────────────────────────────────────

KIND_CEST = "CEST"
KIND_SETUP = "SETUP"
PROJECT_KINDS = {KIND_CEST, KIND_SETUP}

# URL collection segment -> kind
COLLECTION_KINDS = {
    "cest-projects": KIND_CEST,
    "setup-projects": KIND_SETUP,
}

PROJECT_STATUSES = {
    KIND_CEST: ("Approved", "Ongoing", "Completed", "Terminated"),
    KIND_SETUP: ("Proposal", "Evaluated", "Approved", "Ongoing", "Completed", "Withdrawn", "Terminated"),
}

PERMISSION_PENDING = "pending"
PERMISSION_APPROVED = "approved"
PERMISSION_STATES = {PERMISSION_PENDING, PERMISSION_APPROVED}

# dropdown_data keys owned by project_edit_permissions; never persisted in the blob
EDIT_PERMISSION_KEYS = ("pendingEditRequests", "approvedEditors")

# attribute name -> JSON key, per kind
_COMMON_FIELDS = {
    "title": "title",
    "status": "status",
    "staff_assigned": "staffAssigned",
}
KIND_FIELDS = {
    KIND_CEST: {
        "location": "location",
        "beneficiaries": "beneficiaries",
        "program_funding": "programFunding",
        "categories": "categories",
        "approved_amount": "approvedAmount",
        "released_amount": "releasedAmount",
        "project_duration": "projectDuration",
        "year": "year",
        "date_of_approval": "dateOfApproval",
    },
    KIND_SETUP: {
        "firm": "firm",
        "type_of_firm": "typeOfFirm",
        "address": "address",
        "cooperator_name": "cooperatorName",
        "contact_no": "contactNo",
        "email": "email",
        "priority_sector": "prioritySector",
        "firm_size": "firmSize",
    },
}


class Project(db.Model):
    """
    A SETUP or CEST project.

    Kind-specific metadata lives in nullable columns; ``KIND_FIELDS`` decides
    which of them are exposed for a given kind.
    """

    __tablename__ = "projects"
    __table_args__ = (
        db.UniqueConstraint("kind", "code", name="uq_projects_kind_code"),
        db.Index("ix_projects_kind_status", "kind", "status"),
        db.CheckConstraint(
            "kind IN (" + ",".join(f"'{k}'" for k in sorted(PROJECT_KINDS)) + ")",
            name="ck_projects_kind",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(10), nullable=False, comment="SETUP | CEST")
    code = db.Column(db.String(20), nullable=False)
    title = db.Column(db.String(500), nullable=False)
    status = db.Column(db.String(30), nullable=True)

    assignee_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    staff_assigned = db.Column(db.String(200), nullable=True, comment="Display name snapshot of the assignee")

    # ── CEST metadata ──
    location = db.Column(db.String(300), nullable=True)
    beneficiaries = db.Column(db.String(500), nullable=True)
    program_funding = db.Column(db.String(50), nullable=True, comment="CEST | LIRA | SWEP | ...")
    categories = db.Column(db.JSON, nullable=True)
    approved_amount = db.Column(db.Numeric(14, 2), nullable=True)
    released_amount = db.Column(db.Numeric(14, 2), nullable=True)
    project_duration = db.Column(db.String(50), nullable=True)
    year = db.Column(db.String(4), nullable=True)
    date_of_approval = db.Column(db.Date, nullable=True)

    # ── SETUP metadata ──
    firm = db.Column(db.String(300), nullable=True)
    type_of_firm = db.Column(db.String(100), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    cooperator_name = db.Column(db.String(200), nullable=True)
    contact_no = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(200), nullable=True)
    priority_sector = db.Column(db.String(100), nullable=True)
    firm_size = db.Column(db.String(20), nullable=True)

    dropdown_data = db.Column(db.JSON, nullable=True, comment="Open-ended UI state map")

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    assignee = db.relationship("User", foreign_keys=[assignee_id])
    documents = db.relationship(
        "ProjectDocument", back_populates="project",
        cascade="all, delete-orphan", passive_deletes=True, lazy="dynamic",
    )
    edit_permissions = db.relationship(
        "ProjectEditPermission", back_populates="project",
        cascade="all, delete-orphan", passive_deletes=True, lazy="dynamic",
    )

    def user_ids_in_state(self, state):
        return [
            p.user_id
            for p in self.edit_permissions.filter_by(state=state).order_by(ProjectEditPermission.id)
        ]

    def to_dict(self):
        d = {"id": self.id, "kind": self.kind, "code": self.code, "assigneeId": self.assignee_id}
        fields = dict(_COMMON_FIELDS, **KIND_FIELDS[self.kind])
        for attr, key in fields.items():
            value = getattr(self, attr)
            if hasattr(value, "isoformat"):
                value = value.isoformat()
            elif value is not None and attr.endswith("_amount"):
                value = float(value)
            d[key] = value

        dropdown = dict(self.dropdown_data or {})
        dropdown["pendingEditRequests"] = self.user_ids_in_state(PERMISSION_PENDING)
        dropdown["approvedEditors"] = self.user_ids_in_state(PERMISSION_APPROVED)
        d["dropdownData"] = dropdown
        d["createdAt"] = self.created_at.isoformat() if self.created_at else None
        d["updatedAt"] = self.updated_at.isoformat() if self.updated_at else None
        return d

    def __repr__(self):
        return f"<Project {self.kind}-{self.code}: {self.title[:40]}>"


class ProjectEditPermission(db.Model):
    """
    Edit-access state of one user on one project.

    No row means NONE. The unique constraint keeps a user in at most one
    state per project.
    """

    __tablename__ = "project_edit_permissions"
    __table_args__ = (
        db.UniqueConstraint("project_id", "user_id", name="uq_edit_permission_project_user"),
        db.CheckConstraint(
            "state IN (" + ",".join(f"'{s}'" for s in sorted(PERMISSION_STATES)) + ")",
            name="ck_edit_permission_state",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    state = db.Column(db.String(20), nullable=False, default=PERMISSION_PENDING)
    requested_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    decided_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    project = db.relationship("Project", back_populates="edit_permissions")
    user = db.relationship("User", foreign_keys=[user_id])

    def to_dict(self):
        user = self.user
        return {
            "userId": self.user_id,
            "userName": user.full_name if user else "Unknown User",
            "userProfileUrl": user.profile_image_url if user else None,
            "state": self.state,
            "requestedAt": self.requested_at.isoformat() if self.requested_at else None,
            "decidedAt": self.decided_at.isoformat() if self.decided_at else None,
        }
