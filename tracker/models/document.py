"""
DOST Project Tracker
Project document model.

One table for both project kinds; ``project_kind`` mirrors the owning
project's kind so share links resolve with a single lookup.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import deferred

from tracker.models import db


class ProjectDocument(db.Model):
    __tablename__ = "project_documents"
    __table_args__ = (
        db.Index("ix_project_documents_project_item", "project_id", "template_item_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    project_kind = db.Column(db.String(10), nullable=False, comment="SETUP | CEST")
    phase = db.Column(db.String(20), nullable=False, comment="INITIATION | IMPLEMENTATION | MONITORING")
    template_item_id = db.Column(db.String(40), nullable=True, comment="{PHASE}-{checklist row id}")

    file_name = db.Column(db.String(300), nullable=False)
    mime_type = db.Column(db.String(120), nullable=False, default="application/octet-stream")
    file_size = db.Column(db.Integer, nullable=False, default=0)
    # Loaded only when the payload is actually served
    file_data = deferred(db.Column(db.LargeBinary, nullable=True))

    qr_pin = db.Column(db.String(4), nullable=True)
    uploaded_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    project = db.relationship("Project", back_populates="documents")

    @property
    def has_pin(self):
        return bool(self.qr_pin)

    def to_meta(self):
        return {
            "id": self.id,
            "fileName": self.file_name,
            "mimeType": self.mime_type,
            "hasPin": self.has_pin,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "projectId": self.project_id,
            "phase": self.phase,
            "templateItemId": self.template_item_id,
            "fileName": self.file_name,
            "mimeType": self.mime_type,
            "fileSize": self.file_size,
            "hasPin": self.has_pin,
            "uploadedById": self.uploaded_by_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ProjectDocument {self.id}: {self.template_item_id} {self.file_name}>"
