"""
DOST Project Tracker
Document Service: uploads, listing and deletion of project documents.

Documents are stored in the database (``file_data``) and correlated to a
checklist row through ``template_item_id``.
"""

import logging
import mimetypes
import posixpath

from flask import current_app
from sqlalchemy.orm import undefer

from tracker.core.exceptions import NotFoundError, ValidationError
from tracker.models import db
from tracker.models.audit import RESOURCE_DOCUMENT, log_activity_best_effort
from tracker.models.document import ProjectDocument
from tracker.services import checklist

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def documents_query(project, phase=None):
    """Documents of *project*, most recent first (ties broken by id)."""
    q = ProjectDocument.query.filter_by(project_id=project.id)
    if phase:
        q = q.filter_by(phase=phase)
    return q.order_by(ProjectDocument.created_at.desc(), ProjectDocument.id.desc())


def list_documents(project, phase=None, template_item_id=None):
    if phase:
        phase = checklist.validate_phase(project.kind, phase)
    q = documents_query(project, phase)
    if template_item_id:
        q = q.filter_by(template_item_id=template_item_id)
    return q.all()


def get_project_document(project, doc_id, with_data=False):
    q = ProjectDocument.query.filter_by(id=doc_id, project_id=project.id)
    if with_data:
        q = q.options(undefer(ProjectDocument.file_data))
    doc = q.first()
    if doc is None:
        raise NotFoundError("Document", doc_id)
    return doc


def _clean_file_name(name):
    # Browsers on Windows may send a full client-side path
    name = posixpath.basename((name or "").replace("\\", "/")).strip()
    return name[:300]


def upload_document(project, user, file, phase, template_item_id):
    """
    Store an uploaded file against a checklist row of *project*.

    Args:
        file: werkzeug ``FileStorage`` from ``request.files["file"]``.
        phase: one of the project kind's phases (case-insensitive).
        template_item_id: ``{PHASE}-{row}`` or empty for an unassigned upload.
    """
    phase = checklist.validate_phase(project.kind, phase)
    template_item_id = checklist.validate_template_item_id(phase, template_item_id)

    if file is None or not file.filename:
        raise ValidationError("file is required", details={"file": "required"})
    file_name = _clean_file_name(file.filename)
    if not file_name:
        raise ValidationError("file name is empty", details={"file": "invalid name"})

    data = file.read()
    if not data:
        raise ValidationError("Uploaded file is empty", details={"file": "empty"})
    max_bytes = current_app.config.get("MAX_UPLOAD_BYTES")
    if max_bytes and len(data) > max_bytes:
        raise ValidationError(
            f"File exceeds the {max_bytes // (1024 * 1024)} MB upload limit",
            details={"file": "too large"},
        )

    mime_type = file.mimetype
    if not mime_type or mime_type == DEFAULT_MIME_TYPE:
        mime_type = mimetypes.guess_type(file_name)[0] or DEFAULT_MIME_TYPE

    doc = ProjectDocument(
        project_id=project.id,
        project_kind=project.kind,
        phase=phase,
        template_item_id=template_item_id,
        file_name=file_name,
        mime_type=mime_type,
        file_size=len(data),
        file_data=data,
        uploaded_by_id=user.id if user is not None else None,
    )
    db.session.add(doc)
    db.session.commit()
    logger.info(
        "Document uploaded: project=%s doc=%s item=%s size=%d",
        project.id, doc.id, template_item_id, len(data),
    )

    log_activity_best_effort(
        getattr(user, "id", None),
        action="CREATE",
        resource_type=RESOURCE_DOCUMENT,
        resource_id=doc.id,
        resource_title=file_name,
        details={"projectId": project.id, "templateItemId": template_item_id},
    )
    return doc


def delete_document(project, user, doc_id):
    doc = get_project_document(project, doc_id)
    file_name = doc.file_name
    db.session.delete(doc)
    db.session.commit()
    logger.info("Document deleted: project=%s doc=%s", project.id, doc_id)

    log_activity_best_effort(
        getattr(user, "id", None),
        action="DELETE",
        resource_type=RESOURCE_DOCUMENT,
        resource_id=doc_id,
        resource_title=file_name,
        details={"projectId": project.id},
    )


def delete_row_documents(project, user, template_item_id):
    """
    Delete every document of one checklist row in a single statement.

    Returns the number of deleted documents.  Either all of them go or,
    on failure, none do.
    """
    if not template_item_id:
        raise ValidationError("templateItemId is required", details={"templateItemId": "required"})
    phase = str(template_item_id).rsplit("-", 1)[0].upper()
    phase = checklist.validate_phase(project.kind, phase)
    template_item_id = checklist.validate_template_item_id(phase, template_item_id)

    try:
        count = (
            ProjectDocument.query
            .filter_by(project_id=project.id, template_item_id=template_item_id)
            .delete(synchronize_session=False)
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Row documents deleted: project=%s item=%s count=%d",
                project.id, template_item_id, count)

    if count:
        log_activity_best_effort(
            getattr(user, "id", None),
            action="DELETE",
            resource_type=RESOURCE_DOCUMENT,
            resource_title=template_item_id,
            details={"projectId": project.id, "templateItemId": template_item_id, "count": count},
        )
    return count
