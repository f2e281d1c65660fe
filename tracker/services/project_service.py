"""
DOST Project Tracker
Project Service: CRUD for SETUP and CEST projects.

Project codes are generated per kind as the highest numeric code + 1,
zero-padded to three digits ("001", "002", ...).
"""

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from tracker.core.exceptions import NotFoundError, ValidationError
from tracker.models import db
from tracker.models.audit import RESOURCE_PROJECT, log_activity_best_effort
from tracker.models.auth import User
from tracker.models.document import ProjectDocument
from tracker.models.project import (
    COLLECTION_KINDS,
    EDIT_PERMISSION_KEYS,
    KIND_CEST,
    KIND_FIELDS,
    PROJECT_STATUSES,
    Project,
    ProjectEditPermission,
)
from tracker.utils.helpers import parse_date

logger = logging.getLogger(__name__)

CODE_WIDTH = 3
_CODE_RETRIES = 3

# Initial status when none is supplied on create
DEFAULT_STATUS = {KIND_CEST: "Approved"}


def kind_for_collection(collection: str) -> str:
    try:
        return COLLECTION_KINDS[collection]
    except KeyError:
        raise NotFoundError("Collection", collection) from None


def get_project(kind: str, project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if project is None or project.kind != kind:
        raise NotFoundError("Project", project_id)
    return project


def next_code(kind: str) -> str:
    codes = db.session.query(Project.code).filter(Project.kind == kind).all()
    numbers = [int(c) for (c,) in codes if c and c.isdigit()]
    return str(max(numbers, default=0) + 1).zfill(CODE_WIDTH)


# ── Field parsing ────────────────────────────────────────────────────────────

def _parse_amount(key, value):
    if value in (None, ""):
        return None
    try:
        amount = Decimal(str(value).replace(",", ""))
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number", details={key: value}) from None
    if amount < 0:
        raise ValidationError(f"{key} cannot be negative", details={key: value})
    return amount


def _parse_field(attr, key, value):
    if attr.endswith("_amount"):
        return _parse_amount(key, value)
    if attr == "date_of_approval":
        if value in (None, ""):
            return None
        parsed = parse_date(value)
        if parsed is None:
            raise ValidationError(f"{key} must be a date (YYYY-MM-DD)", details={key: value})
        return parsed
    if attr == "categories":
        if value is None:
            return None
        if not isinstance(value, list):
            raise ValidationError(f"{key} must be a list", details={key: value})
        return [str(v) for v in value]
    if value is None:
        return None
    if attr == "year":
        return str(value).strip()[:4]
    return str(value).strip()


def _validate_status(kind, status):
    allowed = PROJECT_STATUSES[kind]
    for candidate in allowed:
        if candidate.lower() == str(status).strip().lower():
            return candidate
    raise ValidationError(
        f"Invalid status for {kind} projects",
        details={"status": f"one of {', '.join(allowed)}"},
    )


def _resolve_assignee(assignee_id):
    if assignee_id in (None, ""):
        return None
    try:
        assignee_id = int(assignee_id)
    except (TypeError, ValueError):
        raise ValidationError("assigneeId must be an integer") from None
    user = db.session.get(User, assignee_id)
    if user is None:
        raise NotFoundError("User", assignee_id, message="Assignee not found")
    return user


def _apply_fields(project, data):
    for attr, key in KIND_FIELDS[project.kind].items():
        if key in data:
            setattr(project, attr, _parse_field(attr, key, data[key]))


def _clean_dropdown(value):
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError("dropdownData must be an object")
    return {k: v for k, v in value.items() if k not in EDIT_PERMISSION_KEYS}


# ═════════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════════

def list_projects(kind, status=None, search=None):
    q = Project.query.filter_by(kind=kind)
    if status:
        q = q.filter(func.lower(Project.status) == status.strip().lower())
    if search:
        term = f"%{search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(Project.title).like(term),
            func.lower(func.coalesce(Project.firm, "")).like(term),
            func.lower(Project.code).like(term),
        ))
    return q.order_by(Project.code.asc()).all()


def create_project(kind, data, actor=None):
    """Create a project of *kind* from an API payload."""
    data = data or {}
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("title is required", details={"title": "required"})

    if "assigneeId" in data:
        assignee = _resolve_assignee(data.get("assigneeId"))
    else:
        assignee = actor

    status = data.get("status") or DEFAULT_STATUS.get(kind, PROJECT_STATUSES[kind][0])
    project = Project(
        kind=kind,
        title=title,
        status=_validate_status(kind, status),
        assignee_id=assignee.id if assignee else None,
        staff_assigned=assignee.full_name if assignee else None,
        dropdown_data=_clean_dropdown(data.get("dropdownData")) or {},
    )
    _apply_fields(project, data)

    for attempt in range(1, _CODE_RETRIES + 1):
        project.code = next_code(kind)
        db.session.add(project)
        try:
            db.session.commit()
            break
        except IntegrityError:
            # Another create took the same code
            db.session.rollback()
            logger.warning("Project code collision kind=%s code=%s attempt=%d",
                           kind, project.code, attempt)
            if attempt == _CODE_RETRIES:
                raise

    logger.info("Project created: %s-%s id=%s", kind, project.code, project.id)
    log_activity_best_effort(
        getattr(actor, "id", None),
        action="CREATE",
        resource_type=RESOURCE_PROJECT,
        resource_id=project.id,
        resource_title=project.title,
        details={"kind": kind, "code": project.code},
    )
    return project


def update_project(project, data, actor=None):
    """Apply a PATCH payload: status, metadata, assignee and dropdownData."""
    data = data or {}
    changed = []

    if "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("title cannot be empty", details={"title": "required"})
        project.title = title
        changed.append("title")
    if "status" in data:
        project.status = _validate_status(project.kind, data["status"])
        changed.append("status")
    if "assigneeId" in data:
        assignee = _resolve_assignee(data.get("assigneeId"))
        project.assignee_id = assignee.id if assignee else None
        project.staff_assigned = assignee.full_name if assignee else None
        changed.append("assigneeId")
    if "dropdownData" in data:
        project.dropdown_data = _clean_dropdown(data["dropdownData"]) or {}
        changed.append("dropdownData")

    meta_keys = {key for key in KIND_FIELDS[project.kind].values() if key in data}
    _apply_fields(project, data)
    changed.extend(sorted(meta_keys))

    if not changed:
        raise ValidationError("No updatable fields supplied")

    db.session.commit()
    logger.info("Project updated: id=%s fields=%s", project.id, ",".join(changed))
    log_activity_best_effort(
        getattr(actor, "id", None),
        action="UPDATE",
        resource_type=RESOURCE_PROJECT,
        resource_id=project.id,
        resource_title=project.title,
        details={"fields": changed},
    )
    return project


def delete_project(project, actor=None):
    """Delete the project together with its documents and permission rows."""
    project_id, title = project.id, project.title
    try:
        ProjectDocument.query.filter_by(project_id=project_id).delete(synchronize_session=False)
        ProjectEditPermission.query.filter_by(project_id=project_id).delete(synchronize_session=False)
        db.session.delete(project)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Project deleted: id=%s", project_id)
    log_activity_best_effort(
        getattr(actor, "id", None),
        action="DELETE",
        resource_type=RESOURCE_PROJECT,
        resource_id=project_id,
        resource_title=title,
    )
