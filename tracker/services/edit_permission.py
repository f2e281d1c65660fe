"""
DOST Project Tracker
Edit-permission workflow.

Per (project, user) edit access moves through:

    NONE ──request──▶ PENDING ──accept──▶ APPROVED ──revoke──▶ NONE
                         │
                         └──decline──▶ NONE

NONE is the absence of a ``project_edit_permissions`` row.  The project's
assignee and ADMIN users are always authorized and never hold a row.

Every transition commits on its own first; the notification to the other
party is delivered afterwards and may fail without undoing the transition.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from tracker.core.exceptions import ConflictError, NotFoundError, PermissionDenied
from tracker.models import db
from tracker.models.auth import User
from tracker.models.notification import TYPE_EDIT_REQUEST
from tracker.models.project import (
    PERMISSION_APPROVED,
    PERMISSION_PENDING,
    ProjectEditPermission,
)
from tracker.services.notification import NotificationService, actor_fields

logger = logging.getLogger(__name__)

STATE_NONE = "none"


# ═════════════════════════════════════════════════════════════════════════════
# Authorization checks
# ═════════════════════════════════════════════════════════════════════════════

def is_owner_or_admin(user, project) -> bool:
    """True for the project's assignee (by user id) and for ADMIN users."""
    if user is None or project is None:
        return False
    if user.is_admin:
        return True
    return project.assignee_id is not None and user.id == project.assignee_id


def get_permission(project, user_id):
    return ProjectEditPermission.query.filter_by(
        project_id=project.id, user_id=user_id,
    ).first()


def permission_state(project, user_id) -> str:
    perm = get_permission(project, user_id)
    return perm.state if perm else STATE_NONE


def is_authorized_to_edit(user, project) -> bool:
    """Owner/admin, or an approved editor of *project*."""
    if user is None or project is None:
        return False
    if is_owner_or_admin(user, project):
        return True
    return permission_state(project, user.id) == PERMISSION_APPROVED


def _require_manager(actor, project):
    if not is_owner_or_admin(actor, project):
        logger.warning(
            "User %s tried to manage edit access on project %s without ownership",
            getattr(actor, "id", None), project.id,
        )
        raise PermissionDenied("Only the assigned staff or an admin can manage edit access")


def _require_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def _now():
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════════════
# Transitions
# ═════════════════════════════════════════════════════════════════════════════

def request_edit(user, project):
    """
    Put *user* into PENDING on *project* and notify the assignee.

    Idempotent while pending.  Raises ConflictError if the user can already
    edit, NotFoundError if the project has no resolvable assignee (nothing
    is written in that case).
    """
    if is_authorized_to_edit(user, project):
        raise ConflictError("You already have edit access to this project")

    assignee = project.assignee
    if assignee is None:
        raise NotFoundError("User", project.assignee_id, message="Assignee not found")

    perm = get_permission(project, user.id)
    if perm is None:
        perm = ProjectEditPermission(
            project_id=project.id, user_id=user.id, state=PERMISSION_PENDING,
        )
        db.session.add(perm)
        try:
            db.session.commit()
        except IntegrityError:
            # Concurrent request inserted the same (project, user) row
            db.session.rollback()
            perm = get_permission(project, user.id)
            logger.info("Edit request race resolved by re-read: project=%s user=%s",
                        project.id, user.id)
        else:
            logger.info("Edit access requested: project=%s user=%s", project.id, user.id)

    kind = project.kind
    NotificationService.notify_best_effort(
        user_id=assignee.id,
        type=TYPE_EDIT_REQUEST,
        title="Edit Access Request",
        message=f'{user.full_name} is requesting edit access to {kind} project "{project.title}"',
        project_id=project.id,
        **actor_fields(user),
    )
    return perm


def accept_edit_request(actor, project, user_id):
    """Move *user_id* to APPROVED (creating the row if needed) and notify them."""
    _require_manager(actor, project)
    _require_user(user_id)

    perm = get_permission(project, user_id)
    if perm is None:
        perm = ProjectEditPermission(project_id=project.id, user_id=user_id)
        db.session.add(perm)
    perm.state = PERMISSION_APPROVED
    perm.decided_at = _now()
    perm.decided_by_id = actor.id
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        perm = get_permission(project, user_id)
        perm.state = PERMISSION_APPROVED
        perm.decided_at = _now()
        perm.decided_by_id = actor.id
        db.session.commit()
    logger.info("Edit access approved: project=%s user=%s by=%s", project.id, user_id, actor.id)

    NotificationService.notify_best_effort(
        user_id=user_id,
        type=TYPE_EDIT_REQUEST,
        title="Edit Access Approved",
        message=(
            f'Your edit access request for {project.kind} project "{project.title}" '
            f"has been approved by {actor.full_name}!"
        ),
        project_id=project.id,
        **actor_fields(actor),
    )
    return perm


def decline_edit_request(actor, project, user_id):
    """Drop a PENDING request for *user_id*; approved access is left alone."""
    _require_manager(actor, project)
    _require_user(user_id)

    perm = get_permission(project, user_id)
    if perm is not None and perm.state == PERMISSION_PENDING:
        db.session.delete(perm)
        db.session.commit()
        logger.info("Edit request declined: project=%s user=%s by=%s", project.id, user_id, actor.id)

    NotificationService.notify_best_effort(
        user_id=user_id,
        type=TYPE_EDIT_REQUEST,
        title="Edit Access Declined",
        message=(
            f'Your edit access request for {project.kind} project "{project.title}" '
            f"has been declined by {actor.full_name}."
        ),
        project_id=project.id,
        **actor_fields(actor),
    )


def revoke_edit_access(actor, project, user_id):
    """Remove APPROVED access for *user_id*; a pending request is left alone."""
    _require_manager(actor, project)
    _require_user(user_id)

    perm = get_permission(project, user_id)
    if perm is not None and perm.state == PERMISSION_APPROVED:
        db.session.delete(perm)
        db.session.commit()
        logger.info("Edit access revoked: project=%s user=%s by=%s", project.id, user_id, actor.id)

    NotificationService.notify_best_effort(
        user_id=user_id,
        type=TYPE_EDIT_REQUEST,
        title="Edit Access Revoked",
        message=(
            f'Your edit access for {project.kind} project "{project.title}" '
            f"has been revoked by {actor.full_name}."
        ),
        project_id=project.id,
        **actor_fields(actor),
    )


# ═════════════════════════════════════════════════════════════════════════════
# Read model
# ═════════════════════════════════════════════════════════════════════════════

def edit_access_summary(user, project) -> dict:
    """
    What *user* may do on *project*.  Owners and admins also see the
    pending requests and approved editors.
    """
    manager = is_owner_or_admin(user, project)
    state = permission_state(project, user.id) if user is not None else STATE_NONE
    summary = {
        "projectId": project.id,
        "isOwnerOrAdmin": manager,
        "canEdit": manager or state == PERMISSION_APPROVED,
        "state": state,
    }
    if manager:
        perms = project.edit_permissions.order_by(ProjectEditPermission.id).all()
        summary["pendingRequests"] = [p.to_dict() for p in perms if p.state == PERMISSION_PENDING]
        summary["approvedEditors"] = [p.to_dict() for p in perms if p.state == PERMISSION_APPROVED]
    return summary
