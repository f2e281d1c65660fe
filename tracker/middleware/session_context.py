"""
Session context middleware.

Resolves the acting user once per request from the ``X-User-Id`` header
into ``g.current_user``.  An absent, malformed or unknown id leaves
``g.current_user`` as ``None``; handlers that need a user use the
decorators below.

Usage:
    @bp.route("/<int:project_id>/documents", methods=["POST"])
    @require_edit_access("project_id")
    def upload(collection, project_id):
        ...  # g.current_user may edit the project; g.project is loaded
"""

import functools
import logging

from flask import g, request

from tracker.core.exceptions import AuthenticationRequired, NotFoundError, PermissionDenied
from tracker.models import db
from tracker.models.auth import User
from tracker.models.project import COLLECTION_KINDS, Project
from tracker.services.edit_permission import is_authorized_to_edit

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


def init_session_context(app):
    """Register the before_request hook that populates ``g.current_user``."""

    @app.before_request
    def _resolve_current_user():
        g.current_user = None
        g.current_user_id = None
        raw = (request.headers.get(USER_HEADER) or "").strip()
        if not raw:
            return None
        try:
            user_id = int(raw)
        except ValueError:
            logger.debug("Ignoring malformed %s header: %r", USER_HEADER, raw)
            return None
        g.current_user = db.session.get(User, user_id)
        if g.current_user is None:
            logger.debug("%s header names unknown user %s", USER_HEADER, user_id)
        else:
            g.current_user_id = user_id
        return None


def current_user():
    return getattr(g, "current_user", None)


def require_user(f):
    """Decorator: 401 unless the request carries a known user."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_user() is None:
            raise AuthenticationRequired()
        return f(*args, **kwargs)
    return decorated


def require_edit_access(param_name: str = "project_id"):
    """
    Decorator: require the current user to be authorized to edit the project
    identified by the given route parameter.

    Loads the project into ``g.project``.  401 without a user, 404 for an
    unknown project, 403 when the user is neither owner, admin nor an
    approved editor.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()
            if user is None:
                raise AuthenticationRequired()

            project_id = kwargs.get(param_name)
            project = db.session.get(Project, project_id) if project_id is not None else None
            kind = COLLECTION_KINDS.get(kwargs.get("collection"))
            if project is None or (kind and project.kind != kind):
                raise NotFoundError("Project", project_id)

            if not is_authorized_to_edit(user, project):
                logger.warning(
                    "User %s denied edit access to project %s", user.id, project.id,
                )
                raise PermissionDenied("You do not have edit access to this project")

            g.project = project
            return f(*args, **kwargs)
        return decorated
    return decorator
