"""
DOST Project Tracker
Edit-access Blueprint: request / accept / decline / revoke.

Endpoints (under /api/<cest|setup>-projects/<project_id>):
    GET    /edit-access                          - current user's state (+ queue for owners)
    POST   /edit-requests                        - current user asks for edit access
    POST   /edit-requests/<user_id>/accept       - owner/admin approves
    POST   /edit-requests/<user_id>/decline      - owner/admin declines
    DELETE /editors/<user_id>                    - owner/admin revokes
"""

import logging

from flask import Blueprint, g, jsonify

from tracker.blueprints import PROJECT_ROUTE
from tracker.middleware.session_context import require_user
from tracker.services import edit_permission, project_service

logger = logging.getLogger(__name__)

edit_access_bp = Blueprint("edit_access", __name__, url_prefix="/api")


def _project(collection, project_id):
    kind = project_service.kind_for_collection(collection)
    return project_service.get_project(kind, project_id)


@edit_access_bp.route(f"{PROJECT_ROUTE}/edit-access", methods=["GET"])
@require_user
def get_edit_access(collection, project_id):
    project = _project(collection, project_id)
    return jsonify(edit_permission.edit_access_summary(g.current_user, project)), 200


@edit_access_bp.route(f"{PROJECT_ROUTE}/edit-requests", methods=["POST"])
@require_user
def request_edit(collection, project_id):
    project = _project(collection, project_id)
    perm = edit_permission.request_edit(g.current_user, project)
    return jsonify({
        "message": "Edit access requested",
        "state": perm.state if perm else edit_permission.STATE_NONE,
        "project": project.to_dict(),
    }), 200


@edit_access_bp.route(f"{PROJECT_ROUTE}/edit-requests/<int:user_id>/accept", methods=["POST"])
@require_user
def accept_edit_request(collection, project_id, user_id):
    project = _project(collection, project_id)
    edit_permission.accept_edit_request(g.current_user, project, user_id)
    return jsonify({"message": "Edit access approved", "project": project.to_dict()}), 200


@edit_access_bp.route(f"{PROJECT_ROUTE}/edit-requests/<int:user_id>/decline", methods=["POST"])
@require_user
def decline_edit_request(collection, project_id, user_id):
    project = _project(collection, project_id)
    edit_permission.decline_edit_request(g.current_user, project, user_id)
    return jsonify({"message": "Edit request declined", "project": project.to_dict()}), 200


@edit_access_bp.route(f"{PROJECT_ROUTE}/editors/<int:user_id>", methods=["DELETE"])
@require_user
def revoke_edit_access(collection, project_id, user_id):
    project = _project(collection, project_id)
    edit_permission.revoke_edit_access(g.current_user, project, user_id)
    return jsonify({"message": "Edit access revoked", "project": project.to_dict()}), 200
