"""
DOST Project Tracker
Project Blueprint: SETUP and CEST project CRUD.

Both collections share the same views; the URL segment selects the kind.

Endpoints:
    GET    /api/cest-projects            - list (?status=&search=)
    POST   /api/cest-projects            - create (code auto-generated)
    GET    /api/cest-projects/<id>       - detail
    PATCH  /api/cest-projects/<id>       - status / metadata / dropdownData
    DELETE /api/cest-projects/<id>       - delete with documents & permissions
    (same under /api/setup-projects)
"""

import logging

from flask import Blueprint, g, jsonify, request

from tracker.blueprints import PROJECT_COLLECTION, PROJECT_ROUTE, json_body
from tracker.core.exceptions import PermissionDenied
from tracker.middleware.session_context import current_user, require_edit_access, require_user
from tracker.services import project_service
from tracker.services.edit_permission import is_owner_or_admin

logger = logging.getLogger(__name__)

project_bp = Blueprint("projects", __name__, url_prefix="/api")


@project_bp.route(f"/{PROJECT_COLLECTION}", methods=["GET"])
def list_projects(collection):
    kind = project_service.kind_for_collection(collection)
    projects = project_service.list_projects(
        kind,
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    return jsonify([p.to_dict() for p in projects]), 200


@project_bp.route(f"/{PROJECT_COLLECTION}", methods=["POST"])
@require_user
def create_project(collection):
    kind = project_service.kind_for_collection(collection)
    project = project_service.create_project(kind, json_body(required=True), actor=g.current_user)
    return jsonify(project.to_dict()), 201


@project_bp.route(PROJECT_ROUTE, methods=["GET"])
def get_project(collection, project_id):
    kind = project_service.kind_for_collection(collection)
    project = project_service.get_project(kind, project_id)
    return jsonify(project.to_dict()), 200


@project_bp.route(PROJECT_ROUTE, methods=["PATCH"])
@require_edit_access("project_id")
def update_project(collection, project_id):
    project = project_service.update_project(g.project, json_body(required=True), actor=g.current_user)
    return jsonify(project.to_dict()), 200


@project_bp.route(PROJECT_ROUTE, methods=["DELETE"])
@require_user
def delete_project(collection, project_id):
    kind = project_service.kind_for_collection(collection)
    project = project_service.get_project(kind, project_id)
    if not is_owner_or_admin(current_user(), project):
        raise PermissionDenied("Only the assigned staff or an admin can delete a project")
    project_service.delete_project(project, actor=current_user())
    return jsonify({"deleted": True, "id": project_id}), 200
