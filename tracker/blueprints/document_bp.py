"""
DOST Project Tracker
Document Blueprint: per-project documents, checklist and progress.

Endpoints (under /api/<cest|setup>-projects/<project_id>):
    GET    /documents                     - list, newest first (?phase=&templateItemId=)
    POST   /documents                     - multipart upload (file, phase, templateItemId)
    DELETE /documents?templateItemId=     - delete every document of one checklist row
    DELETE /documents/<doc_id>            - delete one document
    GET    /documents/<doc_id>/download   - file as attachment
    GET    /checklist                     - checklist rows with documents (?phase=)
    GET    /progress                      - per-phase progress
"""

import io
import logging

from flask import Blueprint, g, jsonify, request, send_file

from tracker.blueprints import PROJECT_ROUTE
from tracker.middleware.session_context import current_user, require_edit_access, require_user
from tracker.services import checklist, document_service, project_service

logger = logging.getLogger(__name__)

document_bp = Blueprint("documents", __name__, url_prefix="/api")


def _project(collection, project_id):
    kind = project_service.kind_for_collection(collection)
    return project_service.get_project(kind, project_id)


# ═══════════════════════════════════════════════════════════════════════════
#  Documents
# ═══════════════════════════════════════════════════════════════════════════

@document_bp.route(f"{PROJECT_ROUTE}/documents", methods=["GET"])
def list_documents(collection, project_id):
    project = _project(collection, project_id)
    docs = document_service.list_documents(
        project,
        phase=request.args.get("phase"),
        template_item_id=request.args.get("templateItemId"),
    )
    return jsonify([d.to_dict() for d in docs]), 200


@document_bp.route(f"{PROJECT_ROUTE}/documents", methods=["POST"])
@require_edit_access("project_id")
def upload_document(collection, project_id):
    doc = document_service.upload_document(
        g.project,
        g.current_user,
        request.files.get("file"),
        request.form.get("phase"),
        request.form.get("templateItemId"),
    )
    return jsonify(doc.to_dict()), 201


@document_bp.route(f"{PROJECT_ROUTE}/documents", methods=["DELETE"])
@require_edit_access("project_id")
def delete_row_documents(collection, project_id):
    count = document_service.delete_row_documents(
        g.project, g.current_user, request.args.get("templateItemId"),
    )
    return jsonify({"deleted": count}), 200


@document_bp.route(f"{PROJECT_ROUTE}/documents/<int:doc_id>", methods=["DELETE"])
@require_edit_access("project_id")
def delete_document(collection, project_id, doc_id):
    document_service.delete_document(g.project, g.current_user, doc_id)
    return jsonify({"deleted": True, "id": doc_id}), 200


@document_bp.route(f"{PROJECT_ROUTE}/documents/<int:doc_id>/download", methods=["GET"])
@require_user
def download_document(collection, project_id, doc_id):
    project = _project(collection, project_id)
    doc = document_service.get_project_document(project, doc_id, with_data=True)
    logger.info("Document download: doc=%s user=%s", doc.id, current_user().id)
    return send_file(
        io.BytesIO(doc.file_data or b""),
        mimetype=doc.mime_type,
        as_attachment=True,
        download_name=doc.file_name,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Checklist & progress
# ═══════════════════════════════════════════════════════════════════════════

@document_bp.route(f"{PROJECT_ROUTE}/checklist", methods=["GET"])
def get_checklist(collection, project_id):
    project = _project(collection, project_id)
    phase = request.args.get("phase")
    phases = (
        [checklist.validate_phase(project.kind, phase)]
        if phase else list(checklist.KIND_PHASES[project.kind])
    )
    docs = document_service.documents_query(project).all()
    return jsonify({
        "projectId": project.id,
        "kind": project.kind,
        "phases": [checklist.build_checklist_view(project.kind, p, docs) for p in phases],
    }), 200


@document_bp.route(f"{PROJECT_ROUTE}/progress", methods=["GET"])
def get_progress(collection, project_id):
    project = _project(collection, project_id)
    docs = document_service.documents_query(project).all()
    return jsonify({
        "projectId": project.id,
        "kind": project.kind,
        "phases": checklist.project_progress(project.kind, docs),
    }), 200
