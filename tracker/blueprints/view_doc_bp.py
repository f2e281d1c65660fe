"""
DOST Project Tracker
Share-link Blueprint: PIN-gated document viewing.

Endpoints:
    GET   /api/view-doc/<doc_id>   - {id, fileName, mimeType, hasPin}
    POST  /api/view-doc/<doc_id>   - body {pin}; streams the file inline
    PATCH /api/view-doc/<doc_id>   - body {pin: "1234" | null}; editors only

POST is throttled per (document, client address).
"""

import logging
from urllib.parse import quote

from flask import Blueprint, Response, jsonify

from tracker import limiter
from tracker.blueprints import json_body
from tracker.core.exceptions import PermissionDenied, ValidationError
from tracker.middleware.rate_limiter import pin_attempt_key, pin_attempt_limit
from tracker.middleware.session_context import current_user, require_user
from tracker.services import share_link
from tracker.services.edit_permission import is_authorized_to_edit

logger = logging.getLogger(__name__)

view_doc_bp = Blueprint("view_doc", __name__, url_prefix="/api/view-doc")


@view_doc_bp.route("/<int:doc_id>", methods=["GET"])
def get_doc_meta(doc_id):
    return jsonify(share_link.get_doc_meta(doc_id)), 200


@view_doc_bp.route("/<int:doc_id>", methods=["POST"])
@limiter.limit(pin_attempt_limit, key_func=pin_attempt_key)
def verify_and_serve(doc_id):
    pin = json_body().get("pin")
    if isinstance(pin, int) and not isinstance(pin, bool):
        pin = str(pin)
    doc = share_link.verify_and_serve(doc_id, pin)
    return Response(
        doc.file_data,
        status=200,
        mimetype=doc.mime_type,
        headers={
            "Content-Disposition": f"inline; filename=\"{quote(doc.file_name)}\"",
            "Cache-Control": "no-store",
        },
    )


@view_doc_bp.route("/<int:doc_id>", methods=["PATCH"])
@require_user
def set_pin(doc_id):
    data = json_body(required=True)
    if "pin" not in data:
        raise ValidationError("pin is required (null clears it)", details={"pin": "required"})
    doc = share_link.get_document(doc_id)
    if not is_authorized_to_edit(current_user(), doc.project):
        raise PermissionDenied("You do not have edit access to this document")
    return jsonify(share_link.set_pin(doc_id, data["pin"])), 200
