"""
User blueprint.

Endpoints:
    GET  /api/users                 - all users, newest first (?approved=true)
    POST /api/users/<id>/approve    - admin sets the approval flag
"""

import logging

from flask import Blueprint, g, jsonify, request

from tracker.blueprints import json_body
from tracker.middleware.session_context import require_user
from tracker.services import user_service
from tracker.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

user_bp = Blueprint("users", __name__, url_prefix="/api/users")


@user_bp.route("", methods=["GET"])
def list_users():
    approved_only = parse_bool(request.args.get("approved"))
    users = user_service.list_users(approved_only=approved_only)
    return jsonify([u.to_dict() for u in users]), 200


@user_bp.route("/<int:user_id>/approve", methods=["POST"])
@require_user
def approve_user(user_id):
    data = json_body()
    user = user_service.approve_user(g.current_user, user_id, parse_bool(data.get("approved"), True))
    return jsonify(user.to_dict()), 200
