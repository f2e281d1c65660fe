"""
DOST Project Tracker
Notification Blueprint.

Endpoints:
    GET    /api/notifications?userId=&unread=true   - newest first
    POST   /api/notifications                       - create
    PATCH  /api/notifications/<id>                  - read flag / inviteStatus
    DELETE /api/notifications/<id>
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from tracker.blueprints import json_body
from tracker.middleware.session_context import current_user
from tracker.services.notification import NotificationService
from tracker.utils.errors import E, api_error
from tracker.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notification_bp.route("", methods=["GET"])
def list_notifications():
    user_id = request.args.get("userId", type=int)
    if user_id is None and current_user() is not None:
        user_id = current_user().id
    if user_id is None:
        return api_error(E.VALIDATION_REQUIRED, "userId is required")

    items = NotificationService.list_for_user(
        user_id, unread_only=parse_bool(request.args.get("unread")),
    )
    return jsonify([n.to_dict() for n in items]), 200


@notification_bp.route("", methods=["POST"])
def create_notification():
    notif = NotificationService.create_from_payload(json_body(required=True))
    return jsonify(notif.to_dict()), 201


@notification_bp.route("/<int:notification_id>", methods=["PATCH"])
def update_notification(notification_id):
    notif = NotificationService.update(notification_id, json_body(required=True))
    return jsonify(notif.to_dict()), 200


@notification_bp.route("/<int:notification_id>", methods=["DELETE"])
def delete_notification(notification_id):
    NotificationService.delete(notification_id)
    return jsonify({"deleted": True, "id": notification_id}), 200
