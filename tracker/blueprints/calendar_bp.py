"""
Calendar Blueprint.

Endpoints:
    GET  /api/calendar-events   - events newest first, with users and invite statuses
    POST /api/calendar-events   - book an event and invite staff
"""

from flask import Blueprint, jsonify

from tracker.blueprints import json_body
from tracker.middleware.session_context import current_user
from tracker.services import calendar_service

calendar_bp = Blueprint("calendar", __name__, url_prefix="/api/calendar-events")


@calendar_bp.route("", methods=["GET"])
def list_events():
    return jsonify(calendar_service.list_events()), 200


@calendar_bp.route("", methods=["POST"])
def create_event():
    event = calendar_service.create_event(json_body(required=True), actor=current_user())
    return jsonify(event), 201
