"""
Snake-game leaderboard.

Endpoints:
    GET  /api/snake-scores   - top 10 approved users by best score
    POST /api/snake-scores   - {score}; requires the x-user-id header
"""

from flask import Blueprint, g, jsonify

from tracker.blueprints import json_body
from tracker.middleware.session_context import require_user
from tracker.services import leaderboard

snake_score_bp = Blueprint("snake_scores", __name__, url_prefix="/api/snake-scores")


@snake_score_bp.route("", methods=["GET"])
def get_leaderboard():
    return jsonify(leaderboard.leaderboard()), 200


@snake_score_bp.route("", methods=["POST"])
@require_user
def post_score():
    leaderboard.record_score(g.current_user, json_body().get("score"))
    return jsonify({"ok": True}), 200
