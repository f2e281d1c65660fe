"""
Account helper endpoints used by the signup and password-reset forms.

Endpoints:
    GET  /api/auth/check-name?fullName=   - {exists}
    GET  /api/auth/check-email?email=     - {exists}
    POST /api/auth/forgot-password        - issue and email a 4-digit OTP
"""

from flask import Blueprint, jsonify, request

from tracker.blueprints import json_body
from tracker.services import user_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/check-name", methods=["GET"])
def check_name():
    exists = user_service.name_exists(request.args.get("fullName"))
    return jsonify({"exists": bool(exists)}), 200


@auth_bp.route("/check-email", methods=["GET"])
def check_email():
    exists = user_service.email_exists(request.args.get("email"))
    return jsonify({"exists": bool(exists)}), 200


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    data = json_body()
    user_service.start_password_reset(data.get("email"))
    return jsonify({"message": "Verification code sent to your email"}), 200
