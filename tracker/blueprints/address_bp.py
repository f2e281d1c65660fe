"""Address reference data: GET /api/address/provinces."""

from flask import Blueprint, jsonify

from tracker.models.reference import Province

address_bp = Blueprint("address", __name__, url_prefix="/api/address")


@address_bp.route("/provinces", methods=["GET"])
def list_provinces():
    provinces = Province.query.order_by(Province.name).all()
    return jsonify([p.to_dict() for p in provinces]), 200
