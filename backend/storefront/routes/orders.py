# Overview: Flask API routes for customer order lookup; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services import order_service
from ..validation import ValidationError, require_email, require_text


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/lookup")
def lookup_order_route():
    """Body: {"email", "order_id"}. 404 unless both match the same order."""
    try:
        data = request.get_json(silent=True) or {}
        email = require_email(data)
        order_id = require_text(data, "order_id")

        order = order_service.lookup_order(db.session, email, order_id)
        if order is None:
            return jsonify({"error": "Order not found"}), 404

        return jsonify({"order": order.to_dict(include_items=True)}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to look up order")
        return jsonify({"error": "Internal server error"}), 500
