# Overview: Flask API routes for cart validation; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..domain import CartLineItem
from ..extensions import db
from ..services.cart_validator import validate_cart
from ..services.catalog_repository import SqlCatalogReader
from ..validation import ValidationError


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.post("/validate")
def validate_cart_route():
    """
    Validate cart contents before checkout.

    Body: {"items": [{"product_id", "variant_id"?, "quantity", "voltage"?, ...}]}

    Always 200 for a well-formed cart; rule violations are returned in
    errors / warnings with valid=false when anything blocks checkout.
    """
    try:
        data = request.get_json(silent=True) or {}
        raw_items = data.get("items")
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            return jsonify({"error": "items must be a list"}), 400

        items = [CartLineItem.from_mapping(raw) for raw in raw_items]
        result = validate_cart(items, SqlCatalogReader(db.session))
        return jsonify(result.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to validate cart")
        return jsonify({"error": "Internal server error"}), 500
