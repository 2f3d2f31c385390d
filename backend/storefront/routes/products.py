# Overview: Flask API routes for product pricing; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services.catalog_repository import SqlCatalogReader
from ..services.pricing_service import PricingError, ProductNotFoundError, get_product_pricing
from ..validation import ValidationError, normalize_email


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/<product_id>/pricing")
def product_pricing_route(product_id: str):
    """
    Display price and deposit amount for a product.

    Query params:
    - variant_id: str (optional)
    - email: str (optional) - customer email; wholesale pricing applies in
      pre-order when this customer holds a paid deposit
    """
    try:
        variant_id = request.args.get("variant_id") or None
        email = request.args.get("email")
        if email:
            email = normalize_email(email)

        pricing = get_product_pricing(
            db.session,
            SqlCatalogReader(db.session),
            product_id,
            variant_id=variant_id,
            email=email or None,
        )
        return jsonify(pricing), 200

    except ProductNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except (PricingError, ValidationError) as e:
        details = getattr(e, "details", None)
        return jsonify({"error": str(e), "details": details}), 400
    except Exception:
        current_app.logger.exception("Failed to load product pricing")
        return jsonify({"error": "Internal server error"}), 500
