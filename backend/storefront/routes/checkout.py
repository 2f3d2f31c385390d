# Overview: Flask API routes for starting hosted checkout; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..domain import OrderLineInput
from ..extensions import db
from ..services import checkout_service
from ..services.catalog_repository import SqlCatalogReader
from ..services.checkout_service import CheckoutError
from ..services.payment_gateway import PaymentGatewayError
from ..services.pricing_service import PricingError, ProductNotFoundError
from ..validation import ValidationError, optional_int, optional_text, require_email, require_text


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


@checkout_bp.post("/session")
def cart_checkout_route():
    """
    Start checkout for a cart.

    Body: {"email", "items": [{"product_id", "variant_id"?, "quantity",
           "unit_price_cents", "product_name", "variant_name"?, "processor_price_id"}]}

    Returns {"session_id", "url", "order_type", "deposit_order_id"?}.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = require_email(data)
        raw_items = data.get("items")
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError("Cart must have at least one item")
        lines = [OrderLineInput.from_mapping(item) for item in raw_items]

        result = checkout_service.create_cart_checkout(
            db.session,
            current_app.extensions["payment_gateway"],
            SqlCatalogReader(db.session),
            email,
            lines,
            base_url=current_app.config["STOREFRONT_BASE_URL"],
        )
        return jsonify(result.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except PaymentGatewayError as e:
        return jsonify({"error": str(e), "details": e.details}), 502
    except Exception:
        current_app.logger.exception("Failed to create checkout session")
        return jsonify({"error": "Internal server error"}), 500


@checkout_bp.post("/deposit")
def deposit_checkout_route():
    """
    Start a pre-sale deposit checkout.

    Body: {"email", "product_id", "variant_id"?, "quantity"? (default 1)}

    Returns:
    - 200: {"session_id", "url", "order_type"}
    - 400: invalid input or no deposit price configured
    - 404: unknown product or variant
    - 502: payment processor refused or was unreachable
    """
    try:
        data = request.get_json(silent=True) or {}
        email = require_email(data)
        product_id = require_text(data, "product_id")
        variant_id = optional_text(data, "variant_id")
        quantity = optional_int(data, "quantity", minimum=1, default=1)

        result = checkout_service.create_deposit_checkout(
            current_app.extensions["payment_gateway"],
            SqlCatalogReader(db.session),
            email,
            product_id,
            variant_id,
            quantity,
            base_url=current_app.config["STOREFRONT_BASE_URL"],
        )
        return jsonify(result.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except (CheckoutError, PricingError) as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PaymentGatewayError as e:
        return jsonify({"error": str(e), "details": e.details}), 502
    except Exception:
        current_app.logger.exception("Failed to create deposit checkout session")
        return jsonify({"error": "Internal server error"}), 500
