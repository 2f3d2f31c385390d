# Overview: Flask API routes for pre-sale deposits; parses input and returns JSON responses.

# backend/storefront/routes/deposits.py
"""
Deposit status and refund routes.

Customer identity for deposits is the email address alone; there is no
session or login.
"""

from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services import order_service
from ..services.order_service import (
    DepositAlreadyFinalizedError,
    DepositNotFoundError,
    OrderError,
)
from ..services.payment_gateway import PaymentGatewayError
from ..validation import ValidationError, optional_text, require_email, require_text


deposits_bp = Blueprint("deposits", __name__, url_prefix="/api/deposits")


@deposits_bp.post("/check")
def check_deposit_route():
    """Body: {"email", "product_id"}. Reports the customer's active deposit, if any."""
    try:
        data = request.get_json(silent=True) or {}
        email = require_email(data)
        product_id = require_text(data, "product_id")

        status = order_service.get_deposit_status(db.session, email, product_id)
        return jsonify(status), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to check deposit status")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.post("/refund")
def refund_deposit_route():
    """
    Refund the customer's active deposit for a product.

    Body: {"email", "product_id", "reason"?}

    Returns:
    - 200: refunded
    - 404: no deposit for this email/product
    - 409: deposit already applied or refunded
    - 502: payment processor refused or was unreachable
    """
    try:
        data = request.get_json(silent=True) or {}
        email = require_email(data)
        product_id = require_text(data, "product_id")
        reason = optional_text(data, "reason")

        gateway = current_app.extensions["payment_gateway"]
        refund = order_service.refund_deposit(db.session, gateway, email, product_id, reason=reason)

        return jsonify({
            "refunded": True,
            "order_id": refund.order.id,
            "refund_id": refund.refund_id,
            "amount_cents": refund.amount_cents,
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DepositNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except DepositAlreadyFinalizedError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except PaymentGatewayError as e:
        return jsonify({"error": str(e), "details": e.details}), 502
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to refund deposit")
        return jsonify({"error": "Internal server error"}), 500
