# Overview: Payment processor webhook endpoint; verifies signatures and records orders.

import json

from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services.payment_gateway import SIGNATURE_HEADER, WebhookSignatureError, verify_signature
from ..services.webhook_service import handle_event
from ..validation import ValidationError


webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/webhooks")


@webhooks_bp.post("/payments")
def payments_webhook_route():
    """
    Receive payment processor events.

    Duplicate deliveries answer 200 with outcome=duplicate so the processor
    stops retrying. Unexpected failures answer 500 so it retries later.
    """
    payload = request.get_data()

    try:
        verify_signature(
            payload,
            request.headers.get(SIGNATURE_HEADER),
            current_app.config["PAYMENTS_WEBHOOK_SECRET"],
            tolerance=current_app.config["PAYMENTS_WEBHOOK_TOLERANCE_SECONDS"],
        )
    except WebhookSignatureError as e:
        current_app.logger.warning("Webhook signature verification failed: %s", e)
        return jsonify({"error": "Invalid signature"}), 400

    try:
        event = json.loads(payload)
    except ValueError:
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        result = handle_event(db.session, event)
        return jsonify(result.to_dict()), 200

    except ValidationError as e:
        current_app.logger.error("Rejected webhook event %s: %s", event.get("id") if isinstance(event, dict) else None, e)
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to process webhook event")
        return jsonify({"error": "Webhook handler failed"}), 500
