# Overview: Payment processor client (checkout sessions, refunds) and webhook signature verification.

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx


logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Payment-Signature"


class PaymentGatewayError(Exception):
    """Raised when the payment processor rejects or cannot serve a request."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class WebhookSignatureError(Exception):
    """Webhook payload failed signature or timestamp verification."""


@dataclass(frozen=True)
class Refund:
    id: str
    amount_cents: int
    status: str


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


def form_fields(value: Any, prefix: str = "") -> dict[str, str]:
    """
    Flatten nested dicts/lists into bracketed form keys.

    {"line_items": [{"price": "p_1"}]} -> {"line_items[0][price]": "p_1"}
    None values are dropped.
    """
    out: dict[str, str] = {}
    if isinstance(value, dict):
        for key, item in value.items():
            out.update(form_fields(item, f"{prefix}[{key}]" if prefix else str(key)))
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            out.update(form_fields(item, f"{prefix}[{index}]"))
    elif isinstance(value, bool):
        out[prefix] = "true" if value else "false"
    elif value is not None:
        out[prefix] = str(value)
    return out


class PaymentGateway:
    """
    Thin synchronous client for the processor's REST API.

    The server creates hosted checkout sessions and issues refunds; payment
    results arrive through the signed webhook.
    """

    def __init__(self, api_base: str, api_key: str, timeout: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.api_base = api_base
        self._client = httpx.Client(
            base_url=api_base,
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    @classmethod
    def from_config(cls, config) -> "PaymentGateway":
        return cls(
            api_base=config["PAYMENTS_API_BASE"],
            api_key=config["PAYMENTS_API_KEY"],
            timeout=config["PAYMENTS_TIMEOUT_SECONDS"],
        )

    def close(self) -> None:
        self._client.close()

    def _post(self, path: str, data: dict, *, idempotency_key: str | None, action: str, details: dict) -> dict:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}

        try:
            response = self._client.post(path, data=data, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("%s request failed (%s): %s", action, details, exc)
            raise PaymentGatewayError("Payment processor unreachable", details=details) from exc

        if response.status_code >= 400:
            try:
                message = response.json().get("error", {}).get("message")
            except ValueError:
                message = None
            logger.error("%s rejected (%s, %s): %s", action, details, response.status_code, message or response.text)
            raise PaymentGatewayError(
                message or f"{action} rejected by payment processor",
                details={**details, "status_code": response.status_code},
            )

        return response.json()

    def create_checkout_session(
        self,
        line_items: list[dict],
        *,
        customer_email: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        expires_at: int | None = None,
        allowed_countries: tuple[str, ...] = (),
        idempotency_key: str | None = None,
    ) -> CheckoutSession:
        """
        Create a hosted payment-mode checkout session.

        line_items entries are either {"price": <processor price id>, "quantity": n}
        or {"price_data": {...}, "quantity": n} for ad-hoc amounts.
        """
        payload: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card", "link"],
            "line_items": line_items,
            "customer_email": customer_email,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "expires_at": expires_at,
        }
        if allowed_countries:
            payload["shipping_address_collection"] = {"allowed_countries": list(allowed_countries)}
            payload["billing_address_collection"] = "required"

        body = self._post(
            "/v1/checkout/sessions",
            form_fields(payload),
            idempotency_key=idempotency_key,
            action="Checkout session",
            details={"order_type": metadata.get("order_type")},
        )
        return CheckoutSession(id=body["id"], url=body["url"])

    def create_refund(
        self,
        payment_intent_id: str,
        amount_cents: int,
        *,
        idempotency_key: str | None = None,
        reason: str | None = None,
    ) -> Refund:
        data = {"payment_intent": payment_intent_id, "amount": str(amount_cents)}
        if reason:
            data["metadata[reason]"] = reason

        body = self._post(
            "/v1/refunds",
            data,
            idempotency_key=idempotency_key,
            action="Refund",
            details={"payment_intent_id": payment_intent_id},
        )
        return Refund(
            id=body["id"],
            amount_cents=int(body.get("amount", amount_cents)),
            status=body.get("status", "pending"),
        )


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, header: str | None, secret: str, tolerance: int = 300, now: float | None = None) -> int:
    """
    Verify a `t=<unix>,v1=<hex>` signature header over the raw request body.

    Returns the signed timestamp. Raises WebhookSignatureError when the
    header is missing or malformed, no v1 signature matches, or the
    timestamp is outside the tolerance window.
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    if not header:
        raise WebhookSignatureError(f"Missing {SIGNATURE_HEADER} header")

    timestamp = None
    signatures = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise WebhookSignatureError("Invalid signature timestamp")
        elif key == "v1":
            signatures.append(value)

    if timestamp is None or not signatures:
        raise WebhookSignatureError("Malformed signature header")

    expected = compute_signature(payload, timestamp, secret)
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("Signature mismatch")

    current = time.time() if now is None else now
    if abs(current - timestamp) > tolerance:
        raise WebhookSignatureError("Signature timestamp outside tolerance")

    return timestamp
