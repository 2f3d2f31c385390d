"""
Payment webhook handling.

WHY: The processor delivers events at least once. Every event maps onto a
ledger operation keyed by the checkout session id, so redelivery resolves
to DuplicateOrderError and is reported as already processed rather than
failed.

Checkout session metadata (written when the session was created):
- order_type: standard (absent), pre-sale-deposit, pre-order-with-deposit
- cart_items: JSON list of order lines (standard / pre-order orders)
- target_product_id, target_variant_id: deposit orders
- deposit_order_id: pre-order-with-deposit orders
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..domain import (
    ORDER_TYPE_DEPOSIT,
    ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT,
    ORDER_TYPE_STANDARD,
    ORDER_TYPES,
    CreateDepositOrderParams,
    CreateOrderParams,
    DepositOrderMetadata,
    FinalOrderMetadata,
    OrderLineInput,
    ShippingAddress,
)
from ..validation import ValidationError, coerce_int, optional_text
from .order_service import (
    DepositAlreadyFinalizedError,
    DepositNotFoundError,
    DuplicateOrderError,
    apply_deposit,
    create_deposit_order,
    create_order,
    get_order,
)


logger = logging.getLogger(__name__)

EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_PAYMENT_FAILED = "payment_intent.payment_failed"

OUTCOME_CREATED = "created"
OUTCOME_DUPLICATE = "duplicate"
OUTCOME_IGNORED = "ignored"


@dataclass(frozen=True)
class WebhookResult:
    outcome: str
    order_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"received": True, "outcome": self.outcome, "order_id": self.order_id}


def _amount(data: dict, key: str) -> int:
    value = data.get(key)
    return coerce_int(key, value) if value is not None else 0


def _mapping(obj: dict, key: str) -> dict:
    value = obj.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be an object")
    return value


def _shipping_address(obj: dict) -> Optional[ShippingAddress]:
    shipping = _mapping(obj, "shipping_details")
    if not shipping:
        return None
    address = _mapping(shipping, "address")
    return ShippingAddress(
        name=optional_text(shipping, "name"),
        line1=optional_text(address, "line1"),
        line2=optional_text(address, "line2"),
        city=optional_text(address, "city"),
        state=optional_text(address, "state"),
        postal_code=optional_text(address, "postal_code"),
        country=optional_text(address, "country"),
    )


def _cart_lines(metadata: dict) -> tuple[OrderLineInput, ...]:
    raw = metadata.get("cart_items")
    if not raw:
        raise ValidationError("No cart items in session metadata")
    try:
        lines = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError as exc:
        raise ValidationError("cart_items metadata is not valid JSON") from exc
    if not isinstance(lines, list):
        raise ValidationError("cart_items metadata must be a list")
    return tuple(OrderLineInput.from_mapping(line) for line in lines)


@dataclass(frozen=True)
class CheckoutSessionEvent:
    """The fields of a completed checkout session the ledger needs."""
    session_id: str
    payment_intent_id: Optional[str]
    customer_email: str
    customer_name: Optional[str]
    order_type: str
    subtotal_cents: int
    tax_cents: int
    shipping_cents: int
    total_cents: int
    currency: str
    metadata: dict
    shipping_address: Optional[ShippingAddress] = None

    @classmethod
    def from_session_object(cls, obj: Any) -> "CheckoutSessionEvent":
        if not isinstance(obj, dict) or not obj.get("id"):
            raise ValidationError("checkout session object is missing an id")

        metadata = _mapping(obj, "metadata")
        order_type = metadata.get("order_type") or ORDER_TYPE_STANDARD
        if order_type not in ORDER_TYPES:
            raise ValidationError(f"Unknown order_type: {order_type}")

        customer = _mapping(obj, "customer_details")
        totals = _mapping(obj, "total_details")
        return cls(
            session_id=obj["id"],
            payment_intent_id=obj.get("payment_intent"),
            customer_email=obj.get("customer_email") or customer.get("email") or "",
            customer_name=customer.get("name"),
            order_type=order_type,
            subtotal_cents=_amount(obj, "amount_subtotal"),
            tax_cents=_amount(totals, "amount_tax"),
            shipping_cents=_amount(totals, "amount_shipping"),
            total_cents=_amount(obj, "amount_total"),
            currency=(obj.get("currency") or "usd").lower(),
            metadata=metadata,
            shipping_address=_shipping_address(obj),
        )

    def deposit_params(self) -> CreateDepositOrderParams:
        target = optional_text(self.metadata, "target_product_id")
        if not target:
            raise ValidationError("Missing target_product_id in deposit session metadata")
        return CreateDepositOrderParams(
            session_id=self.session_id,
            payment_intent_id=self.payment_intent_id,
            customer_email=self.customer_email,
            customer_name=self.customer_name,
            total_cents=self.total_cents,
            subtotal_cents=self.subtotal_cents,
            tax_cents=self.tax_cents,
            currency=self.currency,
            metadata=DepositOrderMetadata(
                target_product_id=target,
                target_variant_id=optional_text(self.metadata, "target_variant_id"),
            ),
        )

    def order_params(self, final_metadata: FinalOrderMetadata | None = None) -> CreateOrderParams:
        return CreateOrderParams(
            session_id=self.session_id,
            payment_intent_id=self.payment_intent_id,
            customer_email=self.customer_email,
            customer_name=self.customer_name,
            subtotal_cents=self.subtotal_cents,
            tax_cents=self.tax_cents,
            shipping_cents=self.shipping_cents,
            total_cents=self.total_cents,
            currency=self.currency,
            items=_cart_lines(self.metadata),
            shipping_address=self.shipping_address,
            metadata=final_metadata,
        )


def _record(create, session, params) -> WebhookResult:
    try:
        order = create(session, params)
    except DuplicateOrderError:
        logger.info("Checkout session %s already processed", params.session_id)
        return WebhookResult(OUTCOME_DUPLICATE, params.session_id)
    return WebhookResult(OUTCOME_CREATED, order.id)


def handle_checkout_completed(session, checkout: CheckoutSessionEvent) -> WebhookResult:
    if checkout.order_type == ORDER_TYPE_DEPOSIT:
        return _record(create_deposit_order, session, checkout.deposit_params())

    if checkout.order_type != ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT:
        return _record(create_order, session, checkout.order_params())

    deposit_order_id = optional_text(checkout.metadata, "deposit_order_id")
    if not deposit_order_id:
        raise ValidationError("Missing deposit_order_id in pre-order session metadata")

    deposit = get_order(session, deposit_order_id)
    final_metadata = FinalOrderMetadata(
        deposit_order_id=deposit_order_id,
        deposit_applied_cents=deposit.total_cents if deposit else 0,
    )
    result = _record(create_order, session, checkout.order_params(final_metadata))

    # The final order is recorded either way; a deposit problem is
    # reconciled by hand rather than failing the delivery.
    try:
        apply_deposit(session, deposit_order_id, final_order_id=checkout.session_id)
    except (DepositNotFoundError, DepositAlreadyFinalizedError) as exc:
        logger.error("Could not apply deposit %s to order %s: %s", deposit_order_id, checkout.session_id, exc)
    return result


def handle_event(session, event: Any) -> WebhookResult:
    """Dispatch a verified webhook event."""
    if not isinstance(event, dict):
        raise ValidationError("event must be an object")

    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object")

    if event_type == EVENT_CHECKOUT_COMPLETED:
        return handle_checkout_completed(session, CheckoutSessionEvent.from_session_object(obj))

    if event_type == EVENT_PAYMENT_FAILED:
        intent_id = obj.get("id") if isinstance(obj, dict) else None
        logger.warning("Payment failed for payment intent %s", intent_id)
        return WebhookResult(OUTCOME_IGNORED)

    logger.info("Unhandled webhook event type: %s", event_type)
    return WebhookResult(OUTCOME_IGNORED)
