# Overview: Builds hosted checkout sessions and the metadata the payment webhook reads back.

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from ..config import CHECKOUT_SESSION_TTL_SECONDS, SHIPPING_COUNTRIES
from ..domain import (
    ORDER_TYPE_DEPOSIT,
    ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT,
    ORDER_TYPE_STANDARD,
    SELL_STATUS_PRE_ORDER,
    OrderLineInput,
)
from ..validation import ValidationError, normalize_email
from .catalog_repository import CatalogReader
from .order_service import get_deposit_order
from .payment_gateway import CheckoutSession
from .pricing_service import ProductNotFoundError, get_deposit_amount
"""
Checkout session kinds

- standard: cart lines charged at their processor prices; metadata carries
  the cart as JSON under cart_items.
- pre-sale-deposit: one ad-hoc line of deposit amount x quantity; metadata
  names the target product (and variant).
- pre-order-with-deposit: a standard cart checkout for a customer holding a
  paid deposit on one of the cart's pre-order products; metadata adds the
  deposit order id so the webhook can apply it.

Metadata written here is the only input the webhook trusts for order_type,
so every session carries it explicitly.
"""

logger = logging.getLogger(__name__)

DEPOSIT_LINE_NAME = "Pre-Sale Deposit"
DEPOSIT_LINE_DESCRIPTION = "Refundable deposit to secure wholesale pricing"


class CheckoutError(Exception):
    """Raised when a checkout session cannot be offered for the request."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class CheckoutResult:
    session: CheckoutSession
    order_type: str
    deposit_order_id: Optional[str] = None

    def to_dict(self) -> dict:
        out = {"session_id": self.session.id, "url": self.session.url, "order_type": self.order_type}
        if self.deposit_order_id:
            out["deposit_order_id"] = self.deposit_order_id
        return out


def _success_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}"


def _expires_at(now: float | None = None) -> int:
    return int(time.time() if now is None else now) + CHECKOUT_SESSION_TTL_SECONDS


def _find_deposit(session, catalog: CatalogReader, email: str, lines: Iterable[OrderLineInput]) -> Optional[str]:
    """First pre-order product in cart order the customer holds a paid deposit on."""
    product_ids = []
    for line in lines:
        if line.product_id not in product_ids:
            product_ids.append(line.product_id)

    products = catalog.fetch_products(product_ids)
    for product_id in product_ids:
        product = products.get(product_id)
        if product is None:
            raise ProductNotFoundError("Product not found", details={"product_id": product_id})
        if product.sell_status != SELL_STATUS_PRE_ORDER:
            continue
        deposit = get_deposit_order(session, email, product_id)
        if deposit is not None:
            return deposit.id
    return None


def create_cart_checkout(
    session,
    gateway,
    catalog: CatalogReader,
    email: str,
    lines: Iterable[OrderLineInput],
    *,
    base_url: str,
    now: float | None = None,
) -> CheckoutResult:
    """
    Start checkout for a cart.

    Becomes a pre-order-with-deposit session when the customer has a paid
    deposit on a pre-order product in the cart; only one deposit is applied
    per checkout.
    """
    email = normalize_email(email)
    lines = tuple(lines)
    if not lines:
        raise ValidationError("Cart must have at least one item")
    for line in lines:
        if not line.processor_price_id:
            raise ValidationError(
                f"processor_price_id is required for {line.product_id}"
            )

    deposit_order_id = _find_deposit(session, catalog, email, lines)

    order_type = ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT if deposit_order_id else ORDER_TYPE_STANDARD
    metadata = {
        "order_type": order_type,
        "cart_items": json.dumps([line.to_dict() for line in lines]),
    }
    if deposit_order_id:
        metadata["deposit_order_id"] = deposit_order_id

    checkout = gateway.create_checkout_session(
        [{"price": line.processor_price_id, "quantity": line.quantity} for line in lines],
        customer_email=email,
        metadata=metadata,
        success_url=_success_url(base_url),
        cancel_url=f"{base_url.rstrip('/')}/checkout",
        expires_at=_expires_at(now),
        allowed_countries=SHIPPING_COUNTRIES,
    )
    logger.info("Created %s checkout session %s", order_type, checkout.id)
    return CheckoutResult(checkout, order_type, deposit_order_id)


def create_deposit_checkout(
    gateway,
    catalog: CatalogReader,
    email: str,
    product_id: str,
    variant_id: str | None = None,
    quantity: int = 1,
    *,
    base_url: str,
    now: float | None = None,
) -> CheckoutResult:
    """Start a pre-sale deposit checkout charging deposit amount x quantity."""
    email = normalize_email(email)
    if quantity < 1:
        raise ValidationError("quantity must be >= 1")

    product = catalog.get_product(product_id)
    if product is None:
        raise ProductNotFoundError("Product not found", details={"product_id": product_id})

    variant = None
    if variant_id:
        variant = catalog.get_variant(variant_id)
        if variant is None:
            raise ProductNotFoundError("Variant not found", details={"variant_id": variant_id})

    per_unit = get_deposit_amount(product, variant)
    if not per_unit:
        raise CheckoutError(
            "Product does not have a deposit price configured",
            details={"product_id": product_id, "sell_status": product.sell_status},
        )

    metadata = {"order_type": ORDER_TYPE_DEPOSIT, "target_product_id": product_id}
    if variant_id:
        metadata["target_variant_id"] = variant_id

    checkout = gateway.create_checkout_session(
        [{
            "price_data": {
                "currency": "usd",
                "product_data": {"name": DEPOSIT_LINE_NAME, "description": DEPOSIT_LINE_DESCRIPTION},
                "unit_amount": per_unit * quantity,
            },
            "quantity": 1,
        }],
        customer_email=email,
        metadata=metadata,
        success_url=_success_url(base_url),
        cancel_url=f"{base_url.rstrip('/')}/products/{product_id}",
        expires_at=_expires_at(now),
    )
    logger.info("Created deposit checkout session %s for %s", checkout.id, product_id)
    return CheckoutResult(checkout, ORDER_TYPE_DEPOSIT)
