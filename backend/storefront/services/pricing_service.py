# Overview: Display price and deposit amount by sell status; deposit-aware product pricing.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..domain import (
    SELL_STATUS_PRE_ORDER,
    SELL_STATUS_PRE_SALE,
    ProductRecord,
    VariantRecord,
)
from .order_service import user_has_paid_deposit
"""
Pricing rules (authoritative)

- pre-sale: no display price; only a deposit is offered.
- pre-order: wholesale (+ variant wholesale modifier) for customers holding
  a paid deposit, falling back to base when no wholesale price exists;
  base (+ variant modifier) for everyone else.
- for-sale, sold-out, internal: base (+ variant modifier).
- Deposit amount exists only in pre-sale and only when a deposit price is
  configured.

sell_status transitions are administrative; nothing here writes them.
"""

PRICE_TYPE_BASE = "base"
PRICE_TYPE_WHOLESALE = "wholesale"


class PricingError(Exception):
    """Raised for pricing inputs that cannot be priced."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(PricingError):
    pass


@dataclass(frozen=True)
class DisplayPrice:
    price_cents: int
    type: str

    def to_dict(self) -> dict:
        return {"price_cents": self.price_cents, "type": self.type}


def _check_variant(product: ProductRecord, variant: Optional[VariantRecord]) -> None:
    if variant is not None and variant.product_id != product.id:
        raise PricingError(
            "Variant does not belong to product",
            details={"product_id": product.id, "variant_id": variant.id},
        )


def get_display_price(
    product: ProductRecord,
    variant: Optional[VariantRecord] = None,
    has_paid_deposit: bool = False,
) -> Optional[DisplayPrice]:
    _check_variant(product, variant)

    if product.sell_status == SELL_STATUS_PRE_SALE:
        return None

    if (
        product.sell_status == SELL_STATUS_PRE_ORDER
        and has_paid_deposit
        and product.wholesale_price_cents is not None
    ):
        modifier = variant.wholesale_price_modifier_cents if variant else 0
        return DisplayPrice(product.wholesale_price_cents + modifier, PRICE_TYPE_WHOLESALE)

    modifier = variant.price_modifier_cents if variant else 0
    return DisplayPrice(product.base_price_cents + modifier, PRICE_TYPE_BASE)


def get_deposit_amount(product: ProductRecord, variant: Optional[VariantRecord] = None) -> Optional[int]:
    _check_variant(product, variant)

    if product.sell_status != SELL_STATUS_PRE_SALE:
        return None
    if product.presale_deposit_price_cents is None:
        return None
    modifier = variant.presale_deposit_modifier_cents if variant else 0
    return product.presale_deposit_price_cents + modifier


def get_product_pricing(
    session,
    catalog,
    product_id: str,
    variant_id: str | None = None,
    email: str | None = None,
) -> dict:
    """
    Pricing view for one product, as shown on a product page.

    The deposit predicate is re-read from the ledger on every call when an
    email is supplied.
    """
    product = catalog.get_product(product_id)
    if product is None:
        raise ProductNotFoundError("Product not found", details={"product_id": product_id})

    variant = None
    if variant_id:
        variant = catalog.get_variant(variant_id)
        if variant is None:
            raise ProductNotFoundError("Variant not found", details={"variant_id": variant_id})

    has_deposit = bool(email) and user_has_paid_deposit(session, email, product_id)
    display = get_display_price(product, variant, has_deposit)

    return {
        "product_id": product.id,
        "variant_id": variant.id if variant else None,
        "sell_status": product.sell_status,
        "has_paid_deposit": has_deposit,
        "display_price": display.to_dict() if display else None,
        "deposit_amount_cents": get_deposit_amount(product, variant),
    }
