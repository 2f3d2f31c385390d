"""
Storefront domain types.

Catalog rows, cart lines, validation issues and order metadata are passed
through the core as frozen dataclasses. Rows read from storage and
payloads received over HTTP or from the payment processor are converted
here, at the boundary, and validated once; core logic never receives
untyped dicts or ORM objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .config import DEPOSIT_PRODUCT_ID
from .validation import (
    ValidationError,
    normalize_email,
    optional_cents,
    optional_int,
    optional_text,
    require_bool,
    require_cents,
    require_choice,
    require_int,
    require_text,
)


SELL_STATUS_FOR_SALE = "for-sale"
SELL_STATUS_PRE_ORDER = "pre-order"
SELL_STATUS_PRE_SALE = "pre-sale"
SELL_STATUS_SOLD_OUT = "sold-out"
SELL_STATUS_INTERNAL = "internal"
SELL_STATUSES = (
    SELL_STATUS_FOR_SALE,
    SELL_STATUS_PRE_ORDER,
    SELL_STATUS_PRE_SALE,
    SELL_STATUS_SOLD_OUT,
    SELL_STATUS_INTERNAL,
)

DEPENDENCY_REQUIRES = "requires"
DEPENDENCY_SUGGESTS = "suggests"
DEPENDENCY_INCOMPATIBLE = "incompatible"
DEPENDENCY_VOLTAGE_MATCH = "voltage_match"
DEPENDENCY_TYPES = (
    DEPENDENCY_REQUIRES,
    DEPENDENCY_SUGGESTS,
    DEPENDENCY_INCOMPATIBLE,
    DEPENDENCY_VOLTAGE_MATCH,
)

ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_PAID = "paid"
ORDER_STATUS_APPLIED = "applied"
ORDER_STATUS_REFUNDED = "refunded"
ORDER_STATUS_FULFILLED = "fulfilled"
ORDER_STATUS_SHIPPED = "shipped"
ORDER_STATUS_DELIVERED = "delivered"
ORDER_STATUS_CANCELLED = "cancelled"
ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PAID,
    ORDER_STATUS_APPLIED,
    ORDER_STATUS_REFUNDED,
    ORDER_STATUS_FULFILLED,
    ORDER_STATUS_SHIPPED,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_CANCELLED,
)

ORDER_TYPE_STANDARD = "standard"
ORDER_TYPE_DEPOSIT = "pre-sale-deposit"
ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT = "pre-order-with-deposit"
ORDER_TYPES = (ORDER_TYPE_STANDARD, ORDER_TYPE_DEPOSIT, ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT)

# Issue kinds
ISSUE_UNAVAILABLE = "unavailable"
ISSUE_OUT_OF_STOCK = "out_of_stock"
ISSUE_LOW_STOCK = "low_stock"
ISSUE_VOLTAGE_MISMATCH = "voltage_mismatch"
ISSUE_INCOMPATIBLE = "incompatible"
ISSUE_MISSING_COMPONENT = "missing_component"
ISSUE_SUGGESTED_PRODUCT = "suggested_product"
BLOCKING_ISSUES = frozenset({
    ISSUE_UNAVAILABLE,
    ISSUE_OUT_OF_STOCK,
    ISSUE_VOLTAGE_MISMATCH,
    ISSUE_INCOMPATIBLE,
})


# =============================================================================
# CATALOG
# =============================================================================

@dataclass(frozen=True)
class ProductRecord:
    id: str
    name: str
    category: str
    base_price_cents: int
    sell_status: str
    dev_status: int
    wholesale_price_cents: Optional[int] = None
    presale_deposit_price_cents: Optional[int] = None
    cost_cents: Optional[int] = None
    max_quantity: Optional[int] = None
    sold_quantity: int = 0
    has_variants: bool = False
    is_live: bool = False

    @property
    def available(self) -> bool:
        return self.max_quantity is None or self.sold_quantity < self.max_quantity

    @classmethod
    def from_mapping(cls, data: dict) -> "ProductRecord":
        return cls(
            id=require_text(data, "id"),
            name=optional_text(data, "name") or require_text(data, "id"),
            category=optional_text(data, "category") or "",
            base_price_cents=require_cents(data, "base_price_cents"),
            sell_status=require_choice(data, "sell_status", SELL_STATUSES),
            dev_status=require_int(data, "dev_status", minimum=0),
            wholesale_price_cents=optional_cents(data, "wholesale_price_cents"),
            presale_deposit_price_cents=optional_cents(data, "presale_deposit_price_cents"),
            cost_cents=optional_cents(data, "cost_cents"),
            max_quantity=optional_int(data, "max_quantity", minimum=0),
            sold_quantity=optional_int(data, "sold_quantity", minimum=0, default=0),
            has_variants=require_bool(data, "has_variants"),
            is_live=require_bool(data, "is_live"),
        )


@dataclass(frozen=True)
class VariantRecord:
    id: str
    product_id: str
    variant_type: str
    variant_value: str
    price_modifier_cents: int = 0
    wholesale_price_modifier_cents: int = 0
    presale_deposit_modifier_cents: int = 0
    is_limited_edition: bool = False
    max_quantity: Optional[int] = None
    sold_quantity: int = 0

    @property
    def available(self) -> bool:
        return self.max_quantity is None or self.sold_quantity < self.max_quantity

    @classmethod
    def from_mapping(cls, data: dict) -> "VariantRecord":
        return cls(
            id=require_text(data, "id"),
            product_id=require_text(data, "product_id"),
            variant_type=require_text(data, "variant_type"),
            variant_value=require_text(data, "variant_value"),
            price_modifier_cents=optional_int(data, "price_modifier_cents", default=0),
            wholesale_price_modifier_cents=optional_int(data, "wholesale_price_modifier_cents", default=0),
            presale_deposit_modifier_cents=optional_int(data, "presale_deposit_modifier_cents", default=0),
            is_limited_edition=require_bool(data, "is_limited_edition"),
            max_quantity=optional_int(data, "max_quantity", minimum=0),
            sold_quantity=optional_int(data, "sold_quantity", minimum=0, default=0),
        )


@dataclass(frozen=True)
class DependencyEdge:
    product_id: str
    depends_on_product_id: str
    dependency_type: str
    message: Optional[str] = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.product_id, self.depends_on_product_id, self.dependency_type)

    @classmethod
    def from_mapping(cls, data: dict) -> "DependencyEdge":
        return cls(
            product_id=require_text(data, "product_id"),
            depends_on_product_id=require_text(data, "depends_on_product_id"),
            dependency_type=require_choice(data, "dependency_type", DEPENDENCY_TYPES),
            message=optional_text(data, "message"),
        )


# =============================================================================
# CART
# =============================================================================

@dataclass(frozen=True)
class CartLineItem:
    """
    A cart line as held by the client.

    voltage and is_limited_edition are denormalized from the variant at
    add-to-cart time so validation does not need to refetch them.
    """
    product_id: str
    quantity: int
    variant_id: Optional[str] = None
    name: str = ""
    unit_price_cents: int = 0
    voltage: Optional[str] = None
    is_limited_edition: bool = False
    variant_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.product_id

    @classmethod
    def from_mapping(cls, data: dict) -> "CartLineItem":
        if not isinstance(data, dict):
            raise ValidationError("cart item must be an object")
        return cls(
            product_id=require_text(data, "product_id"),
            quantity=require_int(data, "quantity", minimum=1),
            variant_id=optional_text(data, "variant_id"),
            name=optional_text(data, "name") or "",
            unit_price_cents=optional_cents(data, "unit_price_cents") or 0,
            voltage=optional_text(data, "voltage"),
            is_limited_edition=require_bool(data, "is_limited_edition"),
            variant_name=optional_text(data, "variant_name"),
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "voltage": self.voltage,
            "is_limited_edition": self.is_limited_edition,
            "variant_name": self.variant_name,
        }


@dataclass(frozen=True)
class Issue:
    type: str
    message: str
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    suggested_product_id: Optional[str] = None

    @property
    def blocking(self) -> bool:
        return self.type in BLOCKING_ISSUES

    def to_dict(self) -> dict:
        out = {"type": self.type, "message": self.message}
        if self.product_id is not None:
            out["product_id"] = self.product_id
        if self.variant_id is not None:
            out["variant_id"] = self.variant_id
        if self.suggested_product_id is not None:
            out["suggested_product_id"] = self.suggested_product_id
        return out


@dataclass
class CartValidationResult:
    errors: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add(self, issue: Optional[Issue]) -> None:
        if issue is None:
            return
        if issue.blocking:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
        }


# =============================================================================
# ORDER METADATA (tagged union on Order.metadata)
# =============================================================================

@dataclass(frozen=True)
class DepositOrderMetadata:
    target_product_id: str
    target_variant_id: Optional[str] = None
    # Set once the deposit is credited against a final order
    applied_order_id: Optional[str] = None
    order_type: str = ORDER_TYPE_DEPOSIT

    def to_json(self) -> dict:
        out = {"order_type": self.order_type, "target_product_id": self.target_product_id}
        if self.target_variant_id:
            out["target_variant_id"] = self.target_variant_id
        if self.applied_order_id:
            out["applied_order_id"] = self.applied_order_id
        return out


@dataclass(frozen=True)
class FinalOrderMetadata:
    deposit_order_id: str
    deposit_applied_cents: int
    order_type: str = ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT

    def to_json(self) -> dict:
        return {
            "order_type": self.order_type,
            "deposit_order_id": self.deposit_order_id,
            "deposit_applied": self.deposit_applied_cents,
        }


OrderMetadata = Union[DepositOrderMetadata, FinalOrderMetadata]


def parse_order_metadata(raw: Any) -> Optional[OrderMetadata]:
    """Decode Order.metadata; None for standard orders."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("order metadata must be an object")

    order_type = raw.get("order_type")
    if order_type == ORDER_TYPE_DEPOSIT:
        return DepositOrderMetadata(
            target_product_id=require_text(raw, "target_product_id"),
            target_variant_id=optional_text(raw, "target_variant_id"),
            applied_order_id=optional_text(raw, "applied_order_id"),
        )
    if order_type == ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT:
        return FinalOrderMetadata(
            deposit_order_id=require_text(raw, "deposit_order_id"),
            deposit_applied_cents=require_int(raw, "deposit_applied", minimum=0),
        )
    raise ValidationError(f"Unknown order_type in order metadata: {order_type!r}")


# =============================================================================
# LEDGER INPUTS
# =============================================================================

@dataclass(frozen=True)
class ShippingAddress:
    name: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


@dataclass(frozen=True)
class OrderLineInput:
    product_id: str
    quantity: int
    unit_price_cents: int
    product_name: str
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    processor_price_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: dict) -> "OrderLineInput":
        if not isinstance(data, dict):
            raise ValidationError("order line must be an object")
        product_id = require_text(data, "product_id")
        if product_id == DEPOSIT_PRODUCT_ID:
            raise ValidationError("Deposit sentinel cannot be purchased as a product")
        return cls(
            product_id=product_id,
            quantity=require_int(data, "quantity", minimum=1),
            unit_price_cents=require_cents(data, "unit_price_cents"),
            product_name=optional_text(data, "product_name") or product_id,
            variant_id=optional_text(data, "variant_id"),
            variant_name=optional_text(data, "variant_name"),
            processor_price_id=optional_text(data, "processor_price_id"),
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "product_name": self.product_name,
            "variant_name": self.variant_name,
            "processor_price_id": self.processor_price_id,
        }


@dataclass(frozen=True)
class CreateOrderParams:
    session_id: str
    payment_intent_id: Optional[str]
    customer_email: str
    subtotal_cents: int
    total_cents: int
    items: tuple[OrderLineInput, ...]
    tax_cents: int = 0
    shipping_cents: int = 0
    customer_name: Optional[str] = None
    currency: str = "usd"
    shipping_address: Optional[ShippingAddress] = None
    metadata: Optional[FinalOrderMetadata] = None

    def __post_init__(self):
        if not self.session_id:
            raise ValidationError("session_id is required")
        if not self.items:
            raise ValidationError("Order must have at least one item")
        object.__setattr__(self, "customer_email", normalize_email(self.customer_email))


@dataclass(frozen=True)
class CreateDepositOrderParams:
    session_id: str
    payment_intent_id: Optional[str]
    customer_email: str
    total_cents: int
    metadata: DepositOrderMetadata
    subtotal_cents: Optional[int] = None
    tax_cents: int = 0
    customer_name: Optional[str] = None
    currency: str = "usd"

    def __post_init__(self):
        if not self.session_id:
            raise ValidationError("session_id is required")
        object.__setattr__(self, "customer_email", normalize_email(self.customer_email))
