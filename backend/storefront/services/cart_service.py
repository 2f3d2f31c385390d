# Overview: Pure cart-line operations; a cart is an immutable tuple of CartLineItem.

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from ..domain import CartLineItem
from ..validation import ValidationError


Cart = tuple[CartLineItem, ...]


def get_cart_item_key(product_id: str, variant_id: Optional[str] = None) -> str:
    """Stable identity of a cart line: one line per product/variant pair."""
    return f"{product_id}-{variant_id or 'default'}"


def _line_key(line: CartLineItem) -> str:
    return get_cart_item_key(line.product_id, line.variant_id)


def find_cart_item(cart: Iterable[CartLineItem], product_id: str, variant_id: Optional[str] = None) -> Optional[CartLineItem]:
    key = get_cart_item_key(product_id, variant_id)
    for line in cart:
        if _line_key(line) == key:
            return line
    return None


def add_item(cart: Iterable[CartLineItem], item: CartLineItem) -> Cart:
    """Add a line, or increase the quantity of the existing line with the same key."""
    if item.quantity < 1:
        raise ValidationError("quantity must be >= 1")

    key = _line_key(item)
    out = []
    merged = False
    for line in cart:
        if not merged and _line_key(line) == key:
            line = replace(line, quantity=line.quantity + item.quantity)
            merged = True
        out.append(line)
    if not merged:
        out.append(item)
    return tuple(out)


def remove_item(cart: Iterable[CartLineItem], product_id: str, variant_id: Optional[str] = None) -> Cart:
    key = get_cart_item_key(product_id, variant_id)
    return tuple(line for line in cart if _line_key(line) != key)


def update_item_quantity(
    cart: Iterable[CartLineItem],
    product_id: str,
    quantity: int,
    variant_id: Optional[str] = None,
) -> Cart:
    """Set a line's quantity. Zero removes the line; negatives are rejected."""
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")
    if quantity == 0:
        return remove_item(cart, product_id, variant_id)

    key = get_cart_item_key(product_id, variant_id)
    return tuple(
        replace(line, quantity=quantity) if _line_key(line) == key else line
        for line in cart
    )


def clear_cart() -> Cart:
    return ()


def merge_lines(items: Iterable[CartLineItem]) -> Cart:
    """Collapse duplicate product/variant lines, keeping first-seen order."""
    cart: Cart = ()
    for item in items:
        cart = add_item(cart, item)
    return cart


def get_cart_item_count(cart: Iterable[CartLineItem]) -> int:
    return sum(line.quantity for line in cart)


def get_cart_subtotal_cents(cart: Iterable[CartLineItem]) -> int:
    return sum(line.unit_price_cents * line.quantity for line in cart)
