# Overview: Per-line availability checks against live catalog counters.

from __future__ import annotations

from typing import Optional, Union

from ..config import LOW_STOCK_RATIO, RELEASED_DEV_STATUS
from ..domain import (
    ISSUE_LOW_STOCK,
    ISSUE_OUT_OF_STOCK,
    ISSUE_UNAVAILABLE,
    CartLineItem,
    Issue,
    ProductRecord,
    VariantRecord,
)
from ..messages import render
"""
Availability rules (authoritative)

- A product below the released development status, or missing from the
  catalog, is unavailable.
- A referenced variant that is missing or belongs to another product is
  unavailable.
- Stock is tracked wherever max_quantity is non-null: on the variant when
  the line names one, otherwise on the product itself.
- remaining = max_quantity - sold_quantity, clamped at zero.
- remaining == 0 or remaining < requested quantity: out_of_stock (blocking).
- remaining / max_quantity < LOW_STOCK_RATIO: low_stock (warning only).
- At most one issue per line; the first failing rule wins.
"""


def _stock_issue(
    item: CartLineItem,
    counted: Union[ProductRecord, VariantRecord],
    low_stock_ratio: float,
) -> Optional[Issue]:
    if counted.max_quantity is None:
        return None

    name = item.display_name
    remaining = max(counted.max_quantity - counted.sold_quantity, 0)

    if remaining == 0:
        return Issue(
            type=ISSUE_OUT_OF_STOCK,
            message=render("product_sold_out", product_name=name),
            product_id=item.product_id,
            variant_id=item.variant_id,
        )
    if remaining < item.quantity:
        return Issue(
            type=ISSUE_OUT_OF_STOCK,
            message=render("insufficient_stock", product_name=name, available_quantity=remaining),
            product_id=item.product_id,
            variant_id=item.variant_id,
        )
    if remaining / counted.max_quantity < low_stock_ratio:
        return Issue(
            type=ISSUE_LOW_STOCK,
            message=render("low_stock", product_name=name, available_quantity=remaining),
            product_id=item.product_id,
            variant_id=item.variant_id,
        )
    return None


def check_availability(
    item: CartLineItem,
    product: Optional[ProductRecord],
    variant: Optional[VariantRecord] = None,
    *,
    released_dev_status: int = RELEASED_DEV_STATUS,
    low_stock_ratio: float = LOW_STOCK_RATIO,
) -> Optional[Issue]:
    """
    Check one cart line. Returns None when the line is purchasable as-is.

    Pure function: product and variant are catalog snapshots fetched by
    the caller.
    """
    unavailable = Issue(
        type=ISSUE_UNAVAILABLE,
        message=render("product_unavailable", product_name=item.display_name),
        product_id=item.product_id,
        variant_id=item.variant_id,
    )

    if product is None or product.dev_status < released_dev_status:
        return unavailable

    if item.variant_id:
        if variant is None or variant.product_id != product.id:
            return unavailable
        return _stock_issue(item, variant, low_stock_ratio)

    return _stock_issue(item, product, low_stock_ratio)
