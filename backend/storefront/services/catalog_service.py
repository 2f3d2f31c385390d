# Overview: Catalog consistency checks over product and variant counters.

from __future__ import annotations

from sqlalchemy import func

from ..models import Product, Variant
"""
Counter invariants (authoritative)

For every product with has_variants = true:
- product.max_quantity == SUM(variant.max_quantity) over non-null variant
  values (NULL when every variant is unlimited or there are no variants).
- product.sold_quantity == SUM(variant.sold_quantity).

Order creation increments both levels in one transaction, so a mismatch
means the catalog sync wrote inconsistent rows.
"""


def find_counter_mismatches(session) -> list[dict]:
    """Return one entry per has_variants product whose counters disagree with its variants."""
    totals = (
        session.query(
            Variant.product_id.label("product_id"),
            func.sum(Variant.max_quantity).label("max_quantity"),
            func.coalesce(func.sum(Variant.sold_quantity), 0).label("sold_quantity"),
        )
        .group_by(Variant.product_id)
        .subquery()
    )

    rows = (
        session.query(Product, totals.c.max_quantity, totals.c.sold_quantity)
        .outerjoin(totals, totals.c.product_id == Product.id)
        .filter(Product.has_variants.is_(True))
        .order_by(Product.id)
        .all()
    )

    mismatches = []
    for product, variant_max, variant_sold in rows:
        variant_max = int(variant_max) if variant_max is not None else None
        variant_sold = int(variant_sold or 0)
        if product.max_quantity == variant_max and product.sold_quantity == variant_sold:
            continue
        mismatches.append({
            "product_id": product.id,
            "max_quantity": product.max_quantity,
            "variant_max_quantity": variant_max,
            "sold_quantity": product.sold_quantity,
            "variant_sold_quantity": variant_sold,
        })
    return mismatches
