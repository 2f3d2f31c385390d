# Overview: Whole-cart validation; batches catalog reads then runs availability and compatibility.

from __future__ import annotations

import logging
from typing import Iterable

from ..domain import CartLineItem, CartValidationResult
from .availability_service import check_availability
from .cart_service import merge_lines
from .catalog_repository import CatalogReader
from .compatibility_service import check_compatibility


logger = logging.getLogger(__name__)


def validate_cart(items: Iterable[CartLineItem], catalog: CatalogReader) -> CartValidationResult:
    """
    Validate a cart before checkout.

    Catalog access is batched: at most one products read, one variants
    read (skipped when no line names a variant) and one dependencies read,
    independent of cart size.

    Lines naming the same product and variant are merged first, so stock
    is checked against the combined quantity.

    Issue order: availability issues in cart order, then the voltage
    partition, then dependency issues.
    """
    lines = merge_lines(items)
    result = CartValidationResult()
    if not lines:
        return result

    product_ids = sorted({line.product_id for line in lines})
    variant_ids = sorted({line.variant_id for line in lines if line.variant_id})

    products = catalog.fetch_products(product_ids)
    variants = catalog.fetch_variants(variant_ids) if variant_ids else {}
    edges = catalog.fetch_dependencies(product_ids)

    for line in lines:
        variant = variants.get(line.variant_id) if line.variant_id else None
        result.add(check_availability(line, products.get(line.product_id), variant))

    compatibility = check_compatibility(lines, edges)
    result.errors.extend(compatibility.errors)
    result.warnings.extend(compatibility.warnings)

    if not result.valid:
        logger.info(
            "Cart validation failed: %s",
            ", ".join(sorted({issue.type for issue in result.errors})),
        )
    return result
