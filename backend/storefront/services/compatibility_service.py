# Overview: Compatibility rules between products selected together in one cart.

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..config import VOLTAGE_CLASSES
from ..domain import (
    DEPENDENCY_INCOMPATIBLE,
    DEPENDENCY_REQUIRES,
    DEPENDENCY_SUGGESTS,
    ISSUE_INCOMPATIBLE,
    ISSUE_MISSING_COMPONENT,
    ISSUE_SUGGESTED_PRODUCT,
    ISSUE_VOLTAGE_MISMATCH,
    CartLineItem,
    CartValidationResult,
    DependencyEdge,
    Issue,
)
from ..messages import render
"""
Compatibility rules (authoritative)

Order of evaluation:
1. Voltage partition over the whole cart.
2. incompatible edges (blocking).
3. requires edges (warning, not blocking).
4. suggests edges (warning).

- Voltage tags are compared as opaque strings; any two distinct non-null
  tags in one cart produce exactly one voltage_mismatch error.
- voltage_match edges need no separate pass: two endpoints with different
  tags already trip the cart-wide partition check.
- One issue per dependency edge regardless of line count or quantity.
"""


def _voltage_sort_key(tag: str) -> tuple[int, str]:
    if tag in VOLTAGE_CLASSES:
        return (VOLTAGE_CLASSES.index(tag), tag)
    return (len(VOLTAGE_CLASSES), tag)


def check_voltage_partition(items: Sequence[CartLineItem]) -> Optional[Issue]:
    """Return a voltage_mismatch error when the cart spans two or more voltage classes."""
    voltages = {item.voltage for item in items if item.voltage is not None}
    if len(voltages) < 2:
        return None

    ordered = sorted(voltages, key=_voltage_sort_key)
    return Issue(
        type=ISSUE_VOLTAGE_MISMATCH,
        message=render("voltage_mismatch", voltages=" and ".join(ordered)),
    )


def _unique_edges(edges: Iterable[DependencyEdge], dependency_type: str, cart_ids: set[str]) -> list[DependencyEdge]:
    seen: set[tuple[str, str, str]] = set()
    out = []
    for edge in edges:
        if edge.dependency_type != dependency_type or edge.product_id not in cart_ids:
            continue
        if edge.key in seen:
            continue
        seen.add(edge.key)
        out.append(edge)
    return out


def _incompatibility_errors(edges: Iterable[DependencyEdge], cart_ids: set[str]) -> list[Issue]:
    errors = []
    seen_pairs: set[frozenset[str]] = set()
    for edge in _unique_edges(edges, DEPENDENCY_INCOMPATIBLE, cart_ids):
        if edge.depends_on_product_id not in cart_ids:
            continue
        # A->B and B->A describe the same conflict
        pair = frozenset((edge.product_id, edge.depends_on_product_id))
        if pair in seen_pairs:
            continue
        seen_pairs.add(pair)
        errors.append(Issue(
            type=ISSUE_INCOMPATIBLE,
            message=edge.message or render(
                "incompatible",
                product_id=edge.product_id,
                other_product_id=edge.depends_on_product_id,
            ),
            product_id=edge.product_id,
        ))
    return errors


def _missing_dependency_warnings(
    edges: Iterable[DependencyEdge],
    cart_ids: set[str],
    dependency_type: str,
    issue_type: str,
    template: str,
) -> list[Issue]:
    warnings = []
    for edge in _unique_edges(edges, dependency_type, cart_ids):
        if edge.depends_on_product_id in cart_ids:
            continue
        warnings.append(Issue(
            type=issue_type,
            message=edge.message or render(template, other_product_id=edge.depends_on_product_id),
            product_id=edge.product_id,
            suggested_product_id=edge.depends_on_product_id,
        ))
    return warnings


def check_compatibility(items: Sequence[CartLineItem], edges: Iterable[DependencyEdge]) -> CartValidationResult:
    """
    Evaluate cart lines against the voltage partition and dependency edges.

    Edges whose source product is not in the cart are ignored, so callers
    may pass a superset.
    """
    result = CartValidationResult()
    if not items:
        return result

    edges = list(edges)
    cart_ids = {item.product_id for item in items}

    result.add(check_voltage_partition(items))

    for issue in _incompatibility_errors(edges, cart_ids):
        result.add(issue)

    for issue in _missing_dependency_warnings(
        edges, cart_ids, DEPENDENCY_REQUIRES, ISSUE_MISSING_COMPONENT, "missing_component"
    ):
        result.add(issue)

    for issue in _missing_dependency_warnings(
        edges, cart_ids, DEPENDENCY_SUGGESTS, ISSUE_SUGGESTED_PRODUCT, "suggested_product"
    ):
        result.add(issue)

    return result
