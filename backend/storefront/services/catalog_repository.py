# Overview: Catalog reads for cart validation and pricing; batched id-list queries.

from __future__ import annotations

from typing import Iterable, Optional

from ..domain import DependencyEdge, ProductRecord, VariantRecord
from ..models import Product, ProductDependency, Variant


class CatalogReader:
    """
    Read-only catalog access used by the cart validator and pricing.

    Every method takes the full id list for a cart so implementations
    answer with a single query each.
    """

    def fetch_products(self, product_ids: Iterable[str]) -> dict[str, ProductRecord]:
        raise NotImplementedError

    def fetch_variants(self, variant_ids: Iterable[str]) -> dict[str, VariantRecord]:
        raise NotImplementedError

    def fetch_dependencies(self, product_ids: Iterable[str]) -> list[DependencyEdge]:
        raise NotImplementedError

    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        return self.fetch_products([product_id]).get(product_id)

    def get_variant(self, variant_id: str) -> Optional[VariantRecord]:
        return self.fetch_variants([variant_id]).get(variant_id)


class SqlCatalogReader(CatalogReader):
    """CatalogReader over a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    def fetch_products(self, product_ids: Iterable[str]) -> dict[str, ProductRecord]:
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = self.session.query(Product).filter(Product.id.in_(ids)).all()
        return {row.id: row.to_record() for row in rows}

    def fetch_variants(self, variant_ids: Iterable[str]) -> dict[str, VariantRecord]:
        ids = sorted(set(variant_ids))
        if not ids:
            return {}
        rows = self.session.query(Variant).filter(Variant.id.in_(ids)).all()
        return {row.id: row.to_record() for row in rows}

    def fetch_dependencies(self, product_ids: Iterable[str]) -> list[DependencyEdge]:
        ids = sorted(set(product_ids))
        if not ids:
            return []
        rows = (
            self.session.query(ProductDependency)
            .filter(ProductDependency.product_id.in_(ids))
            .order_by(ProductDependency.id)
            .all()
        )
        return [row.to_edge() for row in rows]
