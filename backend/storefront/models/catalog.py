from __future__ import annotations

from ..extensions import db
from ..domain import DependencyEdge, ProductRecord, VariantRecord
from storefront.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog product.

    Rows are written by the catalog sync process. The storefront core only
    reads them, except for sold_quantity which is incremented in place by
    order creation.

    INVENTORY:
    - max_quantity NULL means unlimited.
    - available = max_quantity IS NULL OR sold_quantity < max_quantity
    - For has_variants products, max_quantity / sold_quantity are the sums
      of the variant counters (see catalog_service.find_counter_mismatches).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("base_price_cents >= 0", name="ck_products_base_price"),
        db.CheckConstraint("sold_quantity >= 0", name="ck_products_sold_quantity"),
        db.Index("ix_products_sell_status", "sell_status"),
        db.Index("ix_products_category", "category"),
    )

    # Matches the payment processor product id
    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=False)

    # 0-5, only 5 is sellable
    dev_status = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_live = db.Column(db.Boolean, nullable=False, default=False)

    sell_status = db.Column(db.String(16), nullable=False, default="internal")
    sell_status_note = db.Column(db.String(255), nullable=True)

    # Authoritative storage in cents
    base_price_cents = db.Column(db.Integer, nullable=False)
    wholesale_price_cents = db.Column(db.Integer, nullable=True)
    presale_deposit_price_cents = db.Column(db.Integer, nullable=True)
    cost_cents = db.Column(db.Integer, nullable=True)

    has_variants = db.Column(db.Boolean, nullable=False, default=False)
    max_quantity = db.Column(db.Integer, nullable=True)
    sold_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    variants = db.relationship("Variant", back_populates="product", lazy=True)

    def __repr__(self) -> str:
        return f"<Product id={self.id!r} sell_status={self.sell_status!r} sold={self.sold_quantity}/{self.max_quantity}>"

    def to_record(self) -> ProductRecord:
        return ProductRecord.from_mapping({
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "base_price_cents": self.base_price_cents,
            "sell_status": self.sell_status,
            "dev_status": self.dev_status,
            "wholesale_price_cents": self.wholesale_price_cents,
            "presale_deposit_price_cents": self.presale_deposit_price_cents,
            "cost_cents": self.cost_cents,
            "max_quantity": self.max_quantity,
            "sold_quantity": self.sold_quantity,
            "has_variants": self.has_variants,
            "is_live": self.is_live,
        })

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "dev_status": self.dev_status,
            "is_live": self.is_live,
            "sell_status": self.sell_status,
            "sell_status_note": self.sell_status_note,
            "base_price_cents": self.base_price_cents,
            "wholesale_price_cents": self.wholesale_price_cents,
            "presale_deposit_price_cents": self.presale_deposit_price_cents,
            "has_variants": self.has_variants,
            "max_quantity": self.max_quantity,
            "sold_quantity": self.sold_quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Variant(db.Model):
    """Product variant (color, voltage, size). Same availability rule as Product."""
    __tablename__ = "variants"
    __table_args__ = (
        db.CheckConstraint("sold_quantity >= 0", name="ck_variants_sold_quantity"),
    )

    id = db.Column(db.String(64), primary_key=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    variant_type = db.Column(db.String(32), nullable=False)  # color, voltage, size
    variant_value = db.Column(db.String(64), nullable=False)  # BLACK, 5v, 24v ...

    # Differences from the product prices, in cents
    price_modifier_cents = db.Column(db.Integer, nullable=False, default=0)
    wholesale_price_modifier_cents = db.Column(db.Integer, nullable=False, default=0)
    presale_deposit_modifier_cents = db.Column(db.Integer, nullable=False, default=0)

    is_limited_edition = db.Column(db.Boolean, nullable=False, default=False)
    max_quantity = db.Column(db.Integer, nullable=True)
    sold_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="variants")

    def __repr__(self) -> str:
        return f"<Variant id={self.id!r} product_id={self.product_id!r} {self.variant_type}={self.variant_value!r}>"

    def to_record(self) -> VariantRecord:
        return VariantRecord.from_mapping({
            "id": self.id,
            "product_id": self.product_id,
            "variant_type": self.variant_type,
            "variant_value": self.variant_value,
            "price_modifier_cents": self.price_modifier_cents,
            "wholesale_price_modifier_cents": self.wholesale_price_modifier_cents,
            "presale_deposit_modifier_cents": self.presale_deposit_modifier_cents,
            "is_limited_edition": self.is_limited_edition,
            "max_quantity": self.max_quantity,
            "sold_quantity": self.sold_quantity,
        })

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_type": self.variant_type,
            "variant_value": self.variant_value,
            "price_modifier_cents": self.price_modifier_cents,
            "is_limited_edition": self.is_limited_edition,
            "max_quantity": self.max_quantity,
            "sold_quantity": self.sold_quantity,
        }


class ProductDependency(db.Model):
    """Compatibility rule between two products (requires/suggests/incompatible/voltage_match)."""
    __tablename__ = "product_dependencies"
    __table_args__ = (
        db.UniqueConstraint(
            "product_id", "depends_on_product_id", "dependency_type",
            name="uq_product_dependencies_edge",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    depends_on_product_id = db.Column(db.String(64), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    dependency_type = db.Column(db.String(16), nullable=False, index=True)
    message = db.Column(db.String(255), nullable=True)

    def to_edge(self) -> DependencyEdge:
        return DependencyEdge.from_mapping({
            "product_id": self.product_id,
            "depends_on_product_id": self.depends_on_product_id,
            "dependency_type": self.dependency_type,
            "message": self.message,
        })
