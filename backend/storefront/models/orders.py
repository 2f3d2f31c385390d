from __future__ import annotations

from ..extensions import db
from ..domain import OrderMetadata, parse_order_metadata
from storefront.time_utils import to_utc_z, utcnow


class Order(db.Model):
    """
    Paid checkout recorded from the payment processor webhook.

    IDEMPOTENCY: id is the processor checkout session id and
    payment_intent_id is unique, so a redelivered webhook cannot insert a
    second row.

    Deposit orders carry order_type='pre-sale-deposit', a single OrderItem
    for the deposit sentinel product, and DepositOrderMetadata.
    paid -> applied and paid -> refunded are terminal for deposits.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("payment_intent_id", name="uq_orders_payment_intent"),
        db.Index("ix_orders_email_type_status", "customer_email", "order_type", "status"),
        db.Index("ix_orders_created", "created_at"),
    )

    id = db.Column(db.String(255), primary_key=True)
    payment_intent_id = db.Column(db.String(255), nullable=True)

    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=True)

    order_type = db.Column(db.String(32), nullable=False, default="standard")
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    # Amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="usd")

    # Shipping snapshot
    shipping_name = db.Column(db.String(255), nullable=True)
    shipping_address_line1 = db.Column(db.String(255), nullable=True)
    shipping_address_line2 = db.Column(db.String(255), nullable=True)
    shipping_city = db.Column(db.String(128), nullable=True)
    shipping_state = db.Column(db.String(64), nullable=True)
    shipping_postal_code = db.Column(db.String(32), nullable=True)
    shipping_country = db.Column(db.String(8), nullable=True)

    tracking_number = db.Column(db.String(128), nullable=True)
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    applied_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    order_metadata = db.Column("metadata", db.JSON, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    # Python-side default keeps sub-second ordering for "first deposit" lookups
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id!r} type={self.order_type!r} status={self.status!r}>"

    @property
    def metadata_value(self) -> OrderMetadata | None:
        return parse_order_metadata(self.order_metadata)

    def to_dict(self, include_items: bool = False) -> dict:
        out = {
            "id": self.id,
            "payment_intent_id": self.payment_intent_id,
            "customer_email": self.customer_email,
            "customer_name": self.customer_name,
            "order_type": self.order_type,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "shipping_cents": self.shipping_cents,
            "total_cents": self.total_cents,
            "currency": self.currency,
            "shipping_address": {
                "name": self.shipping_name,
                "line1": self.shipping_address_line1,
                "line2": self.shipping_address_line2,
                "city": self.shipping_city,
                "state": self.shipping_state,
                "postal_code": self.shipping_postal_code,
                "country": self.shipping_country,
            },
            "tracking_number": self.tracking_number,
            "shipped_at": to_utc_z(self.shipped_at),
            "applied_at": to_utc_z(self.applied_at),
            "metadata": self.order_metadata,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            out["items"] = [item.to_dict() for item in self.items]
        return out


class OrderItem(db.Model):
    """
    Purchase-time snapshot of a line.

    product_id / variant_id are plain references (no foreign keys) so
    catalog edits or deletions never rewrite historical orders, and so the
    deposit sentinel id can be stored.
    """
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(255), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.String(64), nullable=False, index=True)
    variant_id = db.Column(db.String(64), nullable=True, index=True)
    processor_price_id = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    variant_name = db.Column(db.String(255), nullable=True)

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "product_name": self.product_name,
            "variant_name": self.variant_name,
        }
