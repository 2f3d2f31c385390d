"""
Order / deposit ledger operations.

WHY: Orders are written exactly once per paid checkout, and sold_quantity
counters only ever move inside the same transaction that records the
order. Deposit orders are ordinary Order rows pointing at the deposit
sentinel product; their paid -> applied / paid -> refunded transitions are
guarded so concurrent webhook deliveries and refund requests move a
deposit at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..config import DEPOSIT_PRODUCT_ID
from ..domain import (
    ORDER_STATUS_APPLIED,
    ORDER_STATUS_PAID,
    ORDER_STATUS_REFUNDED,
    ORDER_STATUS_SHIPPED,
    ORDER_STATUSES,
    ORDER_TYPE_DEPOSIT,
    ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT,
    ORDER_TYPE_STANDARD,
    CreateDepositOrderParams,
    CreateOrderParams,
)
from ..models import Order, OrderItem, Product, Variant
from ..validation import ValidationError, normalize_email
from storefront.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)


class OrderError(Exception):
    """Raised for order ledger errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderNotFoundError(OrderError):
    pass


class DuplicateOrderError(OrderError):
    """The checkout session (or payment intent) was already recorded."""


class DepositNotFoundError(OrderError):
    pass


class DepositAlreadyFinalizedError(OrderError):
    """The deposit left 'paid' already (applied or refunded)."""
    def __init__(self, order_id: str, status: str):
        super().__init__(
            f"Deposit {order_id} is already {status}",
            details={"order_id": order_id, "status": status},
        )
        self.status = status


@dataclass(frozen=True)
class DepositRefund:
    order: Order
    refund_id: str
    amount_cents: int


# =============================================================================
# ORDER CREATION
# =============================================================================

def _insert_order(session, order: Order) -> None:
    """
    Add and flush the order row.

    The pre-checks give a clean DuplicateOrderError for the common
    redelivery case; the unique constraints still decide races between
    concurrent deliveries.
    """
    duplicate = DuplicateOrderError(
        "Order already recorded",
        details={"order_id": order.id, "payment_intent_id": order.payment_intent_id},
    )
    if session.get(Order, order.id) is not None:
        raise duplicate
    if order.payment_intent_id and session.query(Order.id).filter_by(
        payment_intent_id=order.payment_intent_id
    ).first():
        raise duplicate

    session.add(order)
    try:
        session.flush()
    except IntegrityError as exc:
        session.rollback()
        raise duplicate from exc


def _increment_sold_quantity(session, model, row_id: str, quantity: int) -> int:
    """Atomic in-place increment: SET sold_quantity = sold_quantity + :n."""
    result = session.execute(
        update(model)
        .where(model.id == row_id)
        .values(sold_quantity=model.sold_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def create_order(session, params: CreateOrderParams) -> Order:
    """
    Record a paid checkout with its lines and bump sold counters.

    Order row, item rows and counter increments commit together or not at
    all. Raises DuplicateOrderError when the session id or payment intent
    was already recorded; callers treat that as "already processed".
    """
    def _op():
        metadata = params.metadata
        address = params.shipping_address
        order = Order(
            id=params.session_id,
            payment_intent_id=params.payment_intent_id,
            customer_email=params.customer_email,
            customer_name=params.customer_name,
            order_type=ORDER_TYPE_PRE_ORDER_WITH_DEPOSIT if metadata else ORDER_TYPE_STANDARD,
            status=ORDER_STATUS_PAID,
            subtotal_cents=params.subtotal_cents,
            tax_cents=params.tax_cents,
            shipping_cents=params.shipping_cents,
            total_cents=params.total_cents,
            currency=params.currency,
            shipping_name=address.name if address else None,
            shipping_address_line1=address.line1 if address else None,
            shipping_address_line2=address.line2 if address else None,
            shipping_city=address.city if address else None,
            shipping_state=address.state if address else None,
            shipping_postal_code=address.postal_code if address else None,
            shipping_country=address.country if address else None,
            order_metadata=metadata.to_json() if metadata else None,
        )

        try:
            _insert_order(session, order)

            for line in params.items:
                order.items.append(OrderItem(
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    processor_price_id=line.processor_price_id,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    total_price_cents=line.unit_price_cents * line.quantity,
                    product_name=line.product_name,
                    variant_name=line.variant_name,
                ))

                if not _increment_sold_quantity(session, Product, line.product_id, line.quantity):
                    logger.warning("Order %s references unknown product %s", order.id, line.product_id)
                if line.variant_id and not _increment_sold_quantity(session, Variant, line.variant_id, line.quantity):
                    logger.warning("Order %s references unknown variant %s", order.id, line.variant_id)

            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info("Recorded %s order %s (%d lines)", order.order_type, order.id, len(params.items))
        return order

    return run_with_retry(session, _op)


def create_deposit_order(session, params: CreateDepositOrderParams) -> Order:
    """
    Record a paid pre-sale deposit.

    Modeled as an Order with a single line for the deposit sentinel
    product. No catalog counters move: a deposit reserves a price, not a
    unit.
    """
    def _op():
        metadata = params.metadata
        order = Order(
            id=params.session_id,
            payment_intent_id=params.payment_intent_id,
            customer_email=params.customer_email,
            customer_name=params.customer_name,
            order_type=ORDER_TYPE_DEPOSIT,
            status=ORDER_STATUS_PAID,
            subtotal_cents=params.subtotal_cents if params.subtotal_cents is not None else params.total_cents,
            tax_cents=params.tax_cents,
            shipping_cents=0,
            total_cents=params.total_cents,
            currency=params.currency,
            order_metadata=metadata.to_json(),
        )

        try:
            _insert_order(session, order)
            order.items.append(OrderItem(
                product_id=DEPOSIT_PRODUCT_ID,
                variant_id=None,
                quantity=1,
                unit_price_cents=params.total_cents,
                total_price_cents=params.total_cents,
                product_name=f"Pre-sale deposit: {metadata.target_product_id}",
                variant_name=metadata.target_variant_id,
            ))
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info("Recorded deposit order %s for %s", order.id, metadata.target_product_id)
        return order

    return run_with_retry(session, _op)


# =============================================================================
# LOOKUP / STATUS
# =============================================================================

def get_order(session, order_id: str) -> Optional[Order]:
    return session.get(Order, order_id)


def lookup_order(session, email: str, order_id: str) -> Optional[Order]:
    """Customer-facing lookup; the email must match the order."""
    email = normalize_email(email)
    order = session.get(Order, order_id)
    if order is None or order.customer_email != email:
        return None
    return order


def update_order_status(session, order_id: str, status: str, tracking_number: str | None = None) -> Order:
    """
    Set an order's status with timestamp bookkeeping.

    shipped: stamps shipped_at (first time only) and records tracking_number.
    applied: stamps applied_at.

    The transition itself is not checked against the prior status.
    """
    if status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(ORDER_STATUSES)}")

    def _op():
        order = session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError("Order not found", details={"order_id": order_id})

        now = utcnow()
        order.status = status
        if status == ORDER_STATUS_SHIPPED:
            if order.shipped_at is None:
                order.shipped_at = now
            if tracking_number:
                order.tracking_number = tracking_number
        elif status == ORDER_STATUS_APPLIED:
            order.applied_at = now

        session.commit()
        return order

    return run_with_retry(session, _op)


# =============================================================================
# DEPOSITS
# =============================================================================

def _deposit_orders_query(session, email: str, product_id: str):
    return (
        session.query(Order)
        .filter(
            Order.customer_email == normalize_email(email),
            Order.order_type == ORDER_TYPE_DEPOSIT,
            Order.items.any(OrderItem.product_id == DEPOSIT_PRODUCT_ID),
            Order.order_metadata["target_product_id"].as_string() == product_id,
        )
    )


def get_deposit_order(session, email: str, product_id: str) -> Optional[Order]:
    """
    Active (paid) deposit for email + product.

    Nothing prevents two paid deposits for the same pair; the earliest
    one wins.
    """
    return (
        _deposit_orders_query(session, email, product_id)
        .filter(Order.status == ORDER_STATUS_PAID)
        .order_by(Order.created_at, Order.id)
        .first()
    )


def user_has_paid_deposit(session, email: str, product_id: str) -> bool:
    return get_deposit_order(session, email, product_id) is not None


def get_deposit_status(session, email: str, product_id: str) -> dict:
    deposit = get_deposit_order(session, email, product_id)
    return {
        "has_deposit": deposit is not None,
        "deposit_amount_cents": deposit.total_cents if deposit else None,
        "order_id": deposit.id if deposit else None,
    }


def _finalize_deposit(session, deposit_order_id: str, new_status: str, values: dict) -> bool:
    """
    Move a deposit out of 'paid' with a single conditional UPDATE.

    Returns False when another writer already moved it. The caller owns
    the transaction.
    """
    now = utcnow()
    row_values = {
        Order.status: new_status,
        Order.updated_at: now,
        Order.version_id: Order.version_id + 1,
    }
    row_values.update(values)
    result = session.execute(
        update(Order)
        .where(
            Order.id == deposit_order_id,
            Order.order_type == ORDER_TYPE_DEPOSIT,
            Order.status == ORDER_STATUS_PAID,
        )
        .values(row_values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def apply_deposit(session, deposit_order_id: str, final_order_id: str | None = None) -> Order:
    """
    Credit a paid deposit against its final pre-order (paid -> applied).

    Re-applying to the same final order is a no-op so webhook redelivery is
    safe. Raises DepositNotFoundError or DepositAlreadyFinalizedError
    otherwise.
    """
    def _op():
        deposit = lock_for_update(session.query(Order).filter_by(id=deposit_order_id)).first()
        if deposit is None or deposit.order_type != ORDER_TYPE_DEPOSIT:
            session.rollback()
            raise DepositNotFoundError("Deposit order not found", details={"order_id": deposit_order_id})

        metadata = deposit.metadata_value
        if deposit.status == ORDER_STATUS_APPLIED and final_order_id and metadata.applied_order_id == final_order_id:
            session.rollback()
            return deposit
        if deposit.status != ORDER_STATUS_PAID:
            status = deposit.status
            session.rollback()
            raise DepositAlreadyFinalizedError(deposit_order_id, status)

        applied_meta = replace(metadata, applied_order_id=final_order_id)
        if not _finalize_deposit(session, deposit_order_id, ORDER_STATUS_APPLIED, {
            Order.applied_at: utcnow(),
            Order.order_metadata: applied_meta.to_json(),
        }):
            session.rollback()
            current = session.get(Order, deposit_order_id)
            raise DepositAlreadyFinalizedError(deposit_order_id, current.status if current else "missing")

        session.commit()
        logger.info("Applied deposit %s to order %s", deposit_order_id, final_order_id)
        return session.get(Order, deposit_order_id)

    return run_with_retry(session, _op)


def refund_deposit(session, gateway, email: str, product_id: str, reason: str | None = None) -> DepositRefund:
    """
    Refund the customer's active deposit for a product (paid -> refunded).

    The processor refund is requested with an idempotency key derived from
    the deposit order id, so a retried request never refunds twice.
    """
    email = normalize_email(email)
    deposit = get_deposit_order(session, email, product_id)
    if deposit is None:
        latest = (
            _deposit_orders_query(session, email, product_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .first()
        )
        if latest is None:
            raise DepositNotFoundError(
                "No deposit found for this product",
                details={"email": email, "product_id": product_id},
            )
        raise DepositAlreadyFinalizedError(latest.id, latest.status)

    deposit = lock_for_update(session.query(Order).filter_by(id=deposit.id)).first()
    if deposit.status != ORDER_STATUS_PAID:
        status = deposit.status
        session.rollback()
        raise DepositAlreadyFinalizedError(deposit.id, status)
    if not deposit.payment_intent_id:
        session.rollback()
        raise OrderError("Deposit has no payment to refund", details={"order_id": deposit.id})

    try:
        refund = gateway.create_refund(
            deposit.payment_intent_id,
            deposit.total_cents,
            idempotency_key=f"refund-{deposit.id}",
            reason=reason,
        )
    except Exception:
        session.rollback()
        raise

    deposit_id = deposit.id
    try:
        if not _finalize_deposit(session, deposit_id, ORDER_STATUS_REFUNDED, {}):
            session.rollback()
            current = session.get(Order, deposit_id)
            logger.error("Deposit %s refunded at processor but moved to %s concurrently", deposit_id, current.status)
            raise DepositAlreadyFinalizedError(deposit_id, current.status)
        session.commit()
    except DepositAlreadyFinalizedError:
        raise
    except Exception:
        session.rollback()
        logger.exception("Deposit %s refunded at processor but ledger update failed", deposit_id)
        raise

    logger.info("Refunded deposit %s (%s)", deposit_id, refund.id)
    return DepositRefund(order=session.get(Order, deposit_id), refund_id=refund.id, amount_cents=refund.amount_cents)
