# Overview: Pytest coverage for order creation, status bookkeeping and the deposit ledger.

"""
Ledger Tests

Order creation must be atomic and idempotent per checkout session; deposit
orders move out of 'paid' exactly once.
"""

from datetime import datetime

import pytest

from storefront.domain import (
    CreateDepositOrderParams,
    CreateOrderParams,
    DepositOrderMetadata,
    FinalOrderMetadata,
    OrderLineInput,
    ShippingAddress,
)
from storefront.models import Order, OrderItem, Product, Variant
from storefront.services import catalog_service, order_service
from storefront.services.order_service import (
    DepositAlreadyFinalizedError,
    DepositNotFoundError,
    DuplicateOrderError,
    OrderNotFoundError,
)
from storefront.validation import ValidationError

from fakes import FakeGateway


EMAIL = "maker@example.com"


def order_params(session_id="cs_test_1", payment_intent_id="pi_test_1", items=None, metadata=None, email=EMAIL):
    items = items or (
        OrderLineInput(product_id="panel", quantity=2, unit_price_cents=5000, product_name="Panel",
                       variant_id="panel-red", variant_name="Red"),
    )
    subtotal = sum(line.unit_price_cents * line.quantity for line in items)
    return CreateOrderParams(
        session_id=session_id,
        payment_intent_id=payment_intent_id,
        customer_email=email,
        subtotal_cents=subtotal,
        total_cents=subtotal + 800,
        tax_cents=800,
        items=tuple(items),
        shipping_address=ShippingAddress(name="Maker", line1="1 Main St", city="Austin", country="US"),
        metadata=metadata,
    )


def deposit_params(session_id="cs_dep_1", payment_intent_id="pi_dep_1", product_id="synth", email=EMAIL, total=25000):
    return CreateDepositOrderParams(
        session_id=session_id,
        payment_intent_id=payment_intent_id,
        customer_email=email,
        total_cents=total,
        metadata=DepositOrderMetadata(target_product_id=product_id),
    )


@pytest.fixture
def catalog(make_product, make_variant):
    make_product("panel", has_variants=True, max_quantity=10)
    make_variant("panel-red", "panel", is_limited_edition=True, max_quantity=10)
    make_product("synth", sell_status="pre-sale", presale_deposit_price_cents=25000)


def sold(db_session, model, row_id):
    db_session.expire_all()
    return db_session.get(model, row_id).sold_quantity


# =============================================================================
# ORDER CREATION
# =============================================================================

class TestCreateOrder:

    def test_records_order_items_and_counters(self, db_session, catalog):
        order = order_service.create_order(db_session, order_params())

        assert order.status == "paid"
        assert order.order_type == "standard"
        assert order.customer_email == EMAIL
        assert order.shipping_city == "Austin"
        assert [(i.product_id, i.quantity, i.total_price_cents) for i in order.items] == [("panel", 2, 10000)]
        assert sold(db_session, Product, "panel") == 2
        assert sold(db_session, Variant, "panel-red") == 2

    def test_email_normalized(self, db_session, catalog):
        order = order_service.create_order(db_session, order_params(email="  Maker@Example.COM "))
        assert order.customer_email == EMAIL

    def test_redelivery_is_duplicate_and_counts_once(self, db_session, catalog):
        order_service.create_order(db_session, order_params())

        with pytest.raises(DuplicateOrderError):
            order_service.create_order(db_session, order_params())

        assert db_session.query(Order).count() == 1
        assert db_session.query(OrderItem).count() == 1
        assert sold(db_session, Product, "panel") == 2
        assert sold(db_session, Variant, "panel-red") == 2

    def test_same_payment_intent_is_duplicate(self, db_session, catalog):
        order_service.create_order(db_session, order_params())

        with pytest.raises(DuplicateOrderError):
            order_service.create_order(db_session, order_params(session_id="cs_other"))

        assert db_session.query(Order).count() == 1

    def test_failure_rolls_back_everything(self, db_session, catalog, monkeypatch):
        items = (
            OrderLineInput(product_id="panel", quantity=1, unit_price_cents=5000, product_name="Panel"),
            OrderLineInput(product_id="synth", quantity=1, unit_price_cents=9000, product_name="Synth"),
        )
        real_increment = order_service._increment_sold_quantity
        calls = []

        def flaky_increment(session, model, row_id, quantity):
            calls.append(row_id)
            if len(calls) > 1:
                raise RuntimeError("storage went away")
            return real_increment(session, model, row_id, quantity)

        monkeypatch.setattr(order_service, "_increment_sold_quantity", flaky_increment)

        with pytest.raises(RuntimeError):
            order_service.create_order(db_session, order_params(items=items))

        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert sold(db_session, Product, "panel") == 0

    def test_final_order_carries_deposit_metadata(self, db_session, catalog):
        meta = FinalOrderMetadata(deposit_order_id="cs_dep_1", deposit_applied_cents=25000)
        order = order_service.create_order(db_session, order_params(metadata=meta))

        assert order.order_type == "pre-order-with-deposit"
        assert order.order_metadata == {
            "order_type": "pre-order-with-deposit",
            "deposit_order_id": "cs_dep_1",
            "deposit_applied": 25000,
        }
        assert order.metadata_value == meta

    def test_params_require_items(self):
        with pytest.raises(ValidationError):
            CreateOrderParams(
                session_id="cs", payment_intent_id=None, customer_email=EMAIL,
                subtotal_cents=0, total_cents=0, items=(),
            )


# =============================================================================
# STATUS UPDATES
# =============================================================================

class TestUpdateOrderStatus:

    def test_shipped_stamps_time_and_tracking(self, db_session, catalog):
        order_service.create_order(db_session, order_params())

        order = order_service.update_order_status(db_session, "cs_test_1", "shipped", "1Z999")
        first_shipped_at = order.shipped_at

        assert order.status == "shipped"
        assert order.tracking_number == "1Z999"
        assert first_shipped_at is not None

        order = order_service.update_order_status(db_session, "cs_test_1", "shipped")
        assert order.shipped_at == first_shipped_at
        assert order.tracking_number == "1Z999"

    def test_applied_stamps_applied_at(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params())
        order = order_service.update_order_status(db_session, "cs_dep_1", "applied")
        assert order.applied_at is not None

    def test_other_statuses_have_no_side_effects(self, db_session, catalog):
        order_service.create_order(db_session, order_params())
        order = order_service.update_order_status(db_session, "cs_test_1", "delivered", "ignored")
        assert order.tracking_number is None
        assert order.shipped_at is None

    def test_unknown_status_rejected(self, db_session, catalog):
        order_service.create_order(db_session, order_params())
        with pytest.raises(ValidationError):
            order_service.update_order_status(db_session, "cs_test_1", "teleported")

    def test_missing_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            order_service.update_order_status(db_session, "nope", "shipped")

    def test_lookup_requires_matching_email(self, db_session, catalog):
        order_service.create_order(db_session, order_params())
        assert order_service.lookup_order(db_session, "MAKER@example.com", "cs_test_1").id == "cs_test_1"
        assert order_service.lookup_order(db_session, "other@example.com", "cs_test_1") is None


# =============================================================================
# DEPOSITS
# =============================================================================

class TestDepositLedger:

    def test_deposit_order_shape(self, db_session, catalog):
        order = order_service.create_deposit_order(db_session, deposit_params())

        assert order.order_type == "pre-sale-deposit"
        assert order.status == "paid"
        assert order.shipping_cents == 0
        assert [i.product_id for i in order.items] == ["pre-sale-deposit"]
        assert order.metadata_value.target_product_id == "synth"
        assert sold(db_session, Product, "synth") == 0

    def test_deposit_redelivery_is_duplicate(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params())
        with pytest.raises(DuplicateOrderError):
            order_service.create_deposit_order(db_session, deposit_params())

    def test_has_paid_deposit_only_while_paid(self, db_session, catalog):
        assert not order_service.user_has_paid_deposit(db_session, EMAIL, "synth")

        order_service.create_deposit_order(db_session, deposit_params())
        assert order_service.user_has_paid_deposit(db_session, "Maker@Example.com", "synth")
        assert not order_service.user_has_paid_deposit(db_session, EMAIL, "panel")
        assert not order_service.user_has_paid_deposit(db_session, "someone@example.com", "synth")

        order_service.update_order_status(db_session, "cs_dep_1", "applied")
        assert not order_service.user_has_paid_deposit(db_session, EMAIL, "synth")

    def test_refunded_deposit_is_inactive(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params())
        order_service.update_order_status(db_session, "cs_dep_1", "refunded")
        assert not order_service.user_has_paid_deposit(db_session, EMAIL, "synth")

    def test_standard_orders_never_count_as_deposits(self, db_session, catalog):
        order_service.create_order(db_session, order_params())
        assert order_service.get_deposit_order(db_session, EMAIL, "panel") is None

    def test_earliest_paid_deposit_wins(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params("cs_dep_b", "pi_b"))
        order_service.create_deposit_order(db_session, deposit_params("cs_dep_a", "pi_a"))
        db_session.get(Order, "cs_dep_b").created_at = datetime(2026, 1, 1, 9, 0)
        db_session.get(Order, "cs_dep_a").created_at = datetime(2026, 1, 1, 10, 0)
        db_session.commit()

        assert order_service.get_deposit_order(db_session, EMAIL, "synth").id == "cs_dep_b"

    def test_deposit_status(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params(total=30000))
        assert order_service.get_deposit_status(db_session, EMAIL, "synth") == {
            "has_deposit": True,
            "deposit_amount_cents": 30000,
            "order_id": "cs_dep_1",
        }
        assert order_service.get_deposit_status(db_session, EMAIL, "panel")["has_deposit"] is False


class TestApplyDeposit:

    def test_apply_moves_paid_to_applied(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params())

        deposit = order_service.apply_deposit(db_session, "cs_dep_1", final_order_id="cs_final")

        assert deposit.status == "applied"
        assert deposit.applied_at is not None
        assert deposit.metadata_value.applied_order_id == "cs_final"
        assert deposit.version_id == 2

    def test_reapply_same_final_order_is_noop(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params())
        order_service.apply_deposit(db_session, "cs_dep_1", final_order_id="cs_final")

        deposit = order_service.apply_deposit(db_session, "cs_dep_1", final_order_id="cs_final")
        assert deposit.status == "applied"
        assert deposit.version_id == 2

    def test_apply_to_second_order_rejected(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params())
        order_service.apply_deposit(db_session, "cs_dep_1", final_order_id="cs_final")

        with pytest.raises(DepositAlreadyFinalizedError) as exc:
            order_service.apply_deposit(db_session, "cs_dep_1", final_order_id="cs_other")
        assert exc.value.status == "applied"

    def test_apply_refunded_deposit_rejected(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params())
        order_service.update_order_status(db_session, "cs_dep_1", "refunded")

        with pytest.raises(DepositAlreadyFinalizedError):
            order_service.apply_deposit(db_session, "cs_dep_1", final_order_id="cs_final")

    def test_apply_missing_or_non_deposit(self, db_session, catalog):
        order_service.create_order(db_session, order_params())
        with pytest.raises(DepositNotFoundError):
            order_service.apply_deposit(db_session, "nope")
        with pytest.raises(DepositNotFoundError):
            order_service.apply_deposit(db_session, "cs_test_1")


class TestRefundDeposit:

    def test_refund_calls_processor_and_marks_refunded(self, db_session, catalog):
        gateway = FakeGateway()
        order_service.create_deposit_order(db_session, deposit_params())

        refund = order_service.refund_deposit(db_session, gateway, EMAIL, "synth", reason="changed mind")

        assert refund.order.status == "refunded"
        assert refund.amount_cents == 25000
        assert gateway.refunds == [{
            "payment_intent_id": "pi_dep_1",
            "amount_cents": 25000,
            "idempotency_key": "refund-cs_dep_1",
            "reason": "changed mind",
        }]
        assert not order_service.user_has_paid_deposit(db_session, EMAIL, "synth")

    def test_second_refund_already_finalized(self, db_session, catalog):
        gateway = FakeGateway()
        order_service.create_deposit_order(db_session, deposit_params())
        order_service.refund_deposit(db_session, gateway, EMAIL, "synth")

        with pytest.raises(DepositAlreadyFinalizedError) as exc:
            order_service.refund_deposit(db_session, gateway, EMAIL, "synth")
        assert exc.value.status == "refunded"
        assert len(gateway.refunds) == 1

    def test_applied_deposit_cannot_be_refunded(self, db_session, catalog):
        order_service.create_deposit_order(db_session, deposit_params())
        order_service.apply_deposit(db_session, "cs_dep_1", final_order_id="cs_final")

        with pytest.raises(DepositAlreadyFinalizedError):
            order_service.refund_deposit(db_session, FakeGateway(), EMAIL, "synth")

    def test_no_deposit(self, db_session, catalog):
        with pytest.raises(DepositNotFoundError):
            order_service.refund_deposit(db_session, FakeGateway(), EMAIL, "synth")

    def test_processor_failure_keeps_deposit_paid(self, db_session, catalog):
        from storefront.services.payment_gateway import PaymentGatewayError

        order_service.create_deposit_order(db_session, deposit_params())

        with pytest.raises(PaymentGatewayError):
            order_service.refund_deposit(db_session, FakeGateway(fail=True), EMAIL, "synth")

        assert order_service.user_has_paid_deposit(db_session, EMAIL, "synth")


# =============================================================================
# CATALOG COUNTERS
# =============================================================================

class TestCounterConsistency:

    def test_orders_keep_variant_sums_consistent(self, db_session, catalog):
        order_service.create_order(db_session, order_params())
        assert catalog_service.find_counter_mismatches(db_session) == []

    def test_reports_mismatch(self, db_session, make_product, make_variant):
        make_product("strip", has_variants=True, max_quantity=30, sold_quantity=1)
        make_variant("strip-5v", "strip", max_quantity=10)
        make_variant("strip-24v", "strip", max_quantity=10)
        make_variant("strip-custom", "strip")

        assert catalog_service.find_counter_mismatches(db_session) == [{
            "product_id": "strip",
            "max_quantity": 30,
            "variant_max_quantity": 20,
            "sold_quantity": 1,
            "variant_sold_quantity": 0,
        }]
