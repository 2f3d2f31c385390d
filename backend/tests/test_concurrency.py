# Overview: Threaded ledger tests against a file-backed database.

"""
Concurrency tests for the order ledger.

Each worker runs in its own app context, and so its own session, against a
shared SQLite file. Redelivered checkouts must produce one order and one
counter increment; a deposit must leave 'paid' exactly once.
"""
import os
import tempfile
import threading
import unittest

from storefront import create_app
from storefront.extensions import db
from storefront.models import Order, OrderItem, Product, Variant
from storefront.services import order_service
from storefront.services.order_service import DepositAlreadyFinalizedError, DuplicateOrderError

from test_order_service import deposit_params, order_params


WORKERS = 8


class LedgerConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "ledger.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        })

        with self.app.app_context():
            db.create_all()
            db.session.add(Product(
                id="panel", name="Panel", category="modules", base_price_cents=5000,
                sell_status="for-sale", dev_status=5, has_variants=True, max_quantity=10,
            ))
            db.session.add(Variant(
                id="panel-red", product_id="panel", variant_type="color", variant_value="Red",
                is_limited_edition=True, max_quantity=10,
            ))
            db.session.commit()

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.app.extensions["payment_gateway"].close()
        self.tmpdir.cleanup()

    def run_workers(self, target, args_list):
        """Start every worker behind a barrier; collect results and unexpected errors."""
        barrier = threading.Barrier(len(args_list))
        results = []
        errors = []
        lock = threading.Lock()

        def worker(*args):
            with self.app.app_context():
                try:
                    barrier.wait(timeout=30)
                    outcome = target(db.session, *args)
                    with lock:
                        results.append(outcome)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=args) for args in args_list]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results, errors

    def test_concurrent_checkout_redelivery_records_one_order(self):
        def deliver(session):
            try:
                order_service.create_order(session, order_params())
                return "created"
            except DuplicateOrderError:
                return "duplicate"

        results, errors = self.run_workers(deliver, [() for _ in range(WORKERS)])

        self.assertEqual(errors, [])
        self.assertEqual(results.count("created"), 1)
        self.assertEqual(results.count("duplicate"), WORKERS - 1)

        with self.app.app_context():
            self.assertEqual(db.session.query(Order).count(), 1)
            self.assertEqual(db.session.query(OrderItem).count(), 1)
            self.assertEqual(db.session.get(Product, "panel").sold_quantity, 2)
            self.assertEqual(db.session.get(Variant, "panel-red").sold_quantity, 2)

    def test_concurrent_deposit_redelivery_records_one_deposit(self):
        def deliver(session):
            try:
                order_service.create_deposit_order(session, deposit_params(product_id="panel"))
                return "created"
            except DuplicateOrderError:
                return "duplicate"

        results, errors = self.run_workers(deliver, [() for _ in range(WORKERS)])

        self.assertEqual(errors, [])
        self.assertEqual(results.count("created"), 1)
        with self.app.app_context():
            self.assertEqual(db.session.query(Order).count(), 1)
            self.assertEqual(db.session.get(Product, "panel").sold_quantity, 0)

    def test_concurrent_apply_moves_deposit_once(self):
        with self.app.app_context():
            order_service.create_deposit_order(db.session, deposit_params(product_id="panel"))

        def apply(session, final_order_id):
            try:
                order_service.apply_deposit(session, "cs_dep_1", final_order_id=final_order_id)
                return final_order_id
            except DepositAlreadyFinalizedError:
                return None

        results, errors = self.run_workers(apply, [(f"cs_final_{n}",) for n in range(4)])

        self.assertEqual(errors, [])
        winners = [r for r in results if r is not None]
        self.assertEqual(len(winners), 1)

        with self.app.app_context():
            deposit = db.session.get(Order, "cs_dep_1")
            self.assertEqual(deposit.status, "applied")
            self.assertEqual(deposit.metadata_value.applied_order_id, winners[0])
            self.assertEqual(deposit.version_id, 2)
