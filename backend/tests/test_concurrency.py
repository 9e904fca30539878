# Overview: Threaded tests for concurrent invoice issuance against one file-backed database.

"""
Concurrency Tests

Each worker thread pushes its own app context, so it gets its own session
and its own SQLite connection. Workers start together on a barrier.
"""

import threading

import pytest

from retailpos.errors import InsufficientStock
from retailpos.extensions import db
from retailpos.models import Category, Invoice, Product, StockMovement, Store
from retailpos.services import stock_service
from retailpos.services.invoice_service import CheckoutLine, issue_invoice

WORKER_TIMEOUT = 30


def _seed(app, stock_qty):
    with app.app_context():
        store = Store(name="Race Store", owner_name="Owner")
        db.session.add(store)
        db.session.flush()
        category = Category(store_id=store.id, name="General", default_gst_bps=1800)
        db.session.add(category)
        db.session.flush()
        product = Product(
            store_id=store.id,
            category_id=category.id,
            name="Last Notebook",
            price_cents=10000,
            stock_qty=stock_qty,
        )
        db.session.add(product)
        db.session.commit()
        return store.id, product.id


def _run_workers(app, count, work):
    """Run work() in `count` threads that start together; return per-worker outcomes."""
    barrier = threading.Barrier(count)
    outcomes = [None] * count

    def worker(index):
        with app.app_context():
            barrier.wait()
            try:
                outcomes[index] = work()
            except Exception as exc:  # collected and asserted on by the test
                outcomes[index] = exc
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(WORKER_TIMEOUT)
        assert not t.is_alive(), "worker did not finish"
    return outcomes


def _checkout_one(store_id, product_id, quantity=1):
    def work():
        line = CheckoutLine(
            product_id=product_id,
            name="Last Notebook",
            quantity=quantity,
            unit_price_cents=10000,
            applied_tax_bps=1800,
        )
        return issue_invoice(store_id, [line]).id
    return work


class TestConcurrentIssuance:
    def test_two_checkouts_for_last_unit(self, file_app):
        store_id, product_id = _seed(file_app, stock_qty=1)

        outcomes = _run_workers(file_app, 2, _checkout_one(store_id, product_id))

        successes = [o for o in outcomes if isinstance(o, str)]
        failures = [o for o in outcomes if isinstance(o, InsufficientStock)]
        assert len(successes) == 1, outcomes
        assert len(failures) == 1, outcomes
        assert failures[0].available == 0
        assert failures[0].requested == 1

        with file_app.app_context():
            assert db.session.get(Product, product_id).stock_qty == 0
            assert db.session.query(Invoice).count() == 1

    @pytest.mark.parametrize("stock_qty,workers", [(5, 8), (3, 6)])
    def test_stock_never_oversold(self, file_app, stock_qty, workers):
        store_id, product_id = _seed(file_app, stock_qty=stock_qty)

        outcomes = _run_workers(file_app, workers, _checkout_one(store_id, product_id))

        successes = [o for o in outcomes if isinstance(o, str)]
        unexpected = [o for o in outcomes if not isinstance(o, (str, InsufficientStock))]
        assert unexpected == []
        assert len(successes) == stock_qty

        with file_app.app_context():
            product = db.session.get(Product, product_id)
            assert product.stock_qty == 0
            sold = (
                db.session.query(db.func.sum(StockMovement.quantity_delta))
                .filter_by(product_id=product_id, type=stock_service.MOVEMENT_SALE)
                .scalar()
            )
            assert -sold == stock_qty

    def test_issuance_racing_replenishment(self, file_app):
        store_id, product_id = _seed(file_app, stock_qty=2)

        def work_for(index):
            if index == 0:
                return stock_service.adjust_quantity(product_id, 3).stock_qty
            return _checkout_one(store_id, product_id)()

        counter = iter(range(6))
        lock = threading.Lock()

        def work():
            with lock:
                index = next(counter)
            return work_for(index)

        outcomes = _run_workers(file_app, 6, work)

        invoices = [o for o in outcomes if isinstance(o, str)]
        unexpected = [o for o in outcomes if not isinstance(o, (int, str, InsufficientStock))]
        assert unexpected == []

        with file_app.app_context():
            final = db.session.get(Product, product_id).stock_qty
            assert final >= 0
            # initial 2 + replenishment 3
            assert len(invoices) + final == 5
