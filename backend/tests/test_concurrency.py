# Overview: Pytest coverage for write serialization, optimistic locking and the retry helper.

"""
Concurrency Tests

Checkouts run on separate threads against a file-backed SQLite database, so
each thread has its own connection and BEGIN IMMEDIATE really serializes
them. Two carts competing for the last units must not oversell.
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from posledger import create_app
from posledger.extensions import db
from posledger.models import Customer, InventoryTransaction, Order, Product
from posledger.services import concurrency, inventory_service, ledger_service, order_service
from posledger.validation import InsufficientStockError, PosError


@pytest.fixture
def file_app(tmp_path):
    """App bound to a SQLite file: a stocked product and the default chart."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.db'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })
    with app.app_context():
        db.create_all()
        ledger_service.ensure_default_accounts()
        product = Product(sku="LAST-5", name="Last Units", price_cents=1000, cost_cents=400, stock=5)
        db.session.add(product)
        db.session.commit()
        app.config["TEST_PRODUCT_ID"] = product.id
        db.session.remove()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()


def _run_concurrently(app, target, count=2):
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(count)

    def worker():
        with app.app_context():
            try:
                barrier.wait()
                target()
                with lock:
                    results.append("ok")
            except Exception as exc:
                with lock:
                    results.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


class TestConcurrentWrites:

    def test_concurrent_checkouts_do_not_oversell(self, file_app):
        product_id = file_app.config["TEST_PRODUCT_ID"]

        results = _run_concurrently(
            file_app,
            lambda: order_service.complete_sale(items=[{"productId": product_id, "quantity": 5}]),
        )

        assert results.count("ok") == 1
        failures = [r for r in results if r != "ok"]
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientStockError)

        with file_app.app_context():
            assert db.session.get(Product, product_id).stock == 0
            assert db.session.query(Order).count() == 1
            assert db.session.query(InventoryTransaction).filter_by(type="sale").count() == 1
            assert ledger_service.get_account("11000").balance_cents == 5000

    def test_concurrent_stock_outs_do_not_go_negative(self, file_app):
        product_id = file_app.config["TEST_PRODUCT_ID"]

        results = _run_concurrently(
            file_app,
            lambda: inventory_service.stock_out(product_id=product_id, quantity=3),
            count=3,
        )

        assert results.count("ok") == 1
        assert all(isinstance(r, PosError) for r in results if r != "ok")
        with file_app.app_context():
            assert db.session.get(Product, product_id).stock == 2

    def test_stale_version_detected(self, file_app):
        product_id = file_app.config["TEST_PRODUCT_ID"]

        with file_app.app_context():
            mine = db.session.get(Product, product_id)
            assert mine.version_id == 1

            other = db.session.session_factory()
            try:
                theirs = other.get(Product, product_id)
                theirs.stock = 4
                other.commit()
            finally:
                other.close()

            mine.stock = 3
            with pytest.raises(StaleDataError):
                db.session.commit()
            db.session.rollback()

            assert db.session.get(Product, product_id).stock == 4


class TestRunWithRetry:

    @pytest.fixture(autouse=True)
    def no_sleep(self, monkeypatch):
        delays = []
        monkeypatch.setattr(concurrency.time, "sleep", delays.append)
        return delays

    def test_stale_data_is_retried(self, app, no_sleep):
        calls = []

        def op():
            calls.append(1)
            if len(calls) == 1:
                raise StaleDataError("version mismatch")
            return "done"

        assert concurrency.run_with_retry(op) == "done"
        assert len(calls) == 2
        assert no_sleep == [0.1]

    def test_gives_up_after_attempts(self, app, no_sleep):
        calls = []

        def op():
            calls.append(1)
            raise StaleDataError("version mismatch")

        with pytest.raises(StaleDataError):
            concurrency.run_with_retry(op, attempts=3)
        assert len(calls) == 3
        assert no_sleep == [0.1, 0.2]

    def test_locked_database_is_retried(self, app, no_sleep):
        calls = []

        def op():
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))
            return len(calls)

        assert concurrency.run_with_retry(op) == 3

    def test_other_errors_roll_back_without_retry(self, app, db_session):
        calls = []

        def op():
            calls.append(1)
            db_session.add(Customer(name="Half Written"))
            db_session.flush()
            raise ValueError("boom")

        with pytest.raises(ValueError):
            concurrency.run_with_retry(op)
        assert len(calls) == 1
        assert db_session.query(Customer).count() == 0
