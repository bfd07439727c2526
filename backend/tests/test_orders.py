# Overview: Pytest coverage for checkout, receipts and the sales summary.

"""
Order Engine Tests

Checkout must be all-or-nothing: a cart that fails validation leaves stock,
orders and the ledger exactly as they were.
"""

from posledger.extensions import db
from posledger.models import LedgerTransaction, Order, Product, Receipt


def _checkout(client, items, **extra):
    body = {"items": items}
    body.update(extra)
    return client.post('/api/pos/order', json=body)


class TestCheckout:

    def test_sale_decrements_stock_and_posts_ledger(self, client, make_product, default_accounts, fresh, balance_of):
        product = make_product(name="Mug", price_cents=1000, cost_cents=400, stock=10)

        resp = _checkout(client, [{"productId": product.id, "quantity": 3}])
        assert resp.status_code == 201
        order = resp.json["order"]
        assert order["subtotal"] == 30
        assert order["total"] == 30
        assert order["status"] == "completed"
        assert order["orderNumber"].startswith("ORD-")
        assert order["items"][0]["productName"] == "Mug"
        assert order["items"][0]["quantity"] == 3

        assert fresh(Product, product.id).stock == 7
        assert balance_of("11000") == 3000
        assert balance_of("41000") == 3000
        assert balance_of("51000") == 1200
        assert balance_of("13000") == -1200

    def test_total_applies_discount_and_tax(self, client, make_product, default_accounts):
        product = make_product(price_cents=2500, stock=10)
        resp = _checkout(
            client, [{"productId": product.id, "quantity": 2}], discount=5, tax="3.25",
        )
        assert resp.status_code == 201
        order = resp.json["order"]
        assert order["subtotal"] == 50
        assert order["discount"] == 5
        assert order["tax"] == 3.25
        assert order["total"] == 48.25

    def test_insufficient_stock_rejected_without_side_effects(self, client, make_product, default_accounts, fresh):
        product = make_product(name="Lamp", stock=2)

        resp = _checkout(client, [{"productId": product.id, "quantity": 5}])
        assert resp.status_code == 400
        assert "Insufficient stock" in resp.json["error"]
        assert resp.json["details"]["items"][0]["stock"] == 2

        assert fresh(Product, product.id).stock == 2
        assert db.session.query(Order).count() == 0
        assert db.session.query(LedgerTransaction).count() == 0

    def test_failing_line_leaves_earlier_lines_untouched(self, client, make_product, default_accounts, fresh):
        plenty = make_product(name="Plenty", stock=10)
        scarce = make_product(name="Scarce", stock=1)

        resp = _checkout(client, [
            {"productId": plenty.id, "quantity": 2},
            {"productId": scarce.id, "quantity": 3},
        ])
        assert resp.status_code == 400
        assert fresh(Product, plenty.id).stock == 10
        assert fresh(Product, scarce.id).stock == 1

    def test_repeated_product_lines_are_checked_together(self, client, make_product, default_accounts, fresh):
        product = make_product(stock=4)
        resp = _checkout(client, [
            {"productId": product.id, "quantity": 3},
            {"productId": product.id, "quantity": 3},
        ])
        assert resp.status_code == 400
        assert resp.json["details"]["items"][0]["requested_quantity"] == 6
        assert fresh(Product, product.id).stock == 4

    def test_unknown_product_is_bad_request(self, client, make_product, default_accounts):
        resp = _checkout(client, [{"productId": 999, "quantity": 1}])
        assert resp.status_code == 400
        assert "not found" in resp.json["error"]

    def test_empty_cart_rejected(self, client):
        resp = _checkout(client, [])
        assert resp.status_code == 400
        assert resp.json["error"] == "Order items are required"

    def test_non_positive_quantity_rejected(self, client, make_product):
        product = make_product()
        resp = _checkout(client, [{"productId": product.id, "quantity": 0}])
        assert resp.status_code == 400

    def test_negative_discount_rejected(self, client, make_product):
        product = make_product()
        resp = _checkout(client, [{"productId": product.id, "quantity": 1}], discount=-2)
        assert resp.status_code == 400

    def test_discount_beyond_total_rejected(self, client, make_product, default_accounts, fresh):
        product = make_product(price_cents=1000, stock=5)
        resp = _checkout(client, [{"productId": product.id, "quantity": 1}], discount=20)
        assert resp.status_code == 400
        assert resp.json["error"] == "Discount cannot exceed subtotal plus tax"
        assert fresh(Product, product.id).stock == 5

    def test_missing_sale_accounts_are_created(self, client, make_product, balance_of):
        product = make_product(price_cents=700, stock=3)
        resp = _checkout(client, [{"productId": product.id, "quantity": 1}])
        assert resp.status_code == 201
        assert balance_of("11000") == 700
        assert balance_of("41000") == 700

    def test_zero_cost_sale_posts_only_revenue_pair(self, client, make_product, default_accounts):
        product = make_product(price_cents=900, cost_cents=0, stock=3)
        _checkout(client, [{"productId": product.id, "quantity": 1}])

        db.session.expire_all()
        codes = sorted(t.account_code for t in db.session.query(LedgerTransaction).all())
        assert codes == ["11000", "41000"]


class TestReceiptsAndQueries:

    def test_receipt_snapshot_matches_order(self, client, make_product, default_accounts):
        product = make_product(name="Pen", price_cents=150, stock=10)
        resp = _checkout(client, [{"productId": product.id, "quantity": 4}], paymentMethod="card")
        order = resp.json["order"]
        receipt = resp.json["receipt"]
        assert receipt["orderId"] == order["id"]
        assert receipt["receiptNumber"].startswith("RCP-")
        assert receipt["total"] == 6
        assert receipt["paymentMethod"] == "card"

        resp = client.get(f'/api/pos/receipt/{order["id"]}')
        assert resp.status_code == 200
        assert resp.json["receiptNumber"] == receipt["receiptNumber"]
        assert resp.json["items"][0]["productName"] == "Pen"

    def test_receipt_for_unknown_order_is_404(self, client):
        resp = client.get('/api/pos/receipt/42')
        assert resp.status_code == 404

    def test_get_and_list_orders(self, client, make_product, default_accounts):
        product = make_product(stock=10)
        first = _checkout(client, [{"productId": product.id, "quantity": 1}]).json["order"]
        _checkout(client, [{"productId": product.id, "quantity": 2}])

        resp = client.get(f'/api/pos/orders/{first["id"]}')
        assert resp.status_code == 200
        assert resp.json["id"] == first["id"]

        resp = client.get('/api/pos/orders')
        assert resp.status_code == 200
        assert len(resp.json) == 2

        resp = client.get('/api/pos/orders?startDate=2000-01-01&endDate=2000-01-31')
        assert resp.json == []

    def test_bad_date_filter_rejected(self, client):
        resp = client.get('/api/pos/orders?startDate=yesterday')
        assert resp.status_code == 400

    def test_sales_summary(self, client, make_product, default_accounts):
        product = make_product(price_cents=1000, stock=20)
        _checkout(client, [{"productId": product.id, "quantity": 1}])
        _checkout(client, [{"productId": product.id, "quantity": 2}])

        resp = client.get('/api/pos/summary')
        assert resp.status_code == 200
        assert resp.json == {
            "totalOrders": 2,
            "totalRevenue": 30,
            "totalItems": 3,
            "averageOrderValue": 15,
        }

    def test_empty_summary(self, client):
        resp = client.get('/api/pos/summary')
        assert resp.json["totalOrders"] == 0
        assert resp.json["averageOrderValue"] == 0

    def test_receipt_row_unique_per_order(self, client, make_product, default_accounts):
        product = make_product(stock=3)
        order_id = _checkout(client, [{"productId": product.id, "quantity": 1}]).json["order"]["id"]
        db.session.expire_all()
        assert db.session.query(Receipt).filter_by(order_id=order_id).count() == 1
