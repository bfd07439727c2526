# Overview: Pytest coverage for the customer records API.

import pytest

from posledger.models import Customer


def _create(client, **body):
    body.setdefault("name", "Budi Santoso")
    return client.post('/api/customers', json=body)


class TestCreateCustomer:

    def test_create_applies_defaults(self, client):
        resp = _create(client, phone="0812-555-0101", email="budi@example.com")
        assert resp.status_code == 201
        body = resp.json
        assert body["name"] == "Budi Santoso"
        assert body["whatsapp"] == "0812-555-0101"
        assert body["country"] == "Indonesia"
        assert body["customerType"] == "retail"
        assert body["tags"] == []
        assert body["address"] == ""
        assert body["createdAt"].endswith("Z")

    def test_explicit_whatsapp_kept(self, client):
        resp = _create(client, phone="0812", whatsapp="0899")
        assert resp.json["whatsapp"] == "0899"

    def test_blank_defaulted_fields_fall_back(self, client):
        resp = _create(client, country="", customerType="  ")
        assert resp.status_code == 201
        assert resp.json["country"] == "Indonesia"
        assert resp.json["customerType"] == "retail"

    def test_tags_are_trimmed_and_deduplicated(self, client):
        resp = _create(client, tags=["vip", " vip ", "", "wholesale"])
        assert resp.json["tags"] == ["vip", "wholesale"]

    @pytest.mark.parametrize("payload", [
        {"phone": "0812"},
        {"name": ""},
        {"name": "X", "favouriteColor": "red"},
        {"name": "X", "tags": "vip"},
        {"name": "X", "postalCode": "1" * 17},
    ])
    def test_invalid_payloads_rejected(self, client, payload):
        resp = client.post('/api/customers', json=payload)
        assert resp.status_code == 400


class TestReadCustomers:

    def test_list_sorted_by_name(self, client):
        _create(client, name="Citra")
        _create(client, name="Agus")
        resp = client.get('/api/customers')
        assert resp.status_code == 200
        assert [c["name"] for c in resp.json] == ["Agus", "Citra"]

    def test_get_includes_order_stats(self, client, make_product, default_accounts):
        customer_id = _create(client).json["id"]
        product = make_product(price_cents=1500, stock=10)
        for quantity in (1, 2):
            resp = client.post('/api/pos/order', json={
                "items": [{"productId": product.id, "quantity": quantity}],
                "customerId": str(customer_id),
            })
            assert resp.status_code == 201

        body = client.get(f'/api/customers/{customer_id}').json
        assert body["totalOrders"] == 2
        assert body["totalSpent"] == 45
        assert body["lastOrderDate"].endswith("Z")

    def test_get_without_orders(self, client):
        customer_id = _create(client).json["id"]
        body = client.get(f'/api/customers/{customer_id}').json
        assert body["totalOrders"] == 0
        assert body["totalSpent"] == 0
        assert body["lastOrderDate"] is None

    def test_get_unknown_customer_is_404(self, client):
        resp = client.get('/api/customers/404')
        assert resp.status_code == 404
        assert resp.json["error"] == "Customer not found"


class TestUpdateDeleteCustomer:

    def test_partial_update(self, client, fresh):
        customer_id = _create(client, city="Bandung").json["id"]
        resp = client.put(f'/api/customers/{customer_id}', json={
            "city": "Jakarta", "customerType": "wholesale", "totalOrders": 99,
        })
        assert resp.status_code == 200
        assert resp.json["city"] == "Jakarta"
        assert resp.json["customerType"] == "wholesale"

        reloaded = fresh(Customer, customer_id)
        assert reloaded.city == "Jakarta"
        assert reloaded.name == "Budi Santoso"

    def test_unknown_field_rejected_on_update(self, client):
        customer_id = _create(client).json["id"]
        resp = client.put(f'/api/customers/{customer_id}', json={"loyaltyPoints": 5})
        assert resp.status_code == 400
        assert "loyaltyPoints" in resp.json["error"]

    def test_update_unknown_customer_is_404(self, client):
        resp = client.put('/api/customers/404', json={"city": "Medan"})
        assert resp.status_code == 404

    def test_delete(self, client, fresh):
        customer_id = _create(client).json["id"]
        resp = client.delete(f'/api/customers/{customer_id}')
        assert resp.status_code == 200
        assert resp.json["message"] == "Customer deleted successfully"
        assert fresh(Customer, customer_id) is None

        assert client.delete(f'/api/customers/{customer_id}').status_code == 404


class TestSearchCustomers:

    def test_search_matches_name_email_and_phone(self, client):
        _create(client, name="Dewi Lestari", email="dewi@shop.id", phone="0811-222")
        _create(client, name="Eko Prasetyo", email="eko@mail.id", phone="0877-999")

        assert [c["name"] for c in client.get('/api/customers/search/dewi').json] == ["Dewi Lestari"]
        assert [c["name"] for c in client.get('/api/customers/search/MAIL.ID').json] == ["Eko Prasetyo"]
        assert [c["name"] for c in client.get('/api/customers/search/0877').json] == ["Eko Prasetyo"]
        assert len(client.get('/api/customers/search/.id').json) == 2
        assert client.get('/api/customers/search/zzz').json == []

    def test_blank_search_rejected(self, client):
        resp = client.get('/api/customers/search/%20')
        assert resp.status_code == 400
        assert resp.json["error"] == "Search query is required"
