def test_health_reports_database_counts(client, make_product, default_accounts):
    make_product()
    resp = client.get('/api/health')
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
    database = resp.json["checks"]["database"]
    assert database["details"] == {"products": 1, "orders": 0, "accounts": 8}
    assert resp.json["timestamp"].endswith("Z")


def test_cors_headers_for_known_origin(client):
    resp = client.get('/api/health', headers={"Origin": "http://localhost:5173"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    resp = client.get('/api/health', headers={"Origin": "http://evil.example"})
    assert "Access-Control-Allow-Origin" not in resp.headers
