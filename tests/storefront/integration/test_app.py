"""The assembled application: middleware, error handlers and health check."""

import pytest
from fastapi.testclient import TestClient
from storefront.api.app import create_app


@pytest.fixture()
def app_client():
    return TestClient(create_app(init_domain=False))


def test_health(app_client):
    response = app_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "domain": "storefront"}


def test_request_id_is_echoed(app_client):
    response = app_client.get("/health", headers={"X-Request-Id": "req-123"})

    assert response.headers["X-Request-Id"] == "req-123"


def test_request_id_is_generated(app_client):
    first = app_client.get("/health").headers["X-Request-Id"]
    second = app_client.get("/health").headers["X-Request-Id"]

    assert first
    assert first != second


def test_cart_round_trip(app_client, product):
    headers = {"X-Session-Id": "sess-app"}

    added = app_client.post("/cart/items", json={"product_id": product.id, "quantity": 2}, headers=headers)
    summary = app_client.get("/cart/summary", headers=headers)

    assert added.status_code == 200
    assert added.headers["X-Request-Id"]
    assert summary.json()["item_count"] == 2


def test_errors_use_the_envelope(app_client):
    response = app_client.post("/cart/items", json={"product_id": "prod-404"}, headers={"X-Session-Id": "s"})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PRODUCT_NOT_FOUND"
    assert response.headers["X-Request-Id"]
