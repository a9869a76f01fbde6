"""Integration tests for the cart endpoints via TestClient."""

from protean import current_domain
from storefront.cart.cart import Cart

CUSTOMER = {"X-Customer-Id": "cust-001"}
GUEST = {"X-Session-Id": "sess-001"}


def _add(client, product_id="prod-001", quantity=1, headers=CUSTOMER, **body):
    return client.post("/cart/items", json={"product_id": product_id, "quantity": quantity, **body}, headers=headers)


class TestGetCart:
    def test_empty_cart_is_created_on_read(self, client):
        response = client.get("/cart", headers=CUSTOMER)

        assert response.status_code == 200
        data = response.json()
        assert data["customer_id"] == "cust-001"
        assert data["items"] == []
        assert data["totals"]["total"] == 0.0
        assert data["status"] == "active"

    def test_owner_is_required(self, client):
        response = client.get("/cart")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "OWNER_REQUIRED"

    def test_unavailable_lines_are_pruned(self, client, catalogue, product, cheap_product):
        _add(client, product.id)
        _add(client, cheap_product.id)
        catalogue.update_product(cheap_product.id, status="archived")

        data = client.get("/cart", headers=CUSTOMER).json()

        assert [item["product_id"] for item in data["items"]] == [product.id]

    def test_summary(self, client, product):
        _add(client, product.id, quantity=3)

        data = client.get("/cart/summary", headers=CUSTOMER).json()

        assert data["item_count"] == 3
        assert data["line_count"] == 1
        assert data["totals"]["subtotal"] == 75.0
        assert data["is_empty"] is False

    def test_summary_without_identity_is_empty(self, client):
        response = client.get("/cart/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["item_count"] == 0
        assert data["is_empty"] is True
        assert data["totals"]["total"] == 0.0

    def test_summary_does_not_open_a_cart(self, client):
        data = client.get("/cart/summary", headers=GUEST).json()

        assert data["is_empty"] is True
        assert current_domain.repository_for(Cart).find_active_for_session("sess-001") is None


class TestCartItems:
    def test_add_item(self, client, product):
        response = _add(client, product.id, quantity=2, selected_variants=[{"name": "Size", "value": "M"}])

        assert response.status_code == 200
        item = response.json()["items"][0]
        assert item["quantity"] == 2
        assert item["line_total"] == 50.0
        assert item["selected_variants"] == [{"name": "Size", "value": "M"}]
        assert item["product"]["image"].endswith("front.jpg")

    def test_guest_cart(self, client, product):
        data = _add(client, product.id, headers=GUEST).json()

        assert data["session_id"] == "sess-001"
        assert data["customer_id"] is None

    def test_invalid_quantity(self, client, product):
        response = _add(client, product.id, quantity=0)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_QUANTITY"

    def test_unknown_product(self, client):
        response = _add(client, "prod-404")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PRODUCT_NOT_FOUND"

    def test_insufficient_stock(self, client, cheap_product):
        response = _add(client, cheap_product.id, quantity=6)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INSUFFICIENT_STOCK"

    def test_update_and_remove(self, client, product):
        item_id = _add(client, product.id).json()["items"][0]["id"]

        response = client.put(f"/cart/items/{item_id}", json={"quantity": 4}, headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["totals"]["subtotal"] == 100.0

        response = client.delete(f"/cart/items/{item_id}", headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["items"] == []

    def test_update_unknown_item(self, client, product):
        _add(client, product.id)

        response = client.put("/cart/items/missing", json={"quantity": 2}, headers=CUSTOMER)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ITEM_NOT_FOUND"

    def test_clear(self, client, product, cheap_product):
        _add(client, product.id)
        _add(client, cheap_product.id)

        response = client.delete("/cart", headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["items"] == []


class TestCoupons:
    def test_apply_and_remove(self, client, product):
        _add(client, product.id, quantity=4)

        applied = client.post("/cart/coupon", json={"code": "save10"}, headers=CUSTOMER).json()
        assert applied["applied_discounts"] == [{"code": "SAVE10", "magnitude": 10.0, "type": "percentage"}]
        assert applied["totals"]["discount"] == 10.0

        removed = client.request("DELETE", "/cart/coupon", json={"code": "SAVE10"}, headers=CUSTOMER).json()
        assert removed["applied_discounts"] == []
        assert removed["totals"]["discount"] == 0.0

    def test_duplicate_coupon(self, client, product):
        _add(client, product.id)
        client.post("/cart/coupon", json={"code": "SAVE10"}, headers=CUSTOMER)

        response = client.post("/cart/coupon", json={"code": "SAVE10"}, headers=CUSTOMER)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_DISCOUNT"

    def test_coupon_on_empty_cart(self, client):
        response = client.post("/cart/coupon", json={"code": "SAVE10"}, headers=CUSTOMER)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EMPTY_CART_DISCOUNT"

    def test_unknown_coupon(self, client, product):
        _add(client, product.id)

        response = client.post("/cart/coupon", json={"code": "FREE"}, headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_COUPON_CODE"


class TestValidate:
    def test_reports_errors_and_warnings(self, client, catalogue, product, cheap_product, add_product):
        add_product("prod-003", quantity=30)
        _add(client, product.id, quantity=2)
        _add(client, cheap_product.id)
        _add(client, "prod-003", quantity=4)
        catalogue.update_product(product.id, price=27.5)
        catalogue.update_product("prod-003", quantity=1)

        response = client.post("/cart/validate", headers=CUSTOMER)

        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is False
        assert data["errors"] == ["Product prod-003: Only 1 items available, but 4 requested"]
        assert data["warnings"] == [
            "Product prod-001: Price has changed from 25.00 to 27.50",
            "Product prod-002 is running low on stock",
        ]
        assert len(data["cart"]["items"]) == 3

    def test_valid_cart(self, client, product):
        _add(client, product.id, headers=GUEST)

        data = client.post("/cart/validate", headers=GUEST).json()

        assert data["is_valid"] is True
        assert data["errors"] == data["warnings"] == []

    def test_empty_cart(self, client):
        response = client.post("/cart/validate", headers=GUEST)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EMPTY_CART"


class TestMerge:
    def test_guest_lines_move_to_customer(self, client, product, cheap_product):
        _add(client, product.id, headers=GUEST)
        _add(client, cheap_product.id, quantity=2, headers=GUEST)
        _add(client, product.id, quantity=2)

        response = client.post("/cart/merge", json={"session_id": "sess-001"}, headers=CUSTOMER)

        assert response.status_code == 200
        quantities = {item["product_id"]: item["quantity"] for item in response.json()["items"]}
        assert quantities == {product.id: 3, cheap_product.id: 2}
        assert current_domain.repository_for(Cart).find_active_for_session("sess-001") is None

    def test_merge_requires_customer(self, client):
        response = client.post("/cart/merge", json={"session_id": "sess-001"}, headers=GUEST)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"
