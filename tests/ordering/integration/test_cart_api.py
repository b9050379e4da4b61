"""Integration tests for the /cart endpoints via TestClient."""

import pytest


@pytest.fixture
def widget(seed):
    return seed.product(name="Widget", price="100.00", discount_price="90.00", stock=5)


class TestCartEndpoints:
    def test_empty_cart_on_first_visit(self, client, auth, customer):
        response = client.get("/cart", headers=auth(customer))

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == customer.user_id
        assert body["lines"] == []
        assert body["item_count"] == 0

    def test_add_update_remove(self, client, auth, customer, widget):
        added = client.post("/cart/items", json={"product_id": widget.id, "quantity": 2}, headers=auth(customer))
        assert added.status_code == 200
        [line] = added.json()["lines"]
        assert line["unit_price"] == "90.00"
        assert added.json()["subtotal"] == "180.00"

        updated = client.put(f"/cart/items/{line['id']}", json={"quantity": 3}, headers=auth(customer))
        assert updated.json()["item_count"] == 3

        removed = client.delete(f"/cart/items/{line['id']}", headers=auth(customer))
        assert removed.json()["lines"] == []

    def test_clear(self, client, auth, customer, seed, widget):
        seed.cart_item(widget.id, 2)

        response = client.delete("/cart", headers=auth(customer))

        assert response.status_code == 200
        assert seed.cart_lines() == []


class TestCartErrors:
    def test_requires_identity(self, client):
        response = client.get("/cart")
        assert response.status_code == 403
        assert response.json()["kind"] == "authorization"

    def test_unknown_role(self, client):
        response = client.get("/cart", headers={"X-User-Id": "1", "X-User-Role": "Auditor"})
        assert response.status_code == 403

    def test_body_validation(self, client, auth, customer, widget):
        response = client.post("/cart/items", json={"product_id": widget.id, "quantity": 0}, headers=auth(customer))

        assert response.status_code == 400
        body = response.json()
        assert body["kind"] == "validation"
        assert "quantity" in body["details"]["messages"]

    def test_more_than_available(self, client, auth, customer, widget):
        response = client.post("/cart/items", json={"product_id": widget.id, "quantity": 6}, headers=auth(customer))
        assert response.status_code == 400
        assert response.json()["kind"] == "validation"

    def test_unknown_product(self, client, auth, customer):
        response = client.post("/cart/items", json={"product_id": 4242}, headers=auth(customer))
        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

    def test_unknown_line(self, client, auth, customer):
        response = client.delete("/cart/items/4242", headers=auth(customer))
        assert response.status_code == 404
