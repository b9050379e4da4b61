"""Integration tests for the order, coupon and report endpoints via TestClient."""

from datetime import UTC, datetime, timedelta

import pytest


@pytest.fixture
def widget(seed, seller):
    return seed.product(name="Widget", price="100.00", seller_id=seller.user_id, stock=10)


@pytest.fixture
def address(seed, customer):
    return seed.address(user_id=customer.user_id)


def _checkout(client, auth, principal, address_id, coupon_code=None):
    return client.post(
        "/orders",
        json={"address_id": address_id, "coupon_code": coupon_code},
        headers=auth(principal),
    )


class TestPlaceOrderEndpoint:
    def test_places_order(self, client, auth, seed, customer, widget, address, mail):
        seed.coupon(code="FLAT50", value="50")
        seed.cart_item(widget.id, 3)

        response = _checkout(client, auth, customer, address.id, "FLAT50")

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "Pending"
        assert body["order_number"].startswith("ORD-")
        assert (body["subtotal"], body["discount_amount"], body["tax_amount"], body["total_amount"]) == (
            "300.00",
            "50.00",
            "12.50",
            "262.50",
        )
        assert body["payment_status"] == "Pending"
        assert seed.stock_of(widget.id) == 7
        assert mail.subjects_for(customer.email) == [f"Order {body['order_number']} placed"]

    def test_empty_cart(self, client, auth, customer, address):
        response = _checkout(client, auth, customer, address.id)
        assert response.status_code == 400
        assert response.json()["kind"] == "empty_cart"

    def test_seller_cannot_place_order(self, client, auth, seed, seller, widget):
        own_address = seed.address(user_id=seller.user_id)
        seed.cart_item(widget.id, 2, user_id=seller.user_id)

        response = _checkout(client, auth, seller, own_address.id)

        assert response.status_code == 403
        assert response.json()["kind"] == "authorization"
        assert seed.stock_of(widget.id) == 10
        assert seed.cart_lines(user_id=seller.user_id) == [(widget.id, 2)]

    def test_invalid_coupon(self, client, auth, seed, customer, widget, address):
        seed.cart_item(widget.id, 1)

        response = _checkout(client, auth, customer, address.id, "NOPE")

        assert response.status_code == 400
        assert response.json()["kind"] == "coupon_invalid"
        assert response.json()["message"] == "Invalid coupon code."

    def test_insufficient_stock(self, client, auth, seed, customer, widget, address):
        seed.cart_item(widget.id, 10)
        other = seed.address(user_id=2)
        seed.cart_item(widget.id, 1, user_id=2)
        second_buyer = {"X-User-Id": "2", "X-User-Role": "Customer"}
        assert client.post("/orders", json={"address_id": other.id}, headers=second_buyer).status_code == 201

        response = _checkout(client, auth, customer, address.id)

        assert response.status_code == 409
        assert response.json()["kind"] == "insufficient_stock"
        assert seed.cart_lines() == [(widget.id, 10)]


class TestOrderReads:
    @pytest.fixture
    def order(self, client, auth, seed, customer, widget, address):
        seed.cart_item(widget.id, 1)
        return _checkout(client, auth, customer, address.id).json()

    def test_owner_and_admin_can_read(self, client, auth, customer, admin, order):
        assert client.get(f"/orders/{order['id']}", headers=auth(customer)).status_code == 200
        assert client.get(f"/orders/{order['id']}", headers=auth(admin)).status_code == 200

    def test_foreign_customer_gets_404(self, client, auth, other_customer, order):
        response = client.get(f"/orders/{order['id']}", headers=auth(other_customer))
        assert response.status_code == 404

    def test_my_orders(self, client, auth, customer, order):
        response = client.get("/orders/mine", headers=auth(customer))
        assert [entry["id"] for entry in response.json()] == [order["id"]]

    def test_admin_listing(self, client, auth, admin, order):
        response = client.get("/orders/admin", params={"status": "pending"}, headers=auth(admin))

        body = response.json()
        assert body["total_records"] == 1
        assert body["data"][0]["order_number"] == order["order_number"]

    def test_admin_listing_rejects_unknown_status(self, client, auth, admin, order):
        response = client.get("/orders/admin", params={"status": "Lost"}, headers=auth(admin))
        assert response.status_code == 400

    def test_admin_listing_is_admin_only(self, client, auth, seller, order):
        assert client.get("/orders/admin", headers=auth(seller)).status_code == 403

    def test_seller_listing(self, client, auth, seller, order):
        body = client.get("/orders/seller", headers=auth(seller)).json()
        assert body["data"][0]["total_amount"] == "100.00"
        assert body["data"][0]["discount_amount"] is None


class TestStatusEndpoint:
    @pytest.fixture
    def order(self, client, auth, seed, customer, widget, address):
        seed.cart_item(widget.id, 1)
        return _checkout(client, auth, customer, address.id).json()

    def test_seller_walks_the_lifecycle(self, client, auth, seller, order):
        url = f"/orders/{order['id']}/status"
        assert client.put(url, json={"status": "Confirmed"}, headers=auth(seller)).status_code == 200

        shipped = client.put(url, json={"status": "Shipped", "tracking_number": "TRK-1"}, headers=auth(seller))

        assert shipped.json()["status"] == "Shipped"
        assert shipped.json()["tracking_number"] == "TRK-1"

    def test_invalid_transition(self, client, auth, admin, order):
        response = client.put(f"/orders/{order['id']}/status", json={"status": "Delivered"}, headers=auth(admin))

        assert response.status_code == 409
        assert response.json()["kind"] == "invalid_transition"

    def test_customer_forbidden(self, client, auth, customer, order):
        response = client.put(f"/orders/{order['id']}/status", json={"status": "Cancelled"}, headers=auth(customer))
        assert response.status_code == 403


class TestCouponValidateEndpoint:
    def test_valid(self, client, auth, seed, customer):
        seed.coupon(code="TENPC", type="Percentage", value="10", max_discount_amount="25")

        response = client.post("/coupons/validate", json={"code": "TENPC", "order_amount": "400"}, headers=auth(customer))

        assert response.json() == {"valid": True, "discount_amount": "25.00", "reason": None}

    def test_below_minimum(self, client, auth, seed, customer):
        seed.coupon(code="BIG", min_purchase_amount="1500")

        response = client.post("/coupons/validate", json={"code": "BIG", "order_amount": "999"}, headers=auth(customer))

        body = response.json()
        assert response.status_code == 200
        assert body["valid"] is False
        assert body["reason"] == "Minimum order amount of ₹1,500 required."


class TestReportEndpoint:
    def test_admin_report(self, client, auth, seed, admin, customer, widget, address):
        seed.cart_item(widget.id, 1)
        _checkout(client, auth, customer, address.id)
        now = datetime.now(UTC)

        response = client.get(
            "/reports",
            params={"from_utc": (now - timedelta(hours=1)).isoformat(), "to_utc": (now + timedelta(hours=1)).isoformat()},
            headers=auth(admin),
        )

        assert response.status_code == 200
        assert response.json()["total_orders"] == 1
        assert response.json()["total_revenue"] == "105.00"

    def test_customer_forbidden(self, client, auth, customer):
        response = client.get(
            "/reports",
            params={"from_utc": "2025-03-01T00:00:00Z", "to_utc": "2025-03-02T00:00:00Z"},
            headers=auth(customer),
        )
        assert response.status_code == 403

    def test_inverted_window(self, client, auth, admin):
        response = client.get(
            "/reports",
            params={"from_utc": "2025-03-02T00:00:00Z", "to_utc": "2025-03-01T00:00:00Z"},
            headers=auth(admin),
        )
        assert response.status_code == 400
