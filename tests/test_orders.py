"""Tests for cash order placement and order management."""

from datetime import timedelta
from decimal import Decimal

import pytest

from common.helpers import now_utc
from modules.cart.models import Cart
from modules.coupon.models import Coupon
from modules.order.models import Order

API = "/api/v1"


@pytest.fixture
def stocked(make_product):
    return (
        make_product(title="Phone", price="100.00", quantity=10),
        make_product(title="Charger", price="50.00", quantity=5),
    )


def add_to_cart(client, headers, product, color=None):
    response = client.post(f"{API}/cart", json={"product_id": product.id, "color": color}, headers=headers)
    assert response.status_code == 200
    return response.json()["data"]


class TestCashOrder:
    def test_places_order_and_moves_stock(self, client, db, shopper, auth_headers, stocked):
        phone, charger = stocked
        headers = auth_headers(shopper)
        add_to_cart(client, headers, phone)
        add_to_cart(client, headers, phone)
        cart = add_to_cart(client, headers, charger)

        response = client.post(
            f"{API}/orders/{cart['id']}",
            json={"shipping_address": {"details": "1 Main St", "city": "Springfield"}},
            headers=headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert float(data["total_order_price"]) == 250.0
        assert data["payment_method"] == "cash"
        assert data["is_paid"] is False
        assert data["shipping_city"] == "Springfield"
        assert sorted((i["product"]["title"], i["quantity"]) for i in data["cart_items"]) == [
            ("Charger", 1), ("Phone", 2),
        ]

        assert db.query(Cart).filter(Cart.id == cart["id"]).first() is None
        db.refresh(phone)
        db.refresh(charger)
        assert (phone.quantity, phone.sold) == (8, 2)
        assert (charger.quantity, charger.sold) == (4, 1)

    def test_uses_discounted_total(self, client, db, shopper, auth_headers, stocked):
        phone, _ = stocked
        db.add(Coupon(name="SAVE10", expire=now_utc() + timedelta(days=1), discount=10))
        db.commit()
        headers = auth_headers(shopper)
        cart = add_to_cart(client, headers, phone)
        client.put(f"{API}/cart/applyCoupon", json={"coupon": "save10"}, headers=headers)

        response = client.post(f"{API}/orders/{cart['id']}", headers=headers)
        assert response.status_code == 201
        assert float(response.json()["data"]["total_order_price"]) == 90.0

    def test_insufficient_stock_rolls_back_everything(self, client, db, shopper, auth_headers, make_product):
        phone = make_product(title="Phone", price="100.00", quantity=10)
        rare = make_product(title="Rare Case", price="30.00", quantity=1)
        headers = auth_headers(shopper)
        add_to_cart(client, headers, phone)
        add_to_cart(client, headers, rare)
        cart = add_to_cart(client, headers, rare)

        response = client.post(f"{API}/orders/{cart['id']}", headers=headers)
        assert response.status_code == 409
        assert "Rare Case" in response.json()["message"]

        assert db.query(Order).count() == 0
        assert db.query(Cart).filter(Cart.id == cart["id"]).one().items
        db.refresh(phone)
        db.refresh(rare)
        assert (phone.quantity, phone.sold) == (10, 0)
        assert (rare.quantity, rare.sold) == (1, 0)

    def test_missing_cart(self, client, db, shopper, auth_headers):
        response = client.post(f"{API}/orders/999", headers=auth_headers(shopper))
        assert response.status_code == 404
        assert response.json() == {"status": "fail", "message": "There is no cart with this ID: 999"}
        assert db.query(Order).count() == 0

    def test_empty_cart(self, client, db, shopper, auth_headers):
        cart = Cart(user_id=shopper.id, total_cart_price=Decimal("0"))
        db.add(cart)
        db.commit()

        response = client.post(f"{API}/orders/{cart.id}", headers=auth_headers(shopper))
        assert response.status_code == 400
        assert db.query(Order).count() == 0

    def test_someone_elses_cart(self, client, db, make_user, shopper, auth_headers, stocked):
        cart = add_to_cart(client, auth_headers(shopper), stocked[0])
        other = make_user(email="other@example.com")

        response = client.post(f"{API}/orders/{cart['id']}", headers=auth_headers(other))
        assert response.status_code == 404
        assert db.query(Cart).filter(Cart.id == cart["id"]).first() is not None

    def test_staff_cannot_place_orders(self, client, admin, auth_headers):
        response = client.post(f"{API}/orders/1", headers=auth_headers(admin))
        assert response.status_code == 403


class TestOrderManagement:
    @pytest.fixture
    def order_id(self, client, shopper, auth_headers, stocked):
        headers = auth_headers(shopper)
        cart = add_to_cart(client, headers, stocked[0])
        return client.post(f"{API}/orders/{cart['id']}", headers=headers).json()["data"]["id"]

    def test_shopper_sees_only_own_orders(self, client, make_user, shopper, auth_headers, order_id):
        assert client.get(f"{API}/orders", headers=auth_headers(shopper)).json()["results"] == 1

        other = make_user(email="other@example.com")
        assert client.get(f"{API}/orders", headers=auth_headers(other)).json()["results"] == 0
        response = client.get(f"{API}/orders/{order_id}", headers=auth_headers(other))
        assert response.status_code == 404

    def test_staff_sees_all_orders(self, client, manager, auth_headers, order_id):
        body = client.get(f"{API}/orders", headers=auth_headers(manager)).json()
        assert body["results"] == 1

    def test_mark_paid_and_delivered(self, client, manager, auth_headers, order_id):
        headers = auth_headers(manager)
        paid = client.put(f"{API}/orders/{order_id}/pay", headers=headers).json()["data"]
        assert paid["is_paid"] is True
        assert paid["paid_at"] is not None

        delivered = client.put(f"{API}/orders/{order_id}/deliver", headers=headers).json()["data"]
        assert delivered["is_delivered"] is True
        assert delivered["delivered_at"] is not None

    def test_shopper_cannot_mark_paid(self, client, shopper, auth_headers, order_id):
        response = client.put(f"{API}/orders/{order_id}/pay", headers=auth_headers(shopper))
        assert response.status_code == 403

    def test_mark_paid_missing_order(self, client, admin, auth_headers):
        response = client.put(f"{API}/orders/42/pay", headers=auth_headers(admin))
        assert response.status_code == 404
