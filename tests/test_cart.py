"""Tests for the shopping cart and coupons."""

from datetime import datetime, timedelta, timezone

import pytest

from common.helpers import as_utc, now_utc
from modules.cart.models import Cart
from modules.cart.service import cart_service
from modules.coupon.models import Coupon

API = "/api/v1"


@pytest.fixture
def phone(make_product):
    return make_product(title="Phone", price="200.00", quantity=10)


@pytest.fixture
def coupons(db):
    db.add_all([
        Coupon(name="SAVE25", expire=now_utc() + timedelta(days=7), discount=25),
        Coupon(name="OLD50", expire=now_utc() - timedelta(days=1), discount=50),
    ])
    db.commit()


class TestCartItems:
    def test_same_product_and_color_increments(self, client, shopper, auth_headers, phone):
        headers = auth_headers(shopper)
        client.post(f"{API}/cart", json={"product_id": phone.id, "color": "black"}, headers=headers)
        body = client.post(f"{API}/cart", json={"product_id": phone.id, "color": "black"}, headers=headers).json()

        assert body["status"] == "Success"
        assert body["numberOfCartItems"] == 1
        assert body["message"] == "Product added to cart successfully"
        assert body["data"]["cart_items"][0]["quantity"] == 2
        assert float(body["data"]["total_cart_price"]) == 400.0

    def test_different_color_is_a_new_line(self, client, shopper, auth_headers, phone):
        headers = auth_headers(shopper)
        client.post(f"{API}/cart", json={"product_id": phone.id, "color": "black"}, headers=headers)
        body = client.post(f"{API}/cart", json={"product_id": phone.id, "color": "white"}, headers=headers).json()
        assert body["numberOfCartItems"] == 2

    def test_unknown_product(self, client, shopper, auth_headers):
        response = client.post(f"{API}/cart", json={"product_id": 404}, headers=auth_headers(shopper))
        assert response.status_code == 404

    def test_update_quantity_and_remove(self, client, shopper, auth_headers, phone, make_product):
        headers = auth_headers(shopper)
        case = make_product(title="Case", price="15.00")
        client.post(f"{API}/cart", json={"product_id": phone.id}, headers=headers)
        cart = client.post(f"{API}/cart", json={"product_id": case.id}, headers=headers).json()["data"]
        phone_line, case_line = cart["cart_items"]

        body = client.put(f"{API}/cart/{case_line['id']}", json={"quantity": 4}, headers=headers).json()
        assert float(body["data"]["total_cart_price"]) == 260.0

        body = client.delete(f"{API}/cart/{phone_line['id']}", headers=headers).json()
        assert body["numberOfCartItems"] == 1
        assert float(body["data"]["total_cart_price"]) == 60.0

    def test_quantity_must_be_positive(self, client, shopper, auth_headers, phone):
        headers = auth_headers(shopper)
        cart = client.post(f"{API}/cart", json={"product_id": phone.id}, headers=headers).json()["data"]
        item_id = cart["cart_items"][0]["id"]
        response = client.put(f"{API}/cart/{item_id}", json={"quantity": 0}, headers=headers)
        assert response.status_code == 400

    def test_unknown_item(self, client, shopper, auth_headers, phone):
        headers = auth_headers(shopper)
        client.post(f"{API}/cart", json={"product_id": phone.id}, headers=headers)
        response = client.delete(f"{API}/cart/999", headers=headers)
        assert response.status_code == 404

    def test_clear_cart(self, client, db, shopper, auth_headers, phone):
        headers = auth_headers(shopper)
        client.post(f"{API}/cart", json={"product_id": phone.id}, headers=headers)
        assert client.delete(f"{API}/cart", headers=headers).status_code == 204
        assert db.query(Cart).count() == 0
        assert client.get(f"{API}/cart", headers=headers).status_code == 404

    def test_get_or_create_reuses_cart(self, db, shopper):
        first = cart_service.get_or_create_cart(db, shopper.id)
        second = cart_service.get_or_create_cart(db, shopper.id)
        assert first.id == second.id
        assert db.query(Cart).count() == 1


class TestCoupons:
    def test_valid_coupon_discounts_total(self, client, shopper, auth_headers, phone, coupons):
        headers = auth_headers(shopper)
        client.post(f"{API}/cart", json={"product_id": phone.id}, headers=headers)

        body = client.put(f"{API}/cart/applyCoupon", json={"coupon": "save25"}, headers=headers).json()
        assert float(body["data"]["total_cart_price"]) == 200.0
        assert float(body["data"]["total_price_after_discount"]) == 150.0

    @pytest.mark.parametrize("name", ["OLD50", "NOPE"])
    def test_invalid_coupon_leaves_cart_untouched(self, client, db, shopper, auth_headers, phone, coupons, name):
        headers = auth_headers(shopper)
        client.post(f"{API}/cart", json={"product_id": phone.id}, headers=headers)
        client.put(f"{API}/cart/applyCoupon", json={"coupon": "SAVE25"}, headers=headers)

        response = client.put(f"{API}/cart/applyCoupon", json={"coupon": name}, headers=headers)
        assert response.status_code == 404
        assert response.json() == {"status": "fail", "message": "Coupon is invalid or expired."}

        cart = client.get(f"{API}/cart", headers=headers).json()["data"]
        assert float(cart["total_price_after_discount"]) == 150.0

    def test_item_change_drops_discount(self, client, shopper, auth_headers, phone, coupons):
        headers = auth_headers(shopper)
        client.post(f"{API}/cart", json={"product_id": phone.id}, headers=headers)
        client.put(f"{API}/cart/applyCoupon", json={"coupon": "SAVE25"}, headers=headers)

        body = client.post(f"{API}/cart", json={"product_id": phone.id}, headers=headers).json()
        assert body["data"]["total_price_after_discount"] is None
        assert float(body["data"]["total_cart_price"]) == 400.0

    def test_coupon_without_cart(self, client, shopper, auth_headers, coupons):
        response = client.put(f"{API}/cart/applyCoupon", json={"coupon": "SAVE25"}, headers=auth_headers(shopper))
        assert response.status_code == 404


class TestCouponAdmin:
    def test_staff_creates_uppercase_coupon(self, client, manager, auth_headers):
        expire = (now_utc() + timedelta(days=3)).isoformat()
        response = client.post(
            f"{API}/coupons", json={"name": "spring", "expire": expire, "discount": 15},
            headers=auth_headers(manager),
        )
        assert response.status_code == 201
        assert response.json()["data"]["name"] == "SPRING"

    def test_duplicate_name(self, client, manager, auth_headers, coupons):
        expire = (now_utc() + timedelta(days=3)).isoformat()
        response = client.post(
            f"{API}/coupons", json={"name": "save25", "expire": expire, "discount": 5},
            headers=auth_headers(manager),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "This coupon name already exists. Please use a unique name."

    def test_expiry_in_past(self, client, manager, auth_headers):
        expire = (now_utc() - timedelta(days=1)).isoformat()
        response = client.post(
            f"{API}/coupons", json={"name": "late", "expire": expire, "discount": 5},
            headers=auth_headers(manager),
        )
        assert response.status_code == 400

    def test_expiry_with_offset_is_stored_as_utc(self, client, db, manager, auth_headers):
        expire = datetime(2099, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=5)))
        response = client.post(
            f"{API}/coupons", json={"name": "offset", "expire": expire.isoformat(), "discount": 5},
            headers=auth_headers(manager),
        )
        assert response.status_code == 201
        coupon = db.query(Coupon).filter(Coupon.name == "OFFSET").one()
        assert as_utc(coupon.expire) == datetime(2099, 1, 1, 7, 0, tzinfo=timezone.utc)

    def test_shopper_cannot_manage_coupons(self, client, shopper, auth_headers):
        assert client.get(f"{API}/coupons", headers=auth_headers(shopper)).status_code == 403
