"""Tests for Stripe checkout sessions and the checkout webhook."""

import json
import time

import httpx
import pytest

from modules.cart.models import Cart
from modules.order.models import Order
from modules.payment.gateways.stripe import compute_signature

API = "/api/v1"
WEBHOOK_SECRET = "whsec_test_secret"


def signed_headers(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> dict:
    ts = timestamp or int(time.time())
    return {
        "stripe-signature": f"t={ts},v1={compute_signature(payload, ts, secret)}",
        "content-type": "application/json",
    }


def completed_event(cart_id, email, session_id="cs_test_1", amount_total=25000, event_type="checkout.session.completed"):
    event = {
        "id": "evt_test_1",
        "type": event_type,
        "data": {"object": {
            "id": session_id,
            "client_reference_id": str(cart_id),
            "customer_email": email,
            "amount_total": amount_total,
            "metadata": {"details": "1 Main St", "city": "Springfield", "phone": "5550100", "postal_code": "12345"},
        }},
    }
    return json.dumps(event).encode("utf-8")


@pytest.fixture
def filled_cart(client, shopper, auth_headers, make_product):
    headers = auth_headers(shopper)
    phone = make_product(title="Phone", price="100.00", quantity=10)
    charger = make_product(title="Charger", price="25.00", quantity=5)
    for product in (phone, phone, charger):
        client.post(f"{API}/cart", json={"product_id": product.id}, headers=headers)
    cart_id = client.get(f"{API}/cart", headers=headers).json()["data"]["id"]
    return cart_id, phone, charger


class TestWebhook:
    def test_completed_session_creates_paid_order(self, client, db, shopper, filled_cart):
        cart_id, phone, charger = filled_cart
        payload = completed_event(cart_id, shopper.email)

        response = client.post("/webhook-checkout", content=payload, headers=signed_headers(payload))
        assert response.status_code == 200
        assert response.json() == {"received": True}

        order = db.query(Order).one()
        assert order.is_paid is True
        assert order.paid_at is not None
        assert order.payment_method == "card"
        assert order.payment_session_id == "cs_test_1"
        assert float(order.total_order_price) == 250.0
        assert order.user_id == shopper.id
        assert order.shipping_city == "Springfield"
        assert len(order.items) == 2

        assert db.query(Cart).filter(Cart.id == cart_id).first() is None
        db.refresh(phone)
        db.refresh(charger)
        assert (phone.quantity, phone.sold) == (8, 2)
        assert (charger.quantity, charger.sold) == (4, 1)

    def test_redelivered_event_is_not_applied_twice(self, client, db, shopper, filled_cart):
        cart_id, phone, _ = filled_cart
        payload = completed_event(cart_id, shopper.email)

        first = client.post("/webhook-checkout", content=payload, headers=signed_headers(payload))
        second = client.post("/webhook-checkout", content=payload, headers=signed_headers(payload))
        assert first.status_code == second.status_code == 200

        assert db.query(Order).count() == 1
        db.refresh(phone)
        assert (phone.quantity, phone.sold) == (8, 2)

    def test_bad_signature_is_rejected(self, client, db, shopper, filled_cart):
        cart_id, phone, _ = filled_cart
        payload = completed_event(cart_id, shopper.email)

        response = client.post(
            "/webhook-checkout", content=payload, headers=signed_headers(payload, secret="whsec_wrong"),
        )
        assert response.status_code == 400
        assert response.json()["message"].startswith("Webhook Error:")

        assert db.query(Order).count() == 0
        assert db.query(Cart).filter(Cart.id == cart_id).first() is not None
        db.refresh(phone)
        assert (phone.quantity, phone.sold) == (10, 0)

    def test_missing_signature_header(self, client, db, shopper, filled_cart):
        payload = completed_event(filled_cart[0], shopper.email)
        response = client.post("/webhook-checkout", content=payload)
        assert response.status_code == 400
        assert db.query(Order).count() == 0

    def test_stale_timestamp_is_rejected(self, client, db, shopper, filled_cart):
        payload = completed_event(filled_cart[0], shopper.email)
        headers = signed_headers(payload, timestamp=int(time.time()) - 3600)
        response = client.post("/webhook-checkout", content=payload, headers=headers)
        assert response.status_code == 400

    def test_other_event_types_are_acknowledged(self, client, db, shopper, filled_cart):
        payload = completed_event(filled_cart[0], shopper.email, event_type="payment_intent.created")
        response = client.post("/webhook-checkout", content=payload, headers=signed_headers(payload))
        assert response.status_code == 200
        assert db.query(Order).count() == 0

    def test_unknown_cart_is_acknowledged_without_order(self, client, db, shopper, filled_cart):
        payload = completed_event(9999, shopper.email)
        response = client.post("/webhook-checkout", content=payload, headers=signed_headers(payload))
        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert db.query(Order).count() == 0

    def test_cart_of_another_user_is_not_ordered(self, client, db, make_user, shopper, filled_cart):
        other = make_user(email="other@example.com")
        payload = completed_event(filled_cart[0], other.email)
        response = client.post("/webhook-checkout", content=payload, headers=signed_headers(payload))
        assert response.status_code == 200
        assert db.query(Order).count() == 0
        assert db.query(Cart).filter(Cart.id == filled_cart[0]).first() is not None

    def test_insufficient_stock_rolls_back_and_acknowledges(
        self, client, db, shopper, auth_headers, make_product,
    ):
        headers = auth_headers(shopper)
        phone = make_product(title="Phone", price="100.00", quantity=10)
        last_one = make_product(title="Last One", price="40.00", quantity=1)
        for product in (phone, last_one, last_one):
            client.post(f"{API}/cart", json={"product_id": product.id}, headers=headers)
        cart_id = client.get(f"{API}/cart", headers=headers).json()["data"]["id"]

        payload = completed_event(cart_id, shopper.email, amount_total=18000)
        response = client.post("/webhook-checkout", content=payload, headers=signed_headers(payload))
        assert response.status_code == 200
        assert response.json() == {"received": True}

        assert db.query(Order).count() == 0
        assert db.query(Cart).filter(Cart.id == cart_id).one().items
        db.refresh(phone)
        db.refresh(last_one)
        assert (phone.quantity, phone.sold) == (10, 0)
        assert (last_one.quantity, last_one.sold) == (1, 0)


class TestCheckoutSession:
    def test_creates_session_from_cart(self, client, db, shopper, auth_headers, filled_cart, monkeypatch):
        cart_id = filled_cart[0]
        captured = {}

        def fake_post(url, data=None, headers=None, timeout=None):
            captured.update(url=url, data=data, headers=headers)
            return httpx.Response(200, json={"id": "cs_test_42", "url": "https://checkout.stripe.com/c/pay/cs_test_42"})

        monkeypatch.setattr("modules.payment.gateways.stripe.httpx.post", fake_post)

        response = client.get(
            f"{API}/orders/checkout-session/{cart_id}?city=Springfield&details=1%20Main%20St",
            headers=auth_headers(shopper),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Success"
        assert body["session"]["id"] == "cs_test_42"

        form = captured["data"]
        assert captured["headers"]["Authorization"] == "Bearer sk_test_dummy"
        assert form["mode"] == "payment"
        assert form["client_reference_id"] == str(cart_id)
        assert form["customer_email"] == shopper.email
        assert form["line_items[0][price_data][unit_amount]"] == "10000"
        assert form["line_items[0][quantity]"] == "2"
        assert form["line_items[1][price_data][unit_amount]"] == "2500"
        assert form["metadata[city]"] == "Springfield"
        assert form["success_url"].endswith("/orders")
        assert form["cancel_url"].endswith("/cart")

        # Nothing local changes until the webhook arrives
        assert db.query(Order).count() == 0
        assert db.query(Cart).filter(Cart.id == cart_id).first() is not None

    def test_provider_error_is_reported(self, client, shopper, auth_headers, filled_cart, monkeypatch):
        def fake_post(url, data=None, headers=None, timeout=None):
            return httpx.Response(400, json={"error": {"message": "Invalid currency"}})

        monkeypatch.setattr("modules.payment.gateways.stripe.httpx.post", fake_post)

        response = client.get(f"{API}/orders/checkout-session/{filled_cart[0]}", headers=auth_headers(shopper))
        assert response.status_code == 502
        assert response.json() == {"status": "error", "message": "Payment provider error: Invalid currency"}

    def test_unknown_cart(self, client, shopper, auth_headers):
        response = client.get(f"{API}/orders/checkout-session/555", headers=auth_headers(shopper))
        assert response.status_code == 404
