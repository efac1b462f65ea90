"""
Payment Service
=================
Card checkout via Stripe Hosted Checkout.

Phase 1 (create_checkout_session) only talks to Stripe; nothing local changes.
Phase 2 (handle_webhook) verifies the signed event and hands a completed
session to the order placement protocol. Internal failures in phase 2 are
logged and still acknowledged, so Stripe does not keep redelivering an event
that cannot succeed without an operator.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from common.exceptions import NotFoundError, PaymentError, ValidationError
from common.helpers import to_minor_units
from modules.cart.models import Cart
from modules.order.service import order_service
from modules.user.models import User

# Import gateway modules to trigger register_gateway() calls
from modules.payment.gateways import get_gateway, CheckoutLineItem, CheckoutSessionRequest
import modules.payment.gateways.stripe  # noqa: F401

logger = logging.getLogger("eshop.payment")

CHECKOUT_GATEWAY = "stripe"
CHECKOUT_COMPLETED = "checkout.session.completed"


class PaymentService:

    def create_checkout_session(self, db: Session, user: User, cart_id: int, base_url: str,
                                shipping_address: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        cart = db.query(Cart).filter(Cart.id == cart_id).first()
        if not cart or cart.user_id != user.id:
            raise NotFoundError(f"No cart found with ID: {cart_id}")
        if not cart.items:
            raise ValidationError("Cart is empty. Cannot create an order.")

        base_url = base_url.rstrip("/")
        req = CheckoutSessionRequest(
            line_items=[
                CheckoutLineItem(
                    name=item.product.title,
                    unit_amount=to_minor_units(item.price),
                    quantity=item.quantity,
                )
                for item in cart.items
            ],
            success_url=f"{base_url}/orders",
            cancel_url=f"{base_url}/cart",
            customer_email=user.email,
            client_reference_id=str(cart.id),
            metadata={k: v for k, v in (shipping_address or {}).items() if v is not None},
        )

        result = get_gateway(CHECKOUT_GATEWAY).create_checkout_session(req)
        if not result.success:
            raise PaymentError(result.error_message)
        return result.session

    def handle_webhook(self, db: Session, payload: bytes, signature_header: str) -> Dict[str, Any]:
        """Raises SignatureVerificationError for unsigned / tampered requests."""
        event = get_gateway(CHECKOUT_GATEWAY).construct_event(payload, signature_header)
        event_type = event.get("type")

        if event_type == CHECKOUT_COMPLETED:
            session = (event.get("data") or {}).get("object") or {}
            try:
                order = order_service.create_card_order(db, session)
                logger.info(f"Webhook {event.get('id')}: session {session.get('id')} -> order #{order.id}")
            except Exception as e:
                # Acknowledged on purpose: a retry would hit the same failure
                logger.error(
                    f"Webhook {event.get('id')}: order creation failed for session "
                    f"{session.get('id')} (cart {session.get('client_reference_id')}): {e}",
                    exc_info=True,
                )
        else:
            logger.debug(f"Webhook {event.get('id')}: ignoring event type {event_type}")

        return {"received": True}


# Singleton
payment_service = PaymentService()
