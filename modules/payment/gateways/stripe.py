"""
Stripe Gateway
===============
Hosted Checkout over the REST API (form-encoded, bearer secret key).
Webhooks are verified against the `stripe-signature` header:
    t=<unix ts>,v1=<hex hmac-sha256 of "<t>.<raw body>">
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from config.settings import (
    STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, STRIPE_CURRENCY, STRIPE_WEBHOOK_TOLERANCE,
)
from common.exceptions import SignatureVerificationError
from common.helpers import now_utc
from modules.payment.gateways import (
    BaseGateway, CheckoutSessionRequest, CheckoutSessionResult, register_gateway,
)

logger = logging.getLogger("eshop.gateway.stripe")

STRIPE_CHECKOUT_URL = "https://api.stripe.com/v1/checkout/sessions"


def _flatten(data: Any, prefix: str = "") -> Dict[str, str]:
    """Nested dict/list -> Stripe form keys, e.g. line_items[0][price_data][currency]."""
    out: Dict[str, str] = {}
    if isinstance(data, dict):
        items = data.items()
    elif isinstance(data, (list, tuple)):
        items = enumerate(data)
    else:
        out[prefix] = str(data)
        return out
    for key, value in items:
        if value is None:
            continue
        name = f"{prefix}[{key}]" if prefix else str(key)
        out.update(_flatten(value, name))
    return out


def _parse_signature_header(header: str) -> Tuple[Optional[int], List[str]]:
    timestamp = None
    signatures = []
    for part in (header or "").split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


class StripeGateway(BaseGateway):
    name = "stripe"
    label = "Stripe"

    def create_checkout_session(self, req: CheckoutSessionRequest) -> CheckoutSessionResult:
        form = _flatten({
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": STRIPE_CURRENCY,
                        "unit_amount": item.unit_amount,
                        "product_data": {"name": item.name},
                    },
                    "quantity": item.quantity,
                }
                for item in req.line_items
            ],
            "success_url": req.success_url,
            "cancel_url": req.cancel_url,
            "customer_email": req.customer_email,
            "client_reference_id": req.client_reference_id,
            "metadata": req.metadata or None,
        })
        try:
            resp = httpx.post(
                STRIPE_CHECKOUT_URL,
                data=form,
                headers={"Authorization": f"Bearer {STRIPE_SECRET_KEY}"},
                timeout=15,
            )
            data = resp.json()
        except httpx.TimeoutException:
            return CheckoutSessionResult(success=False, error_message="Payment provider did not respond. Try again.")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Stripe create session failed [{req.client_reference_id}]: {e}")
            return CheckoutSessionResult(success=False, error_message="Could not reach the payment provider.")

        if resp.status_code >= 400:
            msg = (data.get("error") or {}).get("message", f"HTTP {resp.status_code}")
            logger.warning(f"Stripe rejected session [{req.client_reference_id}]: {msg}")
            return CheckoutSessionResult(success=False, error_message=f"Payment provider error: {msg}")

        logger.info(f"Stripe session created [{req.client_reference_id}]: {data.get('id')}")
        return CheckoutSessionResult(
            success=True,
            session=data,
            session_id=data.get("id"),
            redirect_url=data.get("url"),
        )

    def construct_event(self, payload: bytes, signature_header: str) -> Dict[str, Any]:
        if not STRIPE_WEBHOOK_SECRET:
            raise SignatureVerificationError("Webhook Error: webhook secret is not configured")

        timestamp, signatures = _parse_signature_header(signature_header)
        if timestamp is None or not signatures:
            raise SignatureVerificationError("Webhook Error: unable to extract timestamp and signatures from header")

        expected = compute_signature(payload, timestamp, STRIPE_WEBHOOK_SECRET)
        if not any(hmac.compare_digest(expected, sig) for sig in signatures):
            raise SignatureVerificationError("Webhook Error: no signatures found matching the expected signature for payload")

        if STRIPE_WEBHOOK_TOLERANCE and abs(now_utc().timestamp() - timestamp) > STRIPE_WEBHOOK_TOLERANCE:
            raise SignatureVerificationError("Webhook Error: timestamp outside the tolerance zone")

        try:
            return json.loads(payload)
        except ValueError:
            raise SignatureVerificationError("Webhook Error: invalid payload")


register_gateway(StripeGateway())
