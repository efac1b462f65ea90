"""
Payment Gateway Abstraction
=============================
Each gateway implements create_checkout_session() and construct_event().
Registry pattern for gateway lookup by name.
"""

import logging
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field

logger = logging.getLogger("eshop.gateway")


@dataclass
class CheckoutLineItem:
    """One line of a hosted checkout page."""
    name: str
    unit_amount: int        # minor currency units (cents)
    quantity: int


@dataclass
class CheckoutSessionRequest:
    """Input for creating a hosted checkout session."""
    line_items: List[CheckoutLineItem]
    success_url: str
    cancel_url: str
    customer_email: str
    client_reference_id: str    # cart id, echoed back by the webhook
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class CheckoutSessionResult:
    """Result of create_checkout_session()."""
    success: bool
    session: Optional[Dict[str, Any]] = None
    session_id: Optional[str] = None
    redirect_url: Optional[str] = None
    error_message: Optional[str] = None


class BaseGateway:
    """Abstract gateway interface."""
    name: str = ""
    label: str = ""

    def create_checkout_session(self, req: CheckoutSessionRequest) -> CheckoutSessionResult:
        raise NotImplementedError

    def construct_event(self, payload: bytes, signature_header: str) -> Dict[str, Any]:
        """Verify a webhook signature and return the parsed event."""
        raise NotImplementedError


# ── Registry ──

_GATEWAYS: Dict[str, BaseGateway] = {}


def register_gateway(gw: BaseGateway):
    _GATEWAYS[gw.name] = gw


def get_gateway(name: str) -> Optional[BaseGateway]:
    return _GATEWAYS.get(name)
