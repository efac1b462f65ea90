"""
EShop - Custom Exceptions
==========================
Operational (expected) errors that carry an HTTP status and a user-facing message.
Anything that is not an EShopError is treated as a programming error by the
handlers registered in main.py.
"""


class EShopError(Exception):
    """Base exception for all business logic errors."""
    status_code = 500

    def __init__(self, message: str = "Something went very wrong!", status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def status(self) -> str:
        """'fail' for client errors, 'error' for server errors."""
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationError(EShopError):
    """Raised when input is well-formed but not acceptable."""
    status_code = 400


class AuthenticationError(EShopError):
    """Raised when authentication fails."""
    status_code = 401


class AuthorizationError(EShopError):
    """Raised when user lacks permission."""
    status_code = 403


class NotFoundError(EShopError):
    """Raised when a requested resource doesn't exist."""
    status_code = 404


class DuplicateError(EShopError):
    """Raised for unique constraint violations at the business level."""
    status_code = 400


class InsufficientInventoryError(EShopError):
    """Raised when an order would drive product stock below zero."""
    status_code = 409

    def __init__(self, product_titles=None):
        if product_titles:
            msg = f"Not enough stock for: {', '.join(product_titles)}"
        else:
            msg = "Not enough stock."
        super().__init__(msg)


class PaymentError(EShopError):
    """Raised for payment gateway errors."""
    status_code = 502


class EmailDeliveryError(EShopError):
    """Raised when an outgoing email could not be sent."""
    status_code = 500


class SignatureVerificationError(EShopError):
    """Raised when a payment-provider webhook signature does not verify."""
    status_code = 400
