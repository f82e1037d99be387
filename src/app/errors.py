"""Infrastructure-seam exceptions

Business failures travel as ``libs.result.Error`` values. These exceptions
are raised by collaborators and engines where a failure cannot be expressed
as a normal outcome.
"""


class PaymentProviderError(Exception):
    """The payment provider rejected or failed a request"""

    def __init__(self, message: str, description: str = None, status_code: int = None):
        super().__init__(message)
        self.description = description
        self.status_code = status_code


class IdentityProviderError(Exception):
    """The identity provider could not be reached"""


class OrderNotFoundError(Exception):
    """No order matches the given identifier"""

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class LedgerTransitionError(Exception):
    """The conditional status update could not be applied"""


class CreditGrantError(Exception):
    """Crediting a paid order failed after every configured attempt"""
