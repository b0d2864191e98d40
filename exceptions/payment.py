"""
Payment-related exceptions.
"""

from .base import StorefrontException


class PaymentException(StorefrontException):
    """Base exception for payment-related errors."""
    pass


class PaymentNotFoundException(PaymentException):
    """Raised when the gateway does not know the payment id."""

    def __init__(self, payment_id: str):
        super().__init__(
            f"Payment {payment_id} not found at gateway",
            details={'payment_id': payment_id}
        )
        self.payment_id = payment_id


class PaymentGatewayException(PaymentException):
    """
    Raised when the payment gateway rejects a request or answers with an error.

    Integration failure: webhooks answer 5xx so the gateway re-delivers,
    checkout answers 502.
    """

    def __init__(self, operation: str, reason: str, status_code: int | None = None):
        super().__init__(
            f"Payment gateway {operation} failed: {reason}",
            details={'operation': operation, 'status_code': status_code}
        )
        self.operation = operation
        self.reason = reason
        self.status_code = status_code


class PaymentGatewayUnavailableException(PaymentGatewayException):
    """Raised on network errors and timeouts talking to the gateway."""

    def __init__(self, operation: str, reason: str):
        super().__init__(operation, reason)


class PaymentIntentException(PaymentGatewayException):
    """Raised when a payment intent could not be created for an already committed order."""

    def __init__(self, order_id: str, reason: str, status_code: int | None = None):
        super().__init__("create_payment_intent", reason, status_code)
        self.order_id = order_id
        self.details['order_id'] = order_id


class InvalidWebhookSignatureException(PaymentException):
    """Raised when the webhook signature header is missing or wrong."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid webhook signature: {reason}", details={'reason': reason})
        self.reason = reason
