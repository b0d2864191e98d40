"""
Order-related exceptions.
"""

from .base import StorefrontException


class OrderException(StorefrontException):
    """Base exception for order-related errors."""
    pass


class OrderNotFoundException(OrderException):
    """Raised when order is not found in database."""

    def __init__(self, order_ref: str):
        super().__init__(
            f"Order {order_ref} not found",
            details={'order_ref': order_ref}
        )
        self.order_ref = order_ref


class InvalidOrderNumberException(OrderException):
    """Raised when an order number does not match ORD-YYYY-NNNN."""

    def __init__(self, order_number: str):
        super().__init__(
            f"Invalid order number '{order_number}'",
            details={'order_number': order_number}
        )
        self.order_number = order_number


class InsufficientStockException(OrderException):
    """
    Raised when a product cannot cover the requested quantity.

    retryable=True marks a conflict detected at commit time (a concurrent
    order consumed the stock after the availability pre-check).
    """

    def __init__(self, product_id: str, product_name: str | None, requested: int, available: int,
                 retryable: bool = False):
        super().__init__(
            f"Insufficient stock for {product_name or product_id}: requested {requested}, available {available}",
            details={
                'product_id': product_id,
                'product_name': product_name,
                'requested': requested,
                'available': available,
                'retryable': retryable,
            }
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        self.retryable = retryable


class OrderNotCancellableException(OrderException):
    """Raised when cancelling an order outside pending/paid."""

    def __init__(self, order_id: str, current_status: str):
        super().__init__(
            f"Order {order_id} cannot be cancelled in status '{current_status}'",
            details={'order_id': order_id, 'current_status': current_status}
        )
        self.order_id = order_id
        self.current_status = current_status


class InvalidOrderTransitionException(OrderException):
    """Raised when a status change is not allowed by the state machine."""

    def __init__(self, order_id: str, current_status: str, requested_status: str):
        super().__init__(
            f"Order {order_id} cannot move from '{current_status}' to '{requested_status}'",
            details={'order_id': order_id, 'current_status': current_status, 'requested_status': requested_status}
        )
        self.order_id = order_id
        self.current_status = current_status
        self.requested_status = requested_status


class OrderVersionConflictException(OrderException):
    """Raised when a conditional order update lost a race with a concurrent writer."""

    def __init__(self, order_id: str, expected_version: int):
        super().__init__(
            f"Order {order_id} was modified concurrently (expected version {expected_version})",
            details={'order_id': order_id, 'expected_version': expected_version}
        )
        self.order_id = order_id
        self.expected_version = expected_version


class OrderOwnershipException(OrderException):
    """Raised when an owner attempts to access/modify an order they don't own."""

    def __init__(self, order_id: str):
        super().__init__(
            f"Order {order_id} not found",
            details={'order_id': order_id}
        )
        self.order_id = order_id


class OrderNotPayableException(OrderException):
    """Raised when a payment intent is requested for an order that is no longer pending."""

    def __init__(self, order_id: str, current_status: str):
        super().__init__(
            f"Order {order_id} cannot be paid in status '{current_status}'",
            details={'order_id': order_id, 'current_status': current_status}
        )
        self.order_id = order_id
        self.current_status = current_status
