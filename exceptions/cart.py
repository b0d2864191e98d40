"""
Cart-related exceptions.
"""

from .base import StorefrontException


class CartException(StorefrontException):
    """Base exception for cart-related errors."""
    pass


class CartNotFoundException(CartException):
    """Raised when the referenced cart does not exist."""

    def __init__(self, cart_id: str):
        super().__init__(
            f"Cart {cart_id} not found",
            details={'cart_id': cart_id}
        )
        self.cart_id = cart_id


class EmptyCartException(CartException):
    """Raised when trying to checkout with empty cart."""

    def __init__(self, cart_id: str):
        super().__init__(
            f"Cart {cart_id} is empty",
            details={'cart_id': cart_id}
        )
        self.cart_id = cart_id


class CartItemNotFoundException(CartException):
    """Raised when cart item not found."""

    def __init__(self, cart_item_id: int):
        super().__init__(
            f"Cart item {cart_item_id} not found",
            details={'cart_item_id': cart_item_id}
        )
        self.cart_item_id = cart_item_id


class CartOwnershipException(CartException):
    """Raised when the caller's identity does not own the cart."""

    def __init__(self, cart_id: str):
        super().__init__(
            f"Cart {cart_id} does not belong to the current owner",
            details={'cart_id': cart_id}
        )
        self.cart_id = cart_id


class ProductUnavailableException(CartException):
    """Raised when adding a missing or inactive product to a cart."""

    def __init__(self, product_id: str):
        super().__init__(
            f"Product {product_id} is not available",
            details={'product_id': product_id}
        )
        self.product_id = product_id


class CartChangedException(CartException):
    """
    Raised when cart items changed between reading the cart and converting it.

    Checkout re-reads the cart and tries again; the error only reaches the
    client when the cart keeps changing.
    """

    def __init__(self, cart_id: str):
        super().__init__(
            f"Cart {cart_id} changed during checkout",
            details={'cart_id': cart_id}
        )
        self.cart_id = cart_id
