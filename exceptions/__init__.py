"""
Custom exceptions for the storefront order backbone.

This module provides a hierarchy of custom exceptions for consistent error handling
throughout the application.

Exception Hierarchy:
--------------------
StorefrontException (base)
├── CartException
│   ├── CartNotFoundException
│   ├── EmptyCartException
│   ├── CartItemNotFoundException
│   ├── CartOwnershipException
│   ├── ProductUnavailableException
│   └── CartChangedException
├── CouponException
│   ├── CouponNotFoundException
│   ├── CouponNotYetActiveException
│   ├── CouponExpiredException
│   ├── CouponExhaustedException
│   └── CouponMinimumNotMetException
├── OrderException
│   ├── OrderNotFoundException
│   ├── InvalidOrderNumberException
│   ├── InsufficientStockException
│   ├── OrderNotCancellableException
│   ├── InvalidOrderTransitionException
│   ├── OrderVersionConflictException
│   ├── OrderNotPayableException
│   └── OrderOwnershipException
├── PaymentException
│   ├── PaymentNotFoundException
│   ├── PaymentGatewayException
│   │   ├── PaymentGatewayUnavailableException
│   │   └── PaymentIntentException
│   └── InvalidWebhookSignatureException
└── AuthorizationException
    ├── MissingOwnerIdentityException
    └── AdminPrivilegesRequiredException

Usage:
------
Services raise specific exceptions:
    raise OrderNotFoundException(order_ref=order_id)

The web layer maps them to HTTP responses (utils/error_handler.py):
    status_code, body = handle_service_error(exc)
"""

from .base import StorefrontException
from .auth import AuthorizationException, MissingOwnerIdentityException, AdminPrivilegesRequiredException
from .cart import (
    CartException,
    CartNotFoundException,
    EmptyCartException,
    CartItemNotFoundException,
    CartOwnershipException,
    ProductUnavailableException,
    CartChangedException,
)
from .coupon import (
    CouponException,
    CouponNotFoundException,
    CouponNotYetActiveException,
    CouponExpiredException,
    CouponExhaustedException,
    CouponMinimumNotMetException,
)
from .order import (
    OrderException,
    OrderNotFoundException,
    InvalidOrderNumberException,
    InsufficientStockException,
    OrderNotCancellableException,
    InvalidOrderTransitionException,
    OrderVersionConflictException,
    OrderNotPayableException,
    OrderOwnershipException,
)
from .payment import (
    PaymentException,
    PaymentNotFoundException,
    PaymentGatewayException,
    PaymentGatewayUnavailableException,
    PaymentIntentException,
    InvalidWebhookSignatureException,
)

__all__ = [
    # Base
    'StorefrontException',

    # Authorization
    'AuthorizationException',
    'MissingOwnerIdentityException',
    'AdminPrivilegesRequiredException',

    # Cart
    'CartException',
    'CartNotFoundException',
    'EmptyCartException',
    'CartItemNotFoundException',
    'CartOwnershipException',
    'ProductUnavailableException',
    'CartChangedException',

    # Coupon
    'CouponException',
    'CouponNotFoundException',
    'CouponNotYetActiveException',
    'CouponExpiredException',
    'CouponExhaustedException',
    'CouponMinimumNotMetException',

    # Order
    'OrderException',
    'OrderNotFoundException',
    'InvalidOrderNumberException',
    'InsufficientStockException',
    'OrderNotCancellableException',
    'InvalidOrderTransitionException',
    'OrderVersionConflictException',
    'OrderNotPayableException',
    'OrderOwnershipException',

    # Payment
    'PaymentException',
    'PaymentNotFoundException',
    'PaymentGatewayException',
    'PaymentGatewayUnavailableException',
    'PaymentIntentException',
    'InvalidWebhookSignatureException',
]
