"""
Coupon validation exceptions.

Each failed check of the coupon validator has its own exception so the
storefront can tell the customer exactly what to fix.
"""

from datetime import datetime

from .base import StorefrontException


class CouponException(StorefrontException):
    """Base exception for coupon-related errors."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        super().__init__(message, details={'code': code, **(details or {})})
        self.code = code


class CouponNotFoundException(CouponException):
    def __init__(self, code: str):
        super().__init__(code, f"Coupon '{code}' not found")


class CouponNotYetActiveException(CouponException):
    def __init__(self, code: str, starts_at: datetime):
        super().__init__(code, f"Coupon '{code}' is not yet active", {'starts_at': starts_at.isoformat()})
        self.starts_at = starts_at


class CouponExpiredException(CouponException):
    def __init__(self, code: str, expires_at: datetime):
        super().__init__(code, f"Coupon '{code}' has expired", {'expires_at': expires_at.isoformat()})
        self.expires_at = expires_at


class CouponExhaustedException(CouponException):
    def __init__(self, code: str, usage_limit: int | None):
        super().__init__(code, f"Coupon '{code}' usage limit reached", {'usage_limit': usage_limit})
        self.usage_limit = usage_limit


class CouponMinimumNotMetException(CouponException):
    def __init__(self, code: str, minimum_order: int, subtotal: int):
        super().__init__(
            code,
            f"Coupon '{code}' requires a minimum order of {minimum_order}",
            {'minimum_order': minimum_order, 'subtotal': subtotal}
        )
        self.minimum_order = minimum_order
        self.subtotal = subtotal
