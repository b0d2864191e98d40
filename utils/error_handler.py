"""
Error Handler Utility for HTTP endpoints

Provides centralized error handling for the API with:
- Automatic exception to (HTTP status, error code) mapping
- Consistent JSON error bodies: {"error": <code>, "message": ..., "details": {...}}
- Logging for debugging

Usage in routers (registered once in app.py):
    from utils.error_handler import handle_service_error

    @app.exception_handler(StorefrontException)
    async def storefront_exception_handler(request, exc):
        status_code, body = handle_service_error(exc)
        return JSONResponse(status_code=status_code, content=body)
"""

import logging

from exceptions import (
    StorefrontException,
    MissingOwnerIdentityException,
    AdminPrivilegesRequiredException,
    CartNotFoundException,
    EmptyCartException,
    CartItemNotFoundException,
    CartOwnershipException,
    ProductUnavailableException,
    CartChangedException,
    CouponNotFoundException,
    CouponNotYetActiveException,
    CouponExpiredException,
    CouponExhaustedException,
    CouponMinimumNotMetException,
    OrderNotFoundException,
    InvalidOrderNumberException,
    InsufficientStockException,
    OrderNotCancellableException,
    InvalidOrderTransitionException,
    OrderVersionConflictException,
    OrderNotPayableException,
    OrderOwnershipException,
    PaymentNotFoundException,
    PaymentGatewayException,
    PaymentGatewayUnavailableException,
    PaymentIntentException,
    InvalidWebhookSignatureException,
)

logger = logging.getLogger(__name__)

# Map exception types to (HTTP status, error code)
ERROR_MAPPING: dict[type[StorefrontException], tuple[int, str]] = {
    # Authorization
    MissingOwnerIdentityException: (401, "OWNER_IDENTITY_REQUIRED"),
    AdminPrivilegesRequiredException: (403, "ADMIN_REQUIRED"),

    # Cart
    CartNotFoundException: (404, "CART_NOT_FOUND"),
    EmptyCartException: (400, "EMPTY_CART"),
    CartItemNotFoundException: (404, "CART_ITEM_NOT_FOUND"),
    CartOwnershipException: (403, "CART_OWNERSHIP_VIOLATION"),
    ProductUnavailableException: (400, "PRODUCT_UNAVAILABLE"),
    CartChangedException: (409, "CART_CHANGED"),

    # Coupon
    CouponNotFoundException: (400, "COUPON_NOT_FOUND"),
    CouponNotYetActiveException: (400, "COUPON_NOT_YET_ACTIVE"),
    CouponExpiredException: (400, "COUPON_EXPIRED"),
    CouponExhaustedException: (409, "COUPON_EXHAUSTED"),
    CouponMinimumNotMetException: (400, "COUPON_MINIMUM_NOT_MET"),

    # Order
    OrderNotFoundException: (404, "ORDER_NOT_FOUND"),
    OrderOwnershipException: (404, "ORDER_NOT_FOUND"),  # Never reveal that the order exists
    InvalidOrderNumberException: (400, "INVALID_ORDER_NUMBER"),
    InsufficientStockException: (409, "INSUFFICIENT_STOCK"),
    OrderNotCancellableException: (409, "ORDER_NOT_CANCELLABLE"),
    InvalidOrderTransitionException: (409, "INVALID_ORDER_TRANSITION"),
    OrderVersionConflictException: (409, "ORDER_VERSION_CONFLICT"),
    OrderNotPayableException: (409, "ORDER_NOT_PAYABLE"),

    # Payment
    PaymentNotFoundException: (404, "PAYMENT_NOT_FOUND"),
    PaymentGatewayException: (502, "PAYMENT_GATEWAY_ERROR"),
    PaymentGatewayUnavailableException: (502, "PAYMENT_GATEWAY_UNAVAILABLE"),
    PaymentIntentException: (502, "PAYMENT_INTENT_FAILED"),
    InvalidWebhookSignatureException: (403, "INVALID_WEBHOOK_SIGNATURE"),
}


def get_error_status(exception: StorefrontException) -> tuple[int, str]:
    """
    Resolve (HTTP status, error code) for an exception.

    Walks the MRO so subclasses without their own entry inherit the
    mapping of the closest mapped ancestor.
    """
    for exception_type in type(exception).__mro__:
        if exception_type in ERROR_MAPPING:
            return ERROR_MAPPING[exception_type]
    logger.error(f"Unmapped exception type: {type(exception).__name__}")
    return 500, "INTERNAL_ERROR"


def handle_service_error(exception: StorefrontException) -> tuple[int, dict]:
    """
    Convert service exception to HTTP status and JSON error body.

    Example:
        try:
            order = await OrderService.get_order(order_id)
        except OrderNotFoundException as e:
            status_code, body = handle_service_error(e)
            # -> 404, {"error": "ORDER_NOT_FOUND", "message": "...", "details": {...}}
    """
    status_code, error_code = get_error_status(exception)

    if status_code >= 500:
        logger.error(f"Service error handled: {type(exception).__name__} - {str(exception)}")
    else:
        logger.warning(f"Service error handled: {type(exception).__name__} - {str(exception)}")

    return status_code, {
        "error": error_code,
        "message": exception.message,
        "details": exception.details,
    }


def handle_unexpected_error(exception: Exception) -> tuple[int, dict]:
    """
    Handle unexpected exceptions (non-StorefrontException).

    The full traceback goes to the log; the client only gets a generic message.
    """
    logger.error(f"Unexpected error: {type(exception).__name__} - {str(exception)}", exc_info=exception)
    return 500, {
        "error": "INTERNAL_ERROR",
        "message": "An unexpected error occurred",
        "details": {},
    }
