"""
Tests for Error Handler Utility

Exception to (HTTP status, error code) mapping and the JSON error body.
"""

from exceptions import (
    StorefrontException,
    OrderNotFoundException,
    OrderOwnershipException,
    InsufficientStockException,
    EmptyCartException,
    CouponExhaustedException,
    OrderNotCancellableException,
    PaymentGatewayUnavailableException,
    PaymentIntentException,
    AdminPrivilegesRequiredException,
    MissingOwnerIdentityException,
)
from utils.error_handler import get_error_status, handle_service_error, handle_unexpected_error


class TestErrorMapping:
    """Test error handling utility"""

    def test_order_not_found(self):
        assert get_error_status(OrderNotFoundException("o1")) == (404, "ORDER_NOT_FOUND")

    def test_ownership_does_not_leak_existence(self):
        assert get_error_status(OrderOwnershipException("o1")) == get_error_status(OrderNotFoundException("o1"))

    def test_business_rules(self):
        assert get_error_status(EmptyCartException("c1"))[0] == 400
        assert get_error_status(InsufficientStockException("p1", "Mate", 2, 1))[0] == 409
        assert get_error_status(CouponExhaustedException("SAVE10", 1))[0] == 409
        assert get_error_status(OrderNotCancellableException("o1", "delivered"))[0] == 409

    def test_integration_errors_are_502(self):
        assert get_error_status(PaymentGatewayUnavailableException("fetch_payment", "timeout"))[0] == 502
        assert get_error_status(PaymentIntentException("o1", "HTTP 500", 500)) == (502, "PAYMENT_INTENT_FAILED")

    def test_authorization(self):
        assert get_error_status(MissingOwnerIdentityException())[0] == 401
        assert get_error_status(AdminPrivilegesRequiredException("u1", "list orders"))[0] == 403

    def test_unmapped_subclass_falls_back_to_parent(self):
        class CustomStockException(InsufficientStockException):
            pass

        assert get_error_status(CustomStockException("p1", None, 1, 0)) == (409, "INSUFFICIENT_STOCK")

    def test_unmapped_base_is_internal_error(self):
        assert get_error_status(StorefrontException("boom")) == (500, "INTERNAL_ERROR")


class TestErrorBody:

    def test_body_carries_details(self):
        status_code, body = handle_service_error(InsufficientStockException("p1", "Mate", 2, 1, retryable=True))

        assert status_code == 409
        assert body["error"] == "INSUFFICIENT_STOCK"
        assert "Mate" in body["message"]
        assert body["details"]["retryable"] is True
        assert body["details"]["available"] == 1

    def test_unexpected_error_hides_internals(self):
        status_code, body = handle_unexpected_error(RuntimeError("database password is hunter2"))

        assert status_code == 500
        assert body["error"] == "INTERNAL_ERROR"
        assert "hunter2" not in body["message"]
