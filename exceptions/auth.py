"""
Authorization exceptions.
"""

from .base import StorefrontException


class AuthorizationException(StorefrontException):
    """Base exception for authorization errors."""
    pass


class MissingOwnerIdentityException(AuthorizationException):
    """Raised when an operation needs a user id or guest session token and got neither."""

    def __init__(self):
        super().__init__("A user id or guest session token is required")


class AdminPrivilegesRequiredException(AuthorizationException):
    """Raised when a non-admin invokes an admin operation."""

    def __init__(self, user_id: str | None, operation: str):
        super().__init__(
            f"Admin privileges required for {operation}",
            details={'user_id': user_id, 'operation': operation}
        )
        self.user_id = user_id
        self.operation = operation
