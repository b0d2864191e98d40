"""
Centralized permission utilities for owner and admin authorization.

Identity itself comes from the identity/session provider in front of the
API (X-User-Id / X-Session-Token headers); this module only decides what an
identity may touch.

- Owners are either a signed-in user (user_id) or a guest (session_token)
- Admins are the user ids listed in ADMIN_USER_IDS
"""

from pydantic import BaseModel

import config
from exceptions.auth import AdminPrivilegesRequiredException, MissingOwnerIdentityException


class Owner(BaseModel):
    """Opaque owner key of a cart or an order."""
    user_id: str | None = None
    session_token: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return not self.user_id and not self.session_token

    def owns(self, user_id: str | None, session_token: str | None) -> bool:
        """
        True if this identity owns a record keyed by (user_id, session_token).

        A matching user id wins; guests match on their session token.
        """
        if self.user_id and user_id == self.user_id:
            return True
        if self.session_token and session_token == self.session_token:
            return True
        return False


def is_admin_user(user_id: str | None) -> bool:
    """
    Check if a user is an admin.

    Example:
        >>> is_admin_user("admin-1")   # ADMIN_USER_IDS=admin-1
        True
        >>> is_admin_user(None)
        False
    """
    if not user_id:
        return False
    return user_id in config.ADMIN_USER_IDS


def require_admin(user_id: str | None, operation: str) -> str:
    """
    Admin capability check injected into every admin operation.

    Returns the admin's user id for audit logging.

    Raises:
        AdminPrivilegesRequiredException: if the user is not an admin
    """
    if not is_admin_user(user_id):
        raise AdminPrivilegesRequiredException(user_id, operation)
    return user_id


def require_owner(owner: Owner) -> Owner:
    """
    Raises:
        MissingOwnerIdentityException: if neither user id nor session token is set
    """
    if owner.is_anonymous:
        raise MissingOwnerIdentityException()
    return owner
