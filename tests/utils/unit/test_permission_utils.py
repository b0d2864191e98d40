"""
Tests for owner identity and the admin capability check.
"""

import pytest

from exceptions.auth import AdminPrivilegesRequiredException, MissingOwnerIdentityException
from utils.permission_utils import Owner, is_admin_user, require_admin, require_owner


class TestOwner:

    def test_user_matches_on_user_id(self):
        assert Owner(user_id="u1").owns("u1", None)
        assert not Owner(user_id="u1").owns("u2", None)

    def test_guest_matches_on_session_token(self):
        guest = Owner(session_token="tok")
        assert guest.owns(None, "tok")
        assert not guest.owns(None, "other")

    def test_anonymous_owns_nothing(self):
        anonymous = Owner()
        assert anonymous.is_anonymous
        assert not anonymous.owns(None, None)

    def test_require_owner(self):
        with pytest.raises(MissingOwnerIdentityException):
            require_owner(Owner())
        assert require_owner(Owner(user_id="u1")).user_id == "u1"


class TestAdmin:

    def test_configured_admin(self):
        assert is_admin_user("admin-1")
        assert require_admin("admin-1", "list orders") == "admin-1"

    @pytest.mark.parametrize("user_id", [None, "", "user-1"])
    def test_not_admin(self, user_id):
        assert not is_admin_user(user_id)
        with pytest.raises(AdminPrivilegesRequiredException):
            require_admin(user_id, "update order status")
