"""Unit tests for auth/guards.py and the role gate in auth/dependencies.py.

No HTTP here: RoleGate.check() and the guards are plain functions over an
Identity, so the rules are tested directly. The HTTP wiring is covered in
test_api_users.py.
"""

import pytest

from auth.dependencies import RoleGate, extract_bearer_token, require_admin, require_any_role
from auth.errors import Forbidden
from auth.guards import MSG_OWN_DELETE, MSG_OWN_ROLE, guard_delete, guard_update, is_self
from auth.models import Identity

ADMIN = Identity(account_id="admin-1", email="admin.user@smu.edu.ph", role="admin")
STAFF = Identity(account_id="staff-1", email="jane.staff@smu.edu.ph", role="staff")


class TestRoleGate:
    def test_admin_gate(self):
        assert require_admin.allows("admin")
        assert not require_admin.allows("staff")

    def test_any_role_gate(self):
        assert require_any_role.allows("admin")
        assert require_any_role.allows("staff")
        assert not require_any_role.allows("guest")

    def test_check_returns_identity(self):
        assert require_admin.check(ADMIN) is ADMIN

    def test_check_rejects_role(self):
        with pytest.raises(Forbidden) as exc_info:
            require_admin.check(STAFF)
        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Access denied. Insufficient permissions"

    def test_missing_identity_is_a_wiring_bug(self):
        with pytest.raises(RuntimeError):
            require_admin.check(None)

    def test_needs_at_least_one_role(self):
        with pytest.raises(ValueError):
            RoleGate()


class TestSelfModification:
    def test_is_self(self):
        assert is_self(ADMIN, "admin-1")
        assert not is_self(ADMIN, "staff-1")

    def test_own_role_change_refused(self):
        with pytest.raises(Forbidden) as exc_info:
            guard_update(ADMIN, "admin-1", {"role": "staff"})
        assert exc_info.value.message == MSG_OWN_ROLE

    def test_own_role_refused_even_when_unchanged(self):
        with pytest.raises(Forbidden):
            guard_update(ADMIN, "admin-1", {"role": "admin"})

    def test_own_non_role_update_allowed(self):
        guard_update(ADMIN, "admin-1", {"age": 31, "first_name": "Ada"})

    def test_other_accounts_role_change_allowed(self):
        guard_update(ADMIN, "staff-1", {"role": "admin"})

    def test_own_delete_refused(self):
        with pytest.raises(Forbidden) as exc_info:
            guard_delete(ADMIN, "admin-1")
        assert exc_info.value.message == MSG_OWN_DELETE

    def test_other_delete_allowed(self):
        guard_delete(ADMIN, "staff-1")


class TestBearerExtraction:
    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("Bearer   abc  ", "abc"),
            (None, None),
            ("", None),
            ("Bearer ", None),
            ("Basic dXNlcjpwYXNz", None),
            ("bearer abc", None),
            ("abc.def.ghi", None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected
