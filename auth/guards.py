"""
auth/guards.py -- Self-modification guards for admin mutation endpoints.

Evaluated inside the update/delete handlers after authentication and the
role check have passed. The rule compares account ids only; an admin gets
no exemption when targeting their own record.

Layer rule: no imports from fastapi, api/, or client/.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from auth.errors import Forbidden
from auth.models import Identity

MSG_OWN_ROLE = "You cannot change your own role"
MSG_OWN_DELETE = "You cannot delete your own profile"


def is_self(identity: Identity, target_id: str) -> bool:
    return identity.account_id == target_id


def guard_update(identity: Identity, target_id: str, fields: Mapping[str, Any]) -> None:
    """Reject a self-targeted update that carries a role field.

    Any role key counts, even one equal to the current role. Other
    self-updates pass through.
    """
    if is_self(identity, target_id) and "role" in fields:
        raise Forbidden(MSG_OWN_ROLE)


def guard_delete(identity: Identity, target_id: str) -> None:
    """Reject any attempt to delete one's own account."""
    if is_self(identity, target_id):
        raise Forbidden(MSG_OWN_DELETE)
