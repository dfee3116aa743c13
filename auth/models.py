"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these classes only own the domain shape.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
ROLES: tuple[str, ...] = (ROLE_STAFF, ROLE_ADMIN)

GENDERS: tuple[str, ...] = ("male", "female", "rather not say")


@dataclass
class Account:
    """A registered user of the system.

    The password hash is deliberately absent: normal store queries never
    select it, so an Account can be serialized anywhere without leaking the
    credential. AccountStore.get_password_hash() is the explicit accessor.

    id is None before the record is written to the database.
    """

    first_name: str
    last_name: str
    email: str
    age: int
    gender: str  # "male" | "female" | "rather not say"
    role: str = ROLE_STAFF  # "staff" | "admin"
    middle_initial: str | None = None
    id: str | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert
    updated_at: str | None = None  # ISO 8601, set by store on every write


@dataclass(frozen=True)
class Identity:
    """Verified token claims attached to a request by the auth dependency.

    Reflects the account as of token issuance. A role change made after the
    token was issued is not visible here until the token expires.
    """

    account_id: str
    email: str
    role: str
    expires_at: datetime | None = None
