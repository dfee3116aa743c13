"""
API request and response models for the user REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Wire names are camelCase (firstName, middleInitial, ...) for compatibility
with existing clients; Python attribute names stay snake_case via an alias
generator.

Request bodies are deliberately loose (every field optional). Presence and
format rules belong to auth/validation.py, which produces the fixed error
messages clients expect; Pydantic only rejects wrong JSON types.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from auth.models import Account

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class AccountInput(BaseModel):
    """Body for POST /users/register and POST /users."""

    model_config = _CAMEL

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_initial: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    role: Optional[str] = None

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump()


class AccountPatch(BaseModel):
    """Body for PUT /users/{id} and PUT /users/profile.

    Only keys the client actually sent are applied; an explicit null counts
    as sent (and fails validation for required fields).
    """

    model_config = _CAMEL

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_initial: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    role: Optional[str] = None

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    password: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AccountOut(BaseModel):
    """Public view of an account. Has no credential field by construction."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    first_name: str
    last_name: str
    middle_initial: Optional[str] = None
    email: str
    age: int
    gender: str
    role: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_account(cls, account: Account) -> AccountOut:
        return cls(
            id=account.id or "",
            first_name=account.first_name,
            last_name=account.last_name,
            middle_initial=account.middle_initial,
            email=account.email,
            age=account.age,
            gender=account.gender,
            role=account.role,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class AuthPayload(BaseModel):
    """data payload for register and login responses."""

    user: AccountOut
    token: str


class FieldError(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class Envelope(BaseModel):
    """Response envelope shared by every endpoint, success or failure.

    Serialize with dump() so absent optional members are omitted rather than
    sent as null.
    """

    success: bool
    message: Optional[str] = None
    count: Optional[int] = None
    data: Optional[Any] = None
    errors: Optional[list[FieldError]] = None

    def dump(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
