"""
api/routes/v1/users.py -- Registration, login, profile, and user management endpoints.

Routes (mounted under /api):
  POST   /users/register        -- public; create a staff (or requested-role) account + token
  POST   /users/login           -- public; exchange email/password for a token
  GET    /users/profile         -- any authenticated user; own account
  PUT    /users/profile         -- any authenticated user; update own profile (never role)
  GET    /users                 -- admin; list accounts
  POST   /users                 -- admin; create account
  DELETE /users/deleteAllUsers  -- admin; delete every account
  GET    /users/{account_id}    -- admin; one account
  PUT    /users/{account_id}    -- admin; partial update (not own role)
  DELETE /users/{account_id}    -- admin; delete (not self)

Route registration order matters: /users/register, /users/login,
/users/profile and /users/deleteAllUsers must be registered before the
/users/{account_id} routes or FastAPI captures them as path params.

Pipeline for mutating admin routes, in dependency order:
  validation gate -> authenticate -> role gate -> self-modification guard -> store
The gate dependency is declared first in each signature so a malformed body
is rejected before the token is even looked at.

Handlers are plain `def` so FastAPI runs them in its threadpool; bcrypt and
the synchronous store never block the event loop.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import AccountInput, AccountOut, AccountPatch, AuthPayload, Envelope, LoginRequest
from auth.dependencies import authenticate, require_admin
from auth.errors import Forbidden, NotFound, ValidationFailed
from auth.guards import guard_delete, guard_update
from auth.models import Account, Identity
from auth.store import AccountStore
from auth.tokens import TokenService
from auth.validation import validate_account
from core.config import get_settings

logger = logging.getLogger("userapi.api")

_settings = get_settings()

# Auth policy:
# - POST   /users/register, /users/login:        public
# - GET    /users/profile, PUT /users/profile:   requires auth (authenticate)
# - everything else:                             requires admin (require_admin)
router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _store(request: Request) -> AccountStore:
    return request.app.state.account_store


def _tokens(request: Request) -> TokenService:
    return request.app.state.token_service


def _public(account: Account) -> dict[str, Any]:
    return AccountOut.from_account(account).model_dump(by_alias=True)


def _respond(status_code: int = 200, **envelope: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=Envelope(success=True, **envelope).dump())


def _auth_response(status_code: int, message: str, account: Account, token: str) -> JSONResponse:
    payload = AuthPayload(user=AccountOut.from_account(account), token=token).model_dump(by_alias=True)
    resp = _respond(status_code, message=message, data=payload)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Validation gate dependencies
# ---------------------------------------------------------------------------


def registration_input(request: Request, body: AccountInput) -> dict[str, Any]:
    """Gate for POST /users/register: full validation including the password rule."""
    fields = body.to_fields()
    validate_account(fields, require_password=True, email_domain=_store(request).email_domain)
    return fields


def creation_input(request: Request, body: AccountInput) -> dict[str, Any]:
    """Gate for admin POST /users. The credential is checked by the store's schema rules."""
    fields = body.to_fields()
    validate_account(fields, email_domain=_store(request).email_domain)
    return fields


def update_input(request: Request, body: AccountPatch) -> dict[str, Any]:
    """Gate for partial updates: only the fields the client sent are checked."""
    fields = body.to_fields()
    if not fields:
        raise ValidationFailed("No fields to update")
    validate_account(fields, partial=True, email_domain=_store(request).email_domain)
    return fields


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users/register", status_code=201)
def register(request: Request, fields: dict[str, Any] = Depends(registration_input)) -> JSONResponse:
    """Create an account and return it with a fresh token.

    The role defaults to staff when the body omits it.
    """
    if not _settings.self_registration_enabled:
        raise Forbidden("Self-registration is disabled")
    account = _store(request).create(fields)
    token = _tokens(request).issue(account)
    return _auth_response(201, "User registered successfully", account, token)


@router.post("/users/login")
@limiter.limit(_settings.login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange email and password for a token.

    Unknown email and wrong password produce the same 401 message; the store
    also equalizes their timing.
    """
    if not body.email or not body.password:
        raise ValidationFailed("Email and password are required")
    account = _store(request).verify(body.email, body.password)  # raises InvalidCredentials
    token = _tokens(request).issue(account)
    logger.info("Login succeeded id=%s", account.id)
    return _auth_response(200, "Login successful", account, token)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/users/profile")
def get_profile(request: Request, identity: Identity = Depends(authenticate)) -> JSONResponse:
    """Return the caller's own account, freshly read from the store."""
    account = _store(request).get_by_id(identity.account_id)
    if account is None:
        raise NotFound("User not found")
    return _respond(data=_public(account))


@router.put("/users/profile")
def update_profile(
    request: Request,
    fields: dict[str, Any] = Depends(update_input),
    identity: Identity = Depends(authenticate),
) -> JSONResponse:
    """Update the caller's own profile fields. A role field is always refused."""
    guard_update(identity, identity.account_id, fields)
    account = _store(request).update_fields(identity.account_id, fields)
    if account is None:
        raise NotFound("User not found")
    return _respond(message="Profile updated", data=_public(account))


# ---------------------------------------------------------------------------
# User management (admin only)
# ---------------------------------------------------------------------------


@router.get("/users")
def list_users(request: Request, identity: Identity = Depends(require_admin)) -> JSONResponse:
    accounts = _store(request).list_accounts()
    return _respond(count=len(accounts), data=[_public(a) for a in accounts])


@router.post("/users", status_code=201)
def create_user(
    request: Request,
    fields: dict[str, Any] = Depends(creation_input),
    identity: Identity = Depends(require_admin),
) -> JSONResponse:
    """Create an account on someone's behalf. Admin only."""
    account = _store(request).create(fields)
    logger.info("Admin %s created account %s", identity.account_id, account.id)
    return _respond(201, message="User created", data=_public(account))


@router.delete("/users/deleteAllUsers")
def delete_all_users(request: Request, identity: Identity = Depends(require_admin)) -> JSONResponse:
    """Delete every account, the caller's included. Irreversible."""
    deleted = _store(request).delete_all()
    logger.warning("Admin %s deleted all accounts (%d)", identity.account_id, deleted)
    return _respond(message=f"{deleted} users deleted")


@router.get("/users/{account_id}")
def get_user(request: Request, account_id: str, identity: Identity = Depends(require_admin)) -> JSONResponse:
    account = _store(request).get_by_id(account_id)
    if account is None:
        raise NotFound("User Not Found")
    return _respond(data=_public(account))


@router.put("/users/{account_id}")
def update_user(
    request: Request,
    account_id: str,
    fields: dict[str, Any] = Depends(update_input),
    identity: Identity = Depends(require_admin),
) -> JSONResponse:
    """Apply a partial update. Admin only; an admin may not change their own role."""
    guard_update(identity, account_id, fields)
    account = _store(request).update_fields(account_id, fields)
    if account is None:
        raise NotFound("User Not Found")
    return _respond(message="User updated", data=_public(account))


@router.delete("/users/{account_id}")
def delete_user(request: Request, account_id: str, identity: Identity = Depends(require_admin)) -> JSONResponse:
    """Delete one account. Admin only; never the caller's own."""
    guard_delete(identity, account_id)
    account = _store(request).delete(account_id)
    if account is None:
        raise NotFound("User not found")
    return _respond(message="User deleted", data=_public(account))
