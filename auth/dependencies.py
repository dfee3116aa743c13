"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and roles.

authenticate() is the auth middleware: it extracts the bearer token from the
Authorization header, verifies it with the TokenService on app.state, and
attaches the resulting Identity to request.state.identity. It performs no
database lookup -- the token's claims are trusted as of issuance time, so a
role changed server-side only takes effect once the old token expires.

RoleGate is the role middleware: built once per route with an explicit set
of allowed roles, it checks the identity that authenticate() attached.

Layer rule: no imports from api/ or client/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from auth.errors import Forbidden, Unauthenticated
from auth.models import ROLE_ADMIN, ROLE_STAFF, Identity
from auth.tokens import TokenService

logger = logging.getLogger("userapi.auth")

_BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from a "Bearer <token>" header value, or None."""
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


def authenticate(request: Request) -> Identity:
    """Require a valid bearer token. Raises Unauthenticated (401) otherwise.

    A missing or non-Bearer header and a present-but-invalid token are both
    401, with distinct messages. Use as a FastAPI dependency:
        @router.get("/users/profile")
        def profile(identity: Identity = Depends(authenticate)): ...
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise Unauthenticated()

    tokens: TokenService = request.app.state.token_service
    identity = tokens.verify(token)  # raises InvalidToken
    request.state.identity = identity
    return identity


class RoleGate:
    """Role check for a fixed set of allowed roles.

    Usage:
        require_admin = RoleGate(ROLE_ADMIN)
        @router.get("/users")
        def list_users(identity: Identity = Depends(require_admin)): ...

    As a dependency it depends on authenticate(), so it always runs after it.
    """

    def __init__(self, *roles: str) -> None:
        if not roles:
            raise ValueError("RoleGate needs at least one allowed role.")
        self.roles: frozenset[str] = frozenset(roles)

    def allows(self, role: str) -> bool:
        return role in self.roles

    def check(self, identity: Identity | None) -> Identity:
        """Return the identity if its role is allowed; raise Forbidden otherwise.

        A missing identity means the gate was wired ahead of authentication.
        That is a bug in route wiring, not a client error.
        """
        if identity is None:
            raise RuntimeError("RoleGate evaluated before authentication attached an identity.")
        if not self.allows(identity.role):
            logger.info("Role %r denied (allowed: %s)", identity.role, sorted(self.roles))
            raise Forbidden()
        return identity

    def __call__(self, request: Request, identity: Identity = Depends(authenticate)) -> Identity:
        return self.check(getattr(request.state, "identity", None))


def require_roles(*roles: str) -> RoleGate:
    return RoleGate(*roles)


require_admin = require_roles(ROLE_ADMIN)
require_any_role = require_roles(ROLE_STAFF, ROLE_ADMIN)
