"""
auth/tokens.py -- JWT issuance/verification and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the configured
       SECRET_KEY and carry the account id (sub), email, role, and expiry.
       Verification raises InvalidToken on any failure -- bad signature,
       malformed token, expired token, or missing claims all look identical
       to the caller so nothing leaks about which check failed.

  TokenService: the signing secret and lifetime are passed in explicitly at
       startup (see api/main.py lifespan) rather than read from a module
       global. One instance lives for the process lifetime and never changes.

  Passwords: bcrypt used directly. Each hash carries its own random salt;
       the work factor comes from Settings.bcrypt_rounds (default 10).

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.errors import InvalidToken
from auth.models import Account, Identity

logger = logging.getLogger("userapi.auth")

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ("sub", "email", "role")

DEFAULT_BCRYPT_ROUNDS = 10

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt refuses input over 72 UTF-8 bytes; auth/validation.py rejects
    such passwords before they get here.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash, or a
    candidate bcrypt refuses to process, is treated as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Token service
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies signed bearer tokens.

    Usage:
        tokens = TokenService(secret_key=settings.secret_key, expire_seconds=604800)
        token = tokens.issue(account)
        identity = tokens.verify(token)   # raises InvalidToken
    """

    def __init__(self, secret_key: str, expire_seconds: int) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a signing secret.")
        if expire_seconds <= 0:
            raise ValueError("Token lifetime must be positive.")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    @classmethod
    def from_settings(cls, settings) -> TokenService:
        return cls(secret_key=settings.secret_key, expire_seconds=settings.token_expire_seconds)

    def issue(self, account: Account) -> str:
        """Encode a signed JWT for a persisted account (id must be set).

        Every token gets the service lifetime; register and login alike.
        """
        if account.id is None:
            raise ValueError("Cannot issue a token for an unsaved account.")
        now = datetime.now(timezone.utc)
        payload = {
            "sub": account.id,
            "email": account.email,
            "role": account.role,
            "iat": now,
            "exp": now + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> Identity:
        """Verify signature and expiry and return the embedded identity.

        Raises InvalidToken for every failure mode.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"require_exp": True},
            )
        except JWTError as exc:
            logger.info("Token rejected: %s", type(exc).__name__)
            raise InvalidToken() from exc

        if any(not isinstance(payload.get(claim), str) or not payload[claim] for claim in _REQUIRED_CLAIMS):
            logger.info("Token rejected: missing identity claims")
            raise InvalidToken()

        return Identity(
            account_id=payload["sub"],
            email=payload["email"],
            role=payload["role"],
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
