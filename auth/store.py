"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository;
_row_to_account is the mapper. Route and dependency code never touches SQL
directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  The password hash column is excluded from every normal query (_PUBLIC_COLUMNS).
  Only verify() and get_password_hash() select it, so an Account object can
  never carry the credential.

  Hashing happens inline in create() and update_fields(), immediately before
  the write, so the side effect is visible at the call site. A new password
  is always rehashed; a value is never merged in as if it were already hashed.

  Email uniqueness is a UNIQUE index. create() also pre-checks, but the index
  is the real guard: when two registrations race, the loser's IntegrityError
  is mapped to DuplicateEmail.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmail, InternalError, InvalidCredentials, ValidationFailed
from auth.models import ROLE_STAFF, Account
from auth.tokens import DEFAULT_BCRYPT_ROUNDS, hash_password, verify_password
from auth.validation import DEFAULT_EMAIL_DOMAIN, check_schema, validate_account
from core.config import DEFAULT_DATABASE_URL

logger = logging.getLogger("userapi.store")

# Fields a caller may write. Anything else in a candidate dict is ignored.
_WRITABLE = ("first_name", "last_name", "middle_initial", "email", "age", "gender", "role")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("first_name", String(30), nullable=False),
    Column("last_name", String(30), nullable=False),
    Column("middle_initial", String(3)),
    Column("email", String(50), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("age", Integer, nullable=False),
    Column("gender", String(20), nullable=False),
    Column("role", String(10), nullable=False, server_default=ROLE_STAFF),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_PUBLIC_COLUMNS = [c for c in _accounts.c if c.name != "password_hash"]


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


def _normalize(fields: dict[str, Any]) -> dict[str, Any]:
    """Trim string values; turn an empty middle initial into NULL."""
    cleaned = {k: (v.strip() if isinstance(v, str) else v) for k, v in fields.items()}
    if "middle_initial" in cleaned and not cleaned["middle_initial"]:
        cleaned["middle_initial"] = None
    return cleaned


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account records.

    Usage:
        store = AccountStore()
        account = store.create({"first_name": "John", ..., "password": "secret1"})
        account = store.verify("john@smu.edu.ph", "secret1")   # raises InvalidCredentials
        store.close()
    """

    def __init__(
        self,
        db_url: str = DEFAULT_DATABASE_URL,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
        email_domain: str = DEFAULT_EMAIL_DOMAIN,
    ) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)
        self.bcrypt_rounds = bcrypt_rounds
        self.email_domain = email_domain
        # Timing equalization: verify() runs bcrypt against this hash when the
        # email is unknown, at the same cost factor as real records.
        self._dummy_hash = hash_password("smu_users_timing_dummy", rounds=bcrypt_rounds)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, candidate: dict[str, Any]) -> Account:
        """Validate, hash, and insert a new account. Returns it without the credential.

        Raises ValidationFailed if the input breaks the validation rules or the
        schema, DuplicateEmail if the email is already registered.
        """
        validate_account(candidate, email_domain=self.email_domain)
        errors = check_schema(candidate)
        if errors:
            raise ValidationFailed(errors=errors)

        values = _normalize({k: candidate[k] for k in _WRITABLE if k in candidate})
        values["role"] = values.get("role") or ROLE_STAFF
        if self.get_by_email(values["email"]) is not None:
            raise DuplicateEmail()

        now = _now_iso()
        values.update(
            id=_new_id(),
            password_hash=hash_password(candidate["password"], rounds=self.bcrypt_rounds),
            created_at=now,
            updated_at=now,
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(_accounts.insert().values(**values))
                conn.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email.
            raise DuplicateEmail() from exc

        logger.info("Account created id=%s role=%s", values["id"], values["role"])
        created = self.get_by_id(values["id"])
        if created is None:
            raise InternalError("Account not found after write.")
        return created

    def update_fields(self, account_id: str, partial: dict[str, Any]) -> Account | None:
        """Apply a partial update. Returns the updated account, or None if not found.

        Present fields are re-validated. A new password is rehashed before the
        write. updated_at is stamped on every successful update.
        """
        validate_account(partial, partial=True, email_domain=self.email_domain)
        errors = check_schema(partial, partial=True)
        if errors:
            raise ValidationFailed(errors=errors)

        values = _normalize({k: partial[k] for k in _WRITABLE if k in partial})
        if "password" in partial:
            values["password_hash"] = hash_password(partial["password"], rounds=self.bcrypt_rounds)
        values["updated_at"] = _now_iso()

        try:
            with self.engine.connect() as conn:
                result = conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(**values))
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmail() from exc

        if result.rowcount == 0:
            return None
        return self.get_by_id(account_id)

    def delete(self, account_id: str) -> Account | None:
        """Permanently delete an account. Returns the deleted record, or None if not found.

        Self-deletion checks are the caller's responsibility (see auth/guards.py).
        """
        account = self.get_by_id(account_id)
        if account is None:
            return None
        with self.engine.connect() as conn:
            conn.execute(_accounts.delete().where(_accounts.c.id == account_id))
            conn.commit()
        logger.info("Account deleted id=%s", account_id)
        return account

    def delete_all(self) -> int:
        """Delete every account. Irreversible. Returns the number of rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.delete())
            conn.commit()
        logger.warning("All accounts deleted (%d rows)", result.rowcount)
        return result.rowcount

    # ------------------------------------------------------------------
    # Credential checks
    # ------------------------------------------------------------------

    def verify(self, email: str, password: str) -> Account:
        """Check a login attempt. Returns the account on success.

        Raises InvalidCredentials for both an unknown email and a wrong
        password. Bcrypt runs in both branches so response time does not
        reveal whether the email is registered.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_accounts.c.id, _accounts.c.password_hash).where(_accounts.c.email == email)
            ).fetchone()
        if row is None:
            verify_password(password, self._dummy_hash)
            logger.info("Login failed: unknown email")
            raise InvalidCredentials()
        if not verify_password(password, row.password_hash):
            logger.info("Login failed: bad password for id=%s", row.id)
            raise InvalidCredentials()
        account = self.get_by_id(row.id)
        if account is None:
            raise InvalidCredentials()
        return account

    def get_password_hash(self, account_id: str) -> str | None:
        """Explicitly fetch the stored credential hash. Never used for output."""
        with self.engine.connect() as conn:
            return conn.execute(
                select(_accounts.c.password_hash).where(_accounts.c.id == account_id)
            ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, account_id: str) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(*_PUBLIC_COLUMNS).where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_email(self, email: str) -> Account | None:
        """Look up an account by exact email (case-sensitive)."""
        with self.engine.connect() as conn:
            row = conn.execute(select(*_PUBLIC_COLUMNS).where(_accounts.c.email == email)).fetchone()
        return _row_to_account(row) if row is not None else None

    def list_accounts(self) -> list[Account]:
        """Return all accounts, oldest first. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(select(*_PUBLIC_COLUMNS).order_by(_accounts.c.created_at)).fetchall()
        return [_row_to_account(r) for r in rows]

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_accounts)).scalar() or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        middle_initial=row.middle_initial,
        email=row.email,
        age=row.age,
        gender=row.gender,
        role=row.role,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
