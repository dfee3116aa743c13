"""
auth/validation.py -- Field-level validation for account input.

Two layers:

  validate_account() -- the request gate. An ordered chain of checks run
      against raw input before anything touches the store; the first failure
      wins and raises ValidationFailed with a fixed, check-specific message.
      Existing clients match on these strings, typos included.

  check_schema() -- the store's own shape rules (length bounds, required
      credential). Returns every violation as a {field, message} dict so the
      response can list them all at once.

Both are pure functions over a dict keyed by the Account field names
(first_name, last_name, ...). Field names in error payloads use the
camelCase wire names.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from auth.errors import ValidationFailed
from auth.models import GENDERS, ROLES

DEFAULT_EMAIL_DOMAIN = "smu.edu.ph"

MSG_MISSING = "Some Fields are Missing"
MSG_NAMES = "Names must contain only letters and spaces"
MSG_AGE = "Age Must Be Between 1 and 500"
MSG_GENDER = "Gender is Invalid"
MSG_ROLE = "Role is Invalid"
MSG_PASSWORD = "Password must be at least 6 characters long"
MSG_PASSWORD_TOO_LONG = "Password must be at most 72 bytes long"

REQUIRED_FIELDS: tuple[str, ...] = ("first_name", "last_name", "email", "age", "gender")

MIN_AGE = 1
MAX_AGE = 500
MIN_PASSWORD_LENGTH = 6
# bcrypt refuses input longer than this, counted in UTF-8 bytes.
MAX_PASSWORD_BYTES = 72

# \w is ASCII-only in the email pattern.
_NAME_RE = re.compile(r"[A-Za-z ]+")
_INITIAL_RE = re.compile(r"[A-Za-z]+")

WIRE_NAMES: dict[str, str] = {
    "first_name": "firstName",
    "last_name": "lastName",
    "middle_initial": "middleInitial",
    "email": "email",
    "password": "password",
    "age": "age",
    "gender": "gender",
    "role": "role",
}

# (min, max) character bounds enforced by the store.
_LENGTH_BOUNDS: dict[str, tuple[int, int]] = {
    "first_name": (2, 30),
    "last_name": (2, 30),
    "middle_initial": (1, 3),
    "email": (10, 50),
}


def email_domain_message(domain: str = DEFAULT_EMAIL_DOMAIN) -> str:
    return f"Only {domain} Emails Onlys"


def _email_re(domain: str) -> re.Pattern[str]:
    return re.compile(r"[\w.-]+@" + re.escape(domain), re.ASCII)


def _matches(pattern: re.Pattern[str], value: Any) -> bool:
    return isinstance(value, str) and pattern.fullmatch(value) is not None


def _too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def _valid_age(value: Any) -> bool:
    # bool is an int subclass; True must not pass as age 1.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return MIN_AGE <= value <= MAX_AGE


def validate_account(
    fields: Mapping[str, Any],
    *,
    partial: bool = False,
    require_password: bool = False,
    email_domain: str = DEFAULT_EMAIL_DOMAIN,
) -> None:
    """Run the ordered validation chain; raise ValidationFailed on the first failure.

    Args:
        fields:           Account input keyed by snake_case field name.
        partial:          Update mode. Only keys present in fields are checked,
                          but a present key with a falsy value still counts as
                          missing.
        require_password: Registration mode. Password must be present, at
                          least six characters and at most 72 UTF-8 bytes.
                          In partial mode a present password is always
                          checked.
        email_domain:     Institutional domain the email must belong to.

    Presence uses truthiness, so age 0 reports "Some Fields are Missing"
    rather than the range message.
    """
    required = [f for f in REQUIRED_FIELDS if f in fields] if partial else list(REQUIRED_FIELDS)
    if any(not fields.get(f) for f in required):
        raise ValidationFailed(MSG_MISSING)

    for name_field in ("first_name", "last_name"):
        if name_field in required and not _matches(_NAME_RE, fields[name_field]):
            raise ValidationFailed(MSG_NAMES)
    middle = fields.get("middle_initial")
    if middle and not _matches(_INITIAL_RE, middle):
        raise ValidationFailed(MSG_NAMES)

    if "email" in required and not _matches(_email_re(email_domain), fields["email"]):
        raise ValidationFailed(email_domain_message(email_domain))

    if "age" in required and not _valid_age(fields["age"]):
        raise ValidationFailed(MSG_AGE)

    if "gender" in required and fields["gender"] not in GENDERS:
        raise ValidationFailed(MSG_GENDER)

    if "role" in fields and fields["role"] not in ROLES:
        # Registration treats an absent or empty role as "use the default".
        if partial or fields["role"]:
            raise ValidationFailed(MSG_ROLE)

    if require_password or (partial and "password" in fields):
        password = fields.get("password")
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(MSG_PASSWORD)
        if _too_long(password):
            raise ValidationFailed(MSG_PASSWORD_TOO_LONG)


def check_schema(fields: Mapping[str, Any], *, partial: bool = False) -> list[dict[str, str]]:
    """Return every store-level shape violation as a list of {field, message}.

    Length bounds apply to the trimmed value. Outside partial mode the
    password is required, because an account cannot exist without a
    credential.
    """
    errors: list[dict[str, str]] = []
    for field, (low, high) in _LENGTH_BOUNDS.items():
        value = fields.get(field)
        if not isinstance(value, str) or not value:
            continue
        if not low <= len(value.strip()) <= high:
            errors.append(
                {
                    "field": WIRE_NAMES[field],
                    "message": f"{WIRE_NAMES[field]} must be between {low} and {high} characters",
                }
            )

    password = fields.get("password")
    if password is None and not partial:
        errors.append({"field": "password", "message": "password is required"})
    elif password is not None and (not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH):
        errors.append({"field": "password", "message": MSG_PASSWORD})
    elif password is not None and _too_long(password):
        errors.append({"field": "password", "message": MSG_PASSWORD_TOO_LONG})
    return errors
