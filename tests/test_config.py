"""Unit tests for core/config.py -- Settings validation.

Settings() is built directly (not through the cached get_settings()) so each
test sees its own environment.
"""

import pytest
from pydantic import ValidationError

from core.config import Settings


def test_debug_generates_secret(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    settings = Settings(debug=True, _env_file=None)
    assert len(settings.secret_key) >= 32


def test_production_requires_secret(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError, match="SECRET_KEY is required when DEBUG is off"):
        Settings(debug=False, _env_file=None)


def test_short_secret_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(debug=False, secret_key="short", _env_file=None)


def test_bcrypt_rounds_bounds():
    with pytest.raises(ValidationError, match="BCRYPT_ROUNDS"):
        Settings(debug=True, bcrypt_rounds=3, _env_file=None)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "k" * 40)
    monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "3600")
    monkeypatch.setenv("EMAIL_DOMAIN", "example.edu")
    settings = Settings(debug=False, _env_file=None)
    assert settings.token_expire_seconds == 3600
    assert settings.email_domain == "example.edu"


def test_defaults():
    settings = Settings(debug=True, _env_file=None)
    assert settings.token_expire_seconds == 7 * 24 * 60 * 60
    assert settings.email_domain == "smu.edu.ph"
    assert settings.port == 5000
