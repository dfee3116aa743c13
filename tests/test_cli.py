"""Tests for the main.py command-line entry point.

The client commands are exercised against a stubbed UserServiceClient;
create-admin runs against a real SQLite file in tmp_path.
"""

from unittest.mock import MagicMock

import pytest

import main as cli
from auth.store import AccountStore
from client.service import ApiClientError
from core.config import Settings


@pytest.fixture
def settings(tmp_path, monkeypatch):
    s = Settings(
        debug=True,
        database_url=f"sqlite:///{tmp_path / 'cli.db'}",
        bcrypt_rounds=4,
        token_file=str(tmp_path / "token"),
        _env_file=None,
    )
    monkeypatch.setattr(cli, "get_settings", lambda: s)
    return s


@pytest.fixture
def fake_client(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(cli, "_client", lambda: client)
    return client


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "COMMAND" in capsys.readouterr().out


def test_create_admin(settings, capsys):
    rc = cli.main(
        [
            "create-admin",
            "--email", "admin.user@smu.edu.ph",
            "--first-name", "Admin",
            "--last-name", "User",
            "--age", "30",
            "--gender", "male",
            "--password", "admin123",
        ]
    )
    assert rc == 0
    assert "Admin created: admin.user@smu.edu.ph" in capsys.readouterr().out

    store = AccountStore(db_url=settings.database_url, bcrypt_rounds=4)
    try:
        assert store.verify("admin.user@smu.edu.ph", "admin123").role == "admin"
    finally:
        store.close()


def test_create_admin_reports_validation_error(settings, capsys):
    rc = cli.main(
        [
            "create-admin",
            "--email", "admin@gmail.com",
            "--first-name", "Admin",
            "--last-name", "User",
            "--age", "30",
            "--gender", "male",
            "--password", "admin123",
        ]
    )
    assert rc == 1
    assert "Only smu.edu.ph Emails Onlys" in capsys.readouterr().err


def test_create_admin_rejects_overlong_password(settings, capsys):
    rc = cli.main(
        [
            "create-admin",
            "--email", "admin.user@smu.edu.ph",
            "--first-name", "Admin",
            "--last-name", "User",
            "--age", "30",
            "--gender", "male",
            "--password", "€" * 40,
        ]
    )
    assert rc == 1
    assert "Password must be at most 72 bytes long" in capsys.readouterr().err


def test_login(fake_client, capsys):
    fake_client.login.return_value = {
        "message": "Login successful",
        "data": {"user": {"firstName": "John", "lastName": "Doe", "role": "staff"}, "token": "t"},
    }
    assert cli.main(["login", "--email", "john@smu.edu.ph", "--password", "password123"]) == 0
    fake_client.login.assert_called_once_with("john@smu.edu.ph", "password123")
    assert "Signed in as John Doe (staff)" in capsys.readouterr().out


def test_login_failure(fake_client, capsys):
    fake_client.login.side_effect = ApiClientError(401, "Invalid email or password")
    assert cli.main(["login", "--email", "john@smu.edu.ph", "--password", "wrong"]) == 1
    assert "Invalid email or password" in capsys.readouterr().err


def test_register_converts_age(fake_client):
    fake_client.register.return_value = {
        "message": "User registered successfully",
        "data": {"user": {"email": "john@smu.edu.ph", "role": "staff"}, "token": "t"},
    }
    rc = cli.main(
        [
            "register",
            "--first-name", "John",
            "--last-name", "Doe",
            "--middle-initial", "M",
            "--email", "john@smu.edu.ph",
            "--age", "25",
            "--gender", "male",
            "--password", "password123",
        ]
    )
    assert rc == 0
    sent = fake_client.register.call_args.args[0]
    assert sent["age"] == 25
    assert sent["firstName"] == "John"
    assert sent["password"] == "password123"


def test_profile_after_session_expired(fake_client, capsys):
    fake_client.get_profile.side_effect = ApiClientError(401, "Invalid or expired token")
    assert cli.main(["profile"]) == 1
    assert "Session cleared" in capsys.readouterr().err


def test_logout(fake_client):
    assert cli.main(["logout"]) == 0
    fake_client.logout.assert_called_once_with()
