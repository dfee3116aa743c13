#!/usr/bin/env python3
"""
SMU User API: server and command-line client.

Usage:
  python main.py serve [--host HOST] [--port PORT] [--reload]
  python main.py create-admin --email admin.user@smu.edu.ph --first-name Admin --last-name User ...
  python main.py register
  python main.py login [--email EMAIL]
  python main.py profile
  python main.py logout

The client commands talk to API_BASE_URL (default http://localhost:5000/api)
and keep the session token in TOKEN_FILE (default ~/.smu_users/token).
Missing values are prompted for; passwords are always read without echo.
"""

import argparse
import getpass
import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

from auth.errors import ApiError
from auth.models import GENDERS, ROLE_ADMIN
from auth.store import AccountStore
from client.service import ApiClientError, UserServiceClient
from client.token_store import TokenStore
from core.config import get_settings

_ACCOUNT_PROMPTS: list[tuple[str, str]] = [
    ("firstName", "First name"),
    ("lastName", "Last name"),
    ("middleInitial", "Middle initial (optional)"),
    ("email", "Email"),
    ("age", "Age"),
    ("gender", f"Gender ({' / '.join(GENDERS)})"),
]


def _ask(label: str, value: Optional[str], read: Callable[[str], str] = input) -> str:
    if value:
        return value
    return read(f"  {label}: ").strip()


def _print_error(err: ApiClientError) -> None:
    print(f"  [!] {err.message}", file=sys.stderr)
    for item in err.errors:
        print(f"      {item.get('field')}: {item.get('message')}", file=sys.stderr)


def _client() -> UserServiceClient:
    settings = get_settings()
    return UserServiceClient(settings.api_base_url, TokenStore(Path(settings.token_file)))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def cmd_create_admin(args: argparse.Namespace) -> int:
    """Bootstrap an admin account directly in the store (no running server needed)."""
    settings = get_settings()
    store = AccountStore(
        db_url=settings.database_url,
        bcrypt_rounds=settings.bcrypt_rounds,
        email_domain=settings.email_domain,
    )
    password = args.password or getpass.getpass("  Password: ")
    try:
        account = store.create(
            {
                "first_name": args.first_name,
                "last_name": args.last_name,
                "middle_initial": args.middle_initial,
                "email": args.email,
                "age": args.age,
                "gender": args.gender,
                "password": password,
                "role": ROLE_ADMIN,
            }
        )
    except ApiError as e:
        print(f"  [!] {e.message}", file=sys.stderr)
        for item in e.errors or []:
            print(f"      {item['field']}: {item['message']}", file=sys.stderr)
        return 1
    finally:
        store.close()
    print(f"  Admin created: {account.email} (id {account.id})")
    return 0


def cmd_register(args: argparse.Namespace) -> int:
    print("\nRegister")
    print("─" * 40)
    account: dict[str, Any] = {}
    for key, label in _ACCOUNT_PROMPTS:
        value = _ask(label, getattr(args, key, None))
        if value:
            account[key] = value
    if "age" in account:
        try:
            account["age"] = int(account["age"])
        except ValueError:
            print("  [!] Age must be a whole number.", file=sys.stderr)
            return 1
    account["password"] = _ask("Password", args.password, getpass.getpass)

    try:
        envelope = _client().register(account)
    except ApiClientError as e:
        _print_error(e)
        return 1
    user = envelope["data"]["user"]
    print(f"  {envelope.get('message')}: {user['email']} ({user['role']})")
    print("  Run `python main.py login` to start a session.")
    return 0


def cmd_login(args: argparse.Namespace) -> int:
    print("\nLogin")
    print("─" * 40)
    email = _ask("Email", args.email)
    password = _ask("Password", args.password, getpass.getpass)
    try:
        envelope = _client().login(email, password)
    except ApiClientError as e:
        _print_error(e)
        return 1
    user = envelope["data"]["user"]
    print(f"  {envelope.get('message')}. Signed in as {user['firstName']} {user['lastName']} ({user['role']}).")
    return 0


def cmd_profile(args: argparse.Namespace) -> int:
    try:
        envelope = _client().get_profile()
    except ApiClientError as e:
        _print_error(e)
        if e.status_code == 401:
            print("  Session cleared. Run `python main.py login` again.", file=sys.stderr)
        return 1
    print(json.dumps(envelope["data"], indent=2))
    return 0


def cmd_logout(args: argparse.Namespace) -> int:
    _client().logout()
    print("  Logged out.")
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smu-users",
        description="SMU user management API server and client.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py create-admin --email admin.user@smu.edu.ph --first-name Admin --last-name User --age 30 --gender male
  python main.py register
  python main.py login --email john.doe@smu.edu.ph
  python main.py profile
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, help="Port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    serve.set_defaults(func=cmd_serve)

    admin = sub.add_parser("create-admin", help="Create an admin account directly in the database")
    admin.add_argument("--email", required=True)
    admin.add_argument("--first-name", required=True)
    admin.add_argument("--last-name", required=True)
    admin.add_argument("--middle-initial")
    admin.add_argument("--age", type=int, required=True)
    admin.add_argument("--gender", choices=GENDERS, required=True)
    admin.add_argument("--password", help="Prompted for when omitted")
    admin.set_defaults(func=cmd_create_admin)

    register = sub.add_parser("register", help="Register a new account")
    register.add_argument("--first-name", dest="firstName")
    register.add_argument("--last-name", dest="lastName")
    register.add_argument("--middle-initial", dest="middleInitial")
    register.add_argument("--email")
    register.add_argument("--age")
    register.add_argument("--gender")
    register.add_argument("--password", help="Prompted for when omitted")
    register.set_defaults(func=cmd_register)

    login = sub.add_parser("login", help="Sign in and save the session token")
    login.add_argument("--email")
    login.add_argument("--password", help="Prompted for when omitted")
    login.set_defaults(func=cmd_login)

    profile = sub.add_parser("profile", help="Show the signed-in account")
    profile.set_defaults(func=cmd_profile)

    logout = sub.add_parser("logout", help="Forget the saved session token")
    logout.set_defaults(func=cmd_logout)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
