"""
client/token_store.py -- File-backed bearer token storage for the CLI client.

Plays the role browser local storage plays for the web client: the token
survives between CLI invocations until logout or a 401 clears it. The file
is written with owner-only permissions because the token is a credential.

Usage:
    store = TokenStore()
    store.set(token)
    token = store.get()      # returns str or None
    store.clear()
"""

import os
from pathlib import Path
from typing import Optional

_DEFAULT_PATH = Path.home() / ".smu_users" / "token"


class TokenStore:
    def __init__(self, path: Path = _DEFAULT_PATH) -> None:
        self.path = Path(path)

    def get(self) -> Optional[str]:
        """Return the saved token, or None if there is none."""
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def set(self, token: str) -> None:
        """Persist token, replacing any previous one."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(token)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
