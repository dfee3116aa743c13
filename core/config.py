"""
core/config.py -- Settings for the SMU user API, server and CLI alike.

Every environment read goes through get_settings(); nothing else touches
os.environ. Values come from the process environment or a .env file in the
working directory, matched case-insensitively by field name
(token_expire_seconds -> TOKEN_EXPIRE_SECONDS).

get_settings() is wrapped in lru_cache, so the first call fixes the
configuration for the life of the process. Tests that need different values
build Settings(...) directly or clear the cache.

Signing key policy (enforced by the model validator):
  DEBUG=true with no SECRET_KEY   -> a random key is generated and a warning
                                     logged; issued tokens die with the process
  DEBUG=false with no SECRET_KEY  -> startup fails
  SECRET_KEY under 32 characters  -> startup fails in either mode

BCRYPT_ROUNDS is bounded to what the bcrypt library accepts (4..31).

Layer rule: core/ imports nothing from api/, auth/, or client/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("userapi.config")

_SEVEN_DAYS = 7 * 24 * 60 * 60

# SQLite file in the working directory; shared by Settings and AccountStore.
DEFAULT_DATABASE_URL = f"sqlite:///{Path.cwd() / 'smu_users.db'}"


class Settings(BaseSettings):
    """Server, auth, and CLI configuration.

    Every field has a default except that production needs SECRET_KEY.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # "" means unset; the validator replaces it or refuses to start.
    secret_key: str = ""
    database_url: str = DEFAULT_DATABASE_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # One lifetime for every issued token (register and login alike).
    token_expire_seconds: int = _SEVEN_DAYS
    bcrypt_rounds: int = 10
    email_domain: str = "smu.edu.ph"
    self_registration_enabled: bool = True

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 5000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    rate_limit: str = "100 per 15 minutes"
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Client (CLI)
    # ------------------------------------------------------------------

    api_base_url: str = "http://localhost:5000/api"
    token_file: str = str(Path.home() / ".smu_users" / "token")

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def check_signing_and_hashing(self) -> "Settings":
        """Apply the signing key policy from the module docstring, then the bcrypt bounds."""
        if not self.secret_key:
            if not self.debug:
                raise ValueError(
                    "SECRET_KEY is required when DEBUG is off. "
                    "Set it in the environment or .env, or set DEBUG=true for local development."
                )
            self.secret_key = secrets.token_hex(32)
            logger.warning("SECRET_KEY not set; generated a throwaway key. Issued tokens will not survive a restart.")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first call."""
    return Settings()
