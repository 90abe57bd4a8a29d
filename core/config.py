"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for useraccess happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Both signing keys follow the same policy:
      dev mode generates a key with a warning, production mode refuses to
      start without one.

Security notes:
  [K1] Keys shorter than 32 chars are rejected outright. JWT signing and the
       credential hasher both rely on key entropy -- a short key weakens both.

  [K2] CREDENTIAL_HASH_KEY is the salt of every stored login/password hash.
       Changing it invalidates every persisted credential, so an auto-generated
       dev key means accounts created in one run cannot sign in after restart.

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("useraccess.config")

_MIN_KEY_LENGTH = 32

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent.parent / 'auth' / 'useraccess.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Session tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    token_expire_seconds: int = 3600

    # ------------------------------------------------------------------
    # Credential hashing
    # ------------------------------------------------------------------

    credential_hash_key: str = ""
    # bcrypt-pbkdf rounds. Tests drop this to 1; production keeps the default.
    credential_hash_rounds: int = 64

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("token_expire_seconds", "credential_hash_rounds")
    @classmethod
    def must_be_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be a positive integer")
        return value

    @model_validator(mode="after")
    def validate_keys(self) -> "Settings":
        """Enforce the key policy for SECRET_KEY and CREDENTIAL_HASH_KEY [K1].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
        Production mode (DEBUG=false or not set): refuse to start if a key
            is missing.
        Both modes: reject keys shorter than 32 characters.
        """
        self.secret_key = self._resolve_key("SECRET_KEY", self.secret_key)
        self.credential_hash_key = self._resolve_key("CREDENTIAL_HASH_KEY", self.credential_hash_key)
        return self

    def _resolve_key(self, env_name: str, value: str) -> str:
        if not value:
            if not self.debug:
                raise ValueError(
                    f"{env_name} is required in production mode. "
                    f"Set {env_name} in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
            value = secrets.token_hex(32)
            logger.warning("WARNING: Using auto-generated %s. Values derived from it will not survive a restart.", env_name)
        if len(value) < _MIN_KEY_LENGTH:
            raise ValueError(f"{env_name} must be at least {_MIN_KEY_LENGTH} characters.")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
