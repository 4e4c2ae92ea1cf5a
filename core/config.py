"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Conduit happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): refuses to start without a signing key
      source. There is no auto-generated development key: a missing key is a
      fatal configuration error in every mode.

Signing key sources (first match wins):
  SECRET_KEY_FILE  path to a file holding the raw key bytes. Keep it outside
                   the repository and readable only by the service account.
                   `python main.py generate-key <path>` creates one.
  SECRET_KEY       inline key string, at least 32 characters.

The key itself is read by load_signing_key(), called exactly once from the
API lifespan. It is never logged.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("conduit.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'conduit.db'}"

MIN_INLINE_KEY_CHARS = 32
MIN_FILE_KEY_BYTES = 16


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `bcrypt_rounds` from BCRYPT_ROUNDS.
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

    # Empty string is the sentinel for "not configured".
    secret_key: str = Field(default="", repr=False)
    secret_key_file: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = Field(default=60 * 60 * 24, gt=0)
    # bcrypt accepts 4..31. Each +1 doubles hashing time.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to start without a signing key source.

        SECRET_KEY_FILE takes precedence; its contents are checked by
        load_signing_key(). An inline SECRET_KEY shorter than 32 characters
        is rejected -- short keys have insufficient entropy for HS256.
        """
        if self.secret_key_file:
            return self
        if not self.secret_key:
            raise ValueError(
                "No signing key configured. Set SECRET_KEY_FILE to a key file "
                "(see `python main.py generate-key`) or SECRET_KEY in your environment."
            )
        if len(self.secret_key) < MIN_INLINE_KEY_CHARS:
            raise ValueError(f"SECRET_KEY must be at least {MIN_INLINE_KEY_CHARS} characters.")
        return self


def load_signing_key(settings: Settings) -> bytes:
    """Return the process-wide signing key as raw bytes.

    Raises ValueError if the key file is missing, unreadable or too short.
    Callers treat any failure here as fatal -- the service must not accept
    requests without a key.
    """
    if settings.secret_key_file:
        path = Path(settings.secret_key_file).expanduser()
        try:
            key = path.read_bytes()
        except OSError as exc:
            raise ValueError(f"Cannot read SECRET_KEY_FILE {path}: {exc.strerror}") from exc
        if len(key) < MIN_FILE_KEY_BYTES:
            raise ValueError(f"SECRET_KEY_FILE must contain at least {MIN_FILE_KEY_BYTES} bytes.")
        logger.info("Signing key loaded from file")
        return key
    logger.info("Signing key loaded from environment")
    return settings.secret_key.encode("utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
