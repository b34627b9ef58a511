from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache
from ..validators.config_validators import to_uppercase, to_lowercase

class Settings(BaseSettings):
    """
    Application settings loaded from environment.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"
    SERVICE_NAME: str = "error-shield"

    # HTTP binding (used by `python -m error_shield` only; the app itself is transport-agnostic)
    HOST: str = "127.0.0.1"
    PORT: int = 3000

    # Origins allowed to call the API from a browser
    CORS_ORIGINS: list[str] = ["http://localhost:4200"]

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/error-shield")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5

    # Queue-backed logging: producers enqueue, a background listener does the IO.
    # With a bounded, non-blocking queue, records are dropped under overload
    # instead of stalling the response path.
    LOG_USE_QUEUE: bool = True
    LOG_QUEUE_MAX_SIZE: int = 10_000
    LOG_QUEUE_BLOCKING: bool = False
    LOG_QUEUE_DROP_WARNING_THRESHOLD: int = 100

    # Pipeline stages
    ENABLE_REQUEST_LOGGING: bool = True
    ENABLE_RESPONSE_LOGGING: bool = True

    # Hardening: drop `details` from errors that pass through unmasked.
    # Off by default, so passthrough bodies reach the client exactly as raised.
    STRIP_PASSTHROUGH_DETAILS: bool = False

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: str | None) -> str | None:
        """
        Normalize the LOG_LEVEL environment variable value to uppercase.

        This validator runs before any other validation (mode="before") on the LOG_LEVEL field,
        so `LOG_LEVEL=debug` in the environment is accepted as "DEBUG".
        """
        return to_uppercase(v)

    @field_validator("LOG_FORMAT", mode="before")
    def normalize_log_format(cls, v: str | None) -> str | None:
        """
        Normalize the LOG_FORMAT environment variable value to lowercase.
        """
        return to_lowercase(v)

    # --- ConfigDict settings ---
    model_config = ConfigDict(
        # Load environment variables from the .env file at the package root.
        env_file=str(Path(__file__).parent.parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

# get_settings() takes no arguments and always returns the same settings from the environment,
# so caching it with @lru_cache() avoids re-reading the environment on every call.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
