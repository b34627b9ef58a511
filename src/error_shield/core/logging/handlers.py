# src/error_shield/core/logging/handlers.py
"""
Handler factories for logging.dictConfig.

Each helper returns a handler configuration dict (no side effects), so the
builder stays a plain assembly of pieces and each piece is easy to unit test.
The formatter names ("json", "standard") and filter names ("request_id",
"redact") must exist in the dictConfig built by builder.py.
"""

from error_shield.config.settings import Settings
from pathlib import Path

APP_LOG_FILENAME = "app.log"
ERROR_LOG_FILENAME = "errors.log"
DIAGNOSTICS_LOG_FILENAME = "diagnostics.log"


def _formatter_name(settings: Settings) -> str:
    return "json" if settings.LOG_FORMAT == "json" else "standard"


def get_console_handler(settings: Settings) -> dict:
    """
    Console/stream handler (stderr by default).

    Add `"stream": "ext://sys.stdout"` to the returned dict to force stdout.
    """
    return {
        "class": "logging.StreamHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filters": ["request_id", "redact"],
    }


def get_file_handler(settings: Settings) -> dict:
    file_path = str(Path(settings.LOG_DIR) / APP_LOG_FILENAME)
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filename": file_path,
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": ["request_id", "redact"],
    }


# Error-specific rotating file to separate errors (useful for alerting/archival).
def get_error_file_handler(settings: Settings) -> dict:
    error_file_path = str(Path(settings.LOG_DIR) / ERROR_LOG_FILENAME)
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",  # keep error files structured for easier ingestion
        "level": "ERROR",
        "filename": error_file_path,
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": ["request_id", "redact"],
    }


def get_diagnostics_file_handler(settings: Settings) -> dict:
    """
    Dedicated file for the unredacted originals recorded by the masking layer.

    Always JSON: each line is one diagnostic record that operators grep by
    request_id when a client reports a masked 500.
    """
    diagnostics_path = str(Path(settings.LOG_DIR) / DIAGNOSTICS_LOG_FILENAME)
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",
        "level": "ERROR",
        "filename": diagnostics_path,
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": ["request_id", "redact"],
    }


def get_error_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": "json",
        "level": "ERROR",
        "filters": ["request_id", "redact"],
    }
