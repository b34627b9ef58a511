# error_shield/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py          # HttpError and the per-status subclasses, MaskedError
# │   └── classifier.py    # Failure variants + classify() -> ErrorDisposition

from .base import *  # noqa: F401,F403
from .base import __all__ as _base_all
from .classifier import (
    ErrorCategory,
    ErrorDisposition,
    Failure,
    OpaqueFailure,
    StructuredHttpError,
    capture_failure,
    categorize,
    classify,
    classify_status,
)

__all__ = [
    *_base_all,
    "ErrorCategory",
    "ErrorDisposition",
    "Failure",
    "OpaqueFailure",
    "StructuredHttpError",
    "capture_failure",
    "categorize",
    "classify",
    "classify_status",
]
