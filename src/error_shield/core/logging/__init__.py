# src/error_shield/core/logging/
# ├─ __init__.py            # public API: setup_logging, stop_queue_logging, middleware
# ├─ builder.py             # make_dict_config(settings) + setup_logging(settings) + queue wiring
# ├─ formatters.py          # JsonFormatter, ColorFormatter
# ├─ filters.py             # RequestIdFilter, RedactFilter (+ contextvar helpers)
# ├─ handlers.py            # handler config factories (console / rotating files)
# └─ middleware.py          # request id, request logging and response logging stages


from .builder import setup_logging, stop_queue_logging, make_dict_config, get_queue_stats
from .filters import set_request_id, get_request_id, RequestIdFilter
from .middleware import RequestIDMiddleware, RequestLoggingMiddleware, ResponseLoggingMiddleware

__all__ = [
    "setup_logging",
    "stop_queue_logging",
    "make_dict_config",
    "get_queue_stats",
    "set_request_id",
    "get_request_id",
    "RequestIdFilter",
    "RequestIDMiddleware",
    "RequestLoggingMiddleware",
    "ResponseLoggingMiddleware",
]
