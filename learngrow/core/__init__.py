# Core infrastructure
from learngrow.core.clock import Clock, SystemClock, get_clock
from learngrow.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from learngrow.core.logging import configure_structlog, get_logger
from learngrow.core.middleware import RequestContextMiddleware


__all__ = [
    "Clock",
    "RequestContextMiddleware",
    "SystemClock",
    "clear_context",
    "configure_structlog",
    "get_clock",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_user_id",
]
