# Core infrastructure
from coursegate.core.context import (
    clear_context,
    get_context,
    get_principal_id,
    get_request_id,
    set_correlation_id,
    set_principal,
    set_request_id,
    set_trace_id,
)
from coursegate.core.logging import configure_structlog, get_logger


__all__ = [
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_principal_id",
    "get_request_id",
    "set_correlation_id",
    "set_principal",
    "set_request_id",
    "set_trace_id",
]
