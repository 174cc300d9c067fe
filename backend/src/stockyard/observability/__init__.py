"""Observability for the data-access core: log context, logging setup, Prometheus metrics."""

from .log_context import bind, bind_request_id, bind_scope, current_context, get_request_id
from .logging_config import JSONFormatter, LogContextFilter, configure_logging
from .middleware import RequestContextMiddleware

__all__ = [
    "bind",
    "bind_request_id",
    "bind_scope",
    "current_context",
    "get_request_id",
    "JSONFormatter",
    "LogContextFilter",
    "configure_logging",
    "RequestContextMiddleware",
]
