"""Core module with logging, errors, middleware, and exception handling."""

from mcollector.core.compression import CompressionWriteError, GzipMiddleware, GzipResponder
from mcollector.core.errors import (
    AppError,
    CounterOverflowError,
    ErrorCode,
    ErrorResponse,
    MetricNotFoundError,
    NotFoundError,
    StorageError,
    StorageUnavailableError,
    ValidationError,
)
from mcollector.core.exceptions import setup_exception_handlers
from mcollector.core.logging import get_logger, setup_logging
from mcollector.core.middleware import RequestLoggingMiddleware, ResponseRecorder

__all__ = [
    "get_logger",
    "setup_logging",
    "AppError",
    "CounterOverflowError",
    "ErrorCode",
    "ErrorResponse",
    "MetricNotFoundError",
    "NotFoundError",
    "StorageError",
    "StorageUnavailableError",
    "ValidationError",
    "CompressionWriteError",
    "GzipMiddleware",
    "GzipResponder",
    "RequestLoggingMiddleware",
    "ResponseRecorder",
    "setup_exception_handlers",
]
