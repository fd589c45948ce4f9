"""
Structured error handling with stable error codes.

No stack traces or driver messages are exposed to clients. All errors are
mapped to stable, documented error codes for reliable client handling.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for API responses."""

    # General errors (1xxx)
    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"
    NOT_FOUND = "E1002"
    METHOD_NOT_ALLOWED = "E1003"
    DECOMPRESSION_FAILED = "E1004"

    # Storage errors (5xxx)
    STORAGE_ERROR = "E5000"
    STORAGE_UNAVAILABLE = "E5001"


@dataclass(frozen=True)
class ErrorResponse:
    """Structured error response for API.

    Format: {error: {code, message, request_id?}}
    """

    code: ErrorCode
    message: str
    request_id: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        error: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.request_id:
            error["request_id"] = self.request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


class AppError(Exception):
    """Base application error with structured error detail."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_response(self, request_id: str | None = None) -> ErrorResponse:
        """Create error response with request ID."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            request_id=request_id,
            details=self.details,
        )


class ValidationError(AppError):
    """Malformed metric type, name or value (400)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.VALIDATION_ERROR, message, 400, details)


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(ErrorCode.NOT_FOUND, message, 404)


class MetricNotFoundError(NotFoundError):
    """Metric was never set under the requested type (404)."""

    def __init__(self, metric_type: str, name: str):
        self.metric_type = metric_type
        self.name = name
        super().__init__(f"Metric {metric_type}/{name} not found")


class CounterOverflowError(ValidationError):
    """Counter total would leave the signed 64-bit range (400)."""

    def __init__(self, name: str):
        super().__init__(
            f"Counter {name} would overflow",
            details={"name": name},
        )


class StorageError(AppError):
    """Storage backend failure (500).

    The underlying driver exception is chained as ``__cause__`` and only
    ever logged.
    """

    def __init__(self, message: str = "Storage backend error"):
        super().__init__(ErrorCode.STORAGE_ERROR, message, 500)


class StorageUnavailableError(StorageError):
    """Storage liveness check failed (500)."""

    def __init__(self, message: str = "Storage backend unavailable"):
        super().__init__(message)
        self.code = ErrorCode.STORAGE_UNAVAILABLE
