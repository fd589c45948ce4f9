"""Exception handlers mapping errors to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mcollector.core.errors import AppError, ErrorCode, ErrorResponse
from mcollector.core.logging import get_logger, request_context

logger = get_logger(__name__)


def _request_id() -> str | None:
    return request_context.get().get("request_id")


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure global exception handlers for the application."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed JSON payloads are client errors like malformed paths."""
        logger.info("Invalid request payload", data={"errors": exc.errors()})
        error_response = ErrorResponse(
            code=ErrorCode.VALIDATION_ERROR,
            message="Validation error",
            request_id=_request_id(),
        )
        return JSONResponse(status_code=400, content=error_response.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle routing errors with structured response."""
        code_map = {
            400: ErrorCode.VALIDATION_ERROR,
            404: ErrorCode.NOT_FOUND,
            405: ErrorCode.METHOD_NOT_ALLOWED,
        }
        error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        error_response = ErrorResponse(
            code=error_code,
            message=str(exc.detail) if exc.detail else "HTTP error",
            request_id=_request_id(),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.to_dict(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(AppError)
    async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
        """Handle application errors; only 5xx are logged as errors."""
        if exc.status_code >= 500:
            cause = exc.__cause__
            logger.error(
                f"Application error: {exc.message}",
                data={
                    "code": exc.code.value,
                    "cause": repr(cause) if cause is not None else None,
                },
            )
        elif exc.status_code == 404:
            logger.debug(exc.message, data={"code": exc.code.value})
        else:
            logger.info(
                f"Rejected request: {exc.message}",
                data={"code": exc.code.value, "details": exc.details},
            )
        error_response = exc.to_response(request_id=_request_id())
        return JSONResponse(status_code=exc.status_code, content=error_response.to_dict())

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors without exposing internals."""
        logger.error(
            "Unhandled exception",
            exc_info=exc,
            data={"path": request.url.path, "method": request.method},
        )
        error_response = ErrorResponse(
            code=ErrorCode.INTERNAL_ERROR,
            message="An unexpected error occurred",
            request_id=_request_id(),
        )
        return JSONResponse(status_code=500, content=error_response.to_dict())
