"""
mcollector metrics server.

FastAPI application that stores gauge and counter metrics, with gzip
content negotiation, per-request logging and structured error handling.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware import Middleware

from mcollector.api import metrics_router
from mcollector.config import Settings, get_settings
from mcollector.core import (
    GzipMiddleware,
    RequestLoggingMiddleware,
    get_logger,
    setup_exception_handlers,
    setup_logging,
)
from mcollector.storage import Storage, create_storage

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = _app.state.settings

    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    logger.info(
        "Starting mcollector server",
        data={
            "host": settings.host,
            "port": settings.port,
            "storage": settings.storage_backend,
        },
    )

    # Initialize storage unless provided (useful in tests)
    storage_created = False
    if getattr(_app.state, "storage", None) is None:
        _app.state.storage = create_storage(settings)
        storage_created = True

    yield

    logger.info("Shutting down mcollector server")
    if storage_created:
        _app.state.storage.close()


def build_middleware() -> list[Middleware]:
    """
    Request pipeline, outermost first.

    Logging wraps compression, so the logged byte count is what went out on
    the wire and requests rejected during decompression are still logged.
    """
    return [
        Middleware(RequestLoggingMiddleware),
        Middleware(GzipMiddleware),
    ]


def create_app(settings: Settings | None = None, storage: Storage | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    # API docs are never served in production, even with debug on
    show_docs = settings.debug and not settings.is_production

    app = FastAPI(
        title="mcollector",
        description="Gauge and counter metrics collection server",
        version="0.1.0",
        lifespan=lifespan,
        middleware=build_middleware(),
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
    )
    app.state.settings = settings
    app.state.storage = storage

    setup_exception_handlers(app)
    app.include_router(metrics_router)

    return app
