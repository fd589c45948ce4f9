"""API routers."""

from mcollector.api.metrics import router as metrics_router

__all__ = ["metrics_router"]
