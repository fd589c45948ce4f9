"""Metric storage backends."""

from mcollector.config import Settings
from mcollector.core.logging import get_logger
from mcollector.storage.base import Metric, MetricsSnapshot, MetricType, Storage
from mcollector.storage.database import DatabaseStorage
from mcollector.storage.memory import MemoryStorage

logger = get_logger(__name__)


def create_storage(settings: Settings) -> Storage:
    """Build the backend selected by ``settings``."""
    if settings.storage_backend == "database":
        storage: Storage = DatabaseStorage.from_url(settings.database_url, echo=settings.debug)
    else:
        storage = MemoryStorage()
    logger.info("Storage initialised", data={"backend": settings.storage_backend})
    return storage


__all__ = [
    "DatabaseStorage",
    "MemoryStorage",
    "Metric",
    "MetricType",
    "MetricsSnapshot",
    "Storage",
    "create_storage",
]
