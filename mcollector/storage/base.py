"""
Storage contract.

Defines the interface every metrics backend must implement. Routers and
middleware depend only on :class:`Storage`, never on a concrete backend.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class MetricType(str, Enum):
    """Supported metric types."""

    GAUGE = "gauge"
    COUNTER = "counter"


@dataclass(frozen=True)
class Metric:
    """A single named measurement.

    ``value`` is the new reading for a gauge and the delta for a counter.
    """

    name: str
    type: MetricType
    value: float | int


@dataclass
class MetricsSnapshot:
    """All stored metrics at one point in time."""

    gauges: dict[str, float] = field(default_factory=dict)
    counters: dict[str, int] = field(default_factory=dict)


class Storage(ABC):
    """
    Abstract base class for metric storage backends.

    Gauges and counters live in separate namespaces. Gauge writes replace
    the stored value; counter writes add to it. Implementations are shared
    by all concurrent requests and must serialise conflicting writes to the
    same key themselves. Backend failures are raised as ``StorageError``.
    """

    @abstractmethod
    def insert_gauge(self, name: str, value: float) -> None:
        """Store ``value`` as the current value of gauge ``name``."""
        ...

    @abstractmethod
    def insert_counter(self, name: str, delta: int) -> int:
        """
        Add ``delta`` to counter ``name``, creating it at ``delta``.

        Returns:
            The counter total after the update
        """
        ...

    @abstractmethod
    def select_gauge(self, name: str) -> float:
        """
        Return the current value of gauge ``name``.

        Raises:
            MetricNotFoundError: if the gauge was never set
        """
        ...

    @abstractmethod
    def select_counter(self, name: str) -> int:
        """
        Return the current total of counter ``name``.

        Raises:
            MetricNotFoundError: if the counter was never set
        """
        ...

    @abstractmethod
    def insert_batch(self, metrics: Sequence[Metric]) -> None:
        """Apply all ``metrics`` atomically: either every update lands or none does."""
        ...

    @abstractmethod
    def snapshot(self) -> MetricsSnapshot:
        """Return every stored gauge and counter."""
        ...

    @abstractmethod
    def ping(self) -> None:
        """
        Check that the backend is reachable.

        Raises:
            StorageUnavailableError: if it is not
        """
        ...

    def close(self) -> None:
        """Release any underlying resources (optional)."""
        return None
