"""In-process metric storage."""

from __future__ import annotations

import threading
from collections.abc import Sequence

from mcollector.core.errors import CounterOverflowError, MetricNotFoundError
from mcollector.storage.base import (
    INT64_MAX,
    INT64_MIN,
    Metric,
    MetricsSnapshot,
    MetricType,
    Storage,
)


class MemoryStorage(Storage):
    """Thread-safe gauge/counter maps guarded by a single lock.

    Concurrent gauge writes resolve in lock-acquisition order: the last
    writer to take the lock wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._gauges: dict[str, float] = {}
        self._counters: dict[str, int] = {}

    def insert_gauge(self, name: str, value: float) -> None:
        with self._lock:
            self._gauges[name] = float(value)

    def insert_counter(self, name: str, delta: int) -> int:
        with self._lock:
            total = self._add_counter(self._counters, name, delta)
            self._counters[name] = total
            return total

    def select_gauge(self, name: str) -> float:
        with self._lock:
            try:
                return self._gauges[name]
            except KeyError:
                raise MetricNotFoundError(MetricType.GAUGE.value, name) from None

    def select_counter(self, name: str) -> int:
        with self._lock:
            try:
                return self._counters[name]
            except KeyError:
                raise MetricNotFoundError(MetricType.COUNTER.value, name) from None

    def insert_batch(self, metrics: Sequence[Metric]) -> None:
        with self._lock:
            # Stage into copies so a failing item leaves the store untouched
            gauges = dict(self._gauges)
            counters = dict(self._counters)
            for metric in metrics:
                if metric.type is MetricType.GAUGE:
                    gauges[metric.name] = float(metric.value)
                else:
                    counters[metric.name] = self._add_counter(
                        counters, metric.name, int(metric.value)
                    )
            self._gauges = gauges
            self._counters = counters

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(gauges=dict(self._gauges), counters=dict(self._counters))

    def ping(self) -> None:
        return None

    @staticmethod
    def _add_counter(counters: dict[str, int], name: str, delta: int) -> int:
        total = counters.get(name, 0) + delta
        if not INT64_MIN <= total <= INT64_MAX:
            raise CounterOverflowError(name)
        return total
