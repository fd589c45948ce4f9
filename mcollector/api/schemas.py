"""JSON request/response models for the metric endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from mcollector.storage.base import INT64_MAX, INT64_MIN, Metric, MetricType


class MetricQuery(BaseModel):
    """Identifies a metric to read."""

    id: str = Field(min_length=1)
    type: MetricType


class MetricPayload(MetricQuery):
    """A metric update or reading.

    Counters carry ``delta``, gauges carry ``value``.
    """

    delta: int | None = Field(default=None, ge=INT64_MIN, le=INT64_MAX)
    value: float | None = Field(default=None, allow_inf_nan=False)

    @model_validator(mode="after")
    def check_value_matches_type(self) -> MetricPayload:
        if self.type is MetricType.COUNTER and self.delta is None:
            raise ValueError("counter metrics require 'delta'")
        if self.type is MetricType.GAUGE and self.value is None:
            raise ValueError("gauge metrics require 'value'")
        return self

    def to_metric(self) -> Metric:
        if self.type is MetricType.COUNTER:
            return Metric(name=self.id, type=self.type, value=self.delta)
        return Metric(name=self.id, type=self.type, value=self.value)

    @classmethod
    def reading(cls, metric_type: MetricType, name: str, value: float | int) -> MetricPayload:
        """Build a response carrying the stored value of a metric."""
        if metric_type is MetricType.COUNTER:
            return cls(id=name, type=metric_type, delta=value)
        return cls(id=name, type=metric_type, value=value)


class BatchResult(BaseModel):
    """Outcome of a batch update."""

    updated: int
