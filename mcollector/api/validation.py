"""
Metric path-parameter parsing and canonical value formatting.

Values arrive as URL path segments, so parsing is strict: only plain
decimal literals are accepted, never Python-specific spellings such as
``1_000``, ``nan`` or ``inf``.
"""

import math
import re
from decimal import Decimal

from mcollector.core.errors import ValidationError
from mcollector.storage.base import INT64_MAX, INT64_MIN, MetricType

_GAUGE_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_COUNTER_RE = re.compile(r"[+-]?[0-9]+")


def parse_metric_type(raw: str) -> MetricType:
    try:
        return MetricType(raw)
    except ValueError:
        raise ValidationError(f"Invalid metric type: {raw!r}") from None


def validate_name(name: str) -> str:
    if not name:
        raise ValidationError("Metric name is required")
    return name


def parse_gauge_value(raw: str) -> float:
    """Parse a finite gauge value; NaN and infinities are rejected."""
    if not _GAUGE_RE.fullmatch(raw):
        raise ValidationError(f"Invalid gauge value: {raw!r}")
    value = float(raw)
    if not math.isfinite(value):
        raise ValidationError(f"Gauge value out of range: {raw!r}")
    return value


def parse_counter_value(raw: str) -> int:
    """Parse a counter delta within the signed 64-bit range."""
    if not _COUNTER_RE.fullmatch(raw):
        raise ValidationError(f"Invalid counter value: {raw!r}")
    value = int(raw)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValidationError(f"Counter value out of range: {raw!r}")
    return value


def format_gauge(value: float) -> str:
    """
    Render a gauge as plain decimal text.

    Uses the shortest representation that round-trips, never exponent
    notation and never a trailing ``.0``: 123.45 -> "123.45", 1.0 -> "1",
    1.5e-06 -> "0.0000015".
    """
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_counter(value: int) -> str:
    return str(value)
