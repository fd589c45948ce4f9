"""Tests for metric path parsing and value formatting."""

import pytest

from mcollector.api.validation import (
    format_counter,
    format_gauge,
    parse_counter_value,
    parse_gauge_value,
    parse_metric_type,
    validate_name,
)
from mcollector.core.errors import ValidationError
from mcollector.storage.base import MetricType


def test_parse_metric_type():
    assert parse_metric_type("gauge") is MetricType.GAUGE
    assert parse_metric_type("counter") is MetricType.COUNTER

    with pytest.raises(ValidationError):
        parse_metric_type("COUNTER")


def test_validate_name_rejects_empty():
    assert validate_name("cpu") == "cpu"
    with pytest.raises(ValidationError):
        validate_name("")


@pytest.mark.parametrize(
    "raw, expected",
    [("123.45", 123.45), ("-1", -1.0), ("+2.5", 2.5), (".5", 0.5), ("5.", 5.0), ("1e-3", 0.001)],
)
def test_parse_gauge_value(raw, expected):
    assert parse_gauge_value(raw) == expected


@pytest.mark.parametrize(
    "raw", ["", "abc", "nan", "NaN", "inf", "-Infinity", "1e999", "1_000.5", " 1", "0x10", "1,5"]
)
def test_parse_gauge_value_rejects(raw):
    with pytest.raises(ValidationError):
        parse_gauge_value(raw)


@pytest.mark.parametrize(
    "raw, expected",
    [("0", 0), ("42", 42), ("-7", -7), ("+7", 7), ("9223372036854775807", 2**63 - 1)],
)
def test_parse_counter_value(raw, expected):
    assert parse_counter_value(raw) == expected


@pytest.mark.parametrize(
    "raw", ["", "1.0", "1e3", "abc", "1_000", " 5", "9223372036854775808", "-9223372036854775809"]
)
def test_parse_counter_value_rejects(raw):
    with pytest.raises(ValidationError):
        parse_counter_value(raw)


@pytest.mark.parametrize(
    "value, expected",
    [
        (123.45, "123.45"),
        (1.0, "1"),
        (0.0, "0"),
        (-2.5, "-2.5"),
        (1e20, "100000000000000000000"),
        (1.5e-6, "0.0000015"),
        (0.1 + 0.2, "0.30000000000000004"),
    ],
)
def test_format_gauge(value, expected):
    assert format_gauge(value) == expected


@pytest.mark.parametrize("value", [0.1, 1 / 3, 1e-300, 12345.678901234567, 2.0**70])
def test_format_gauge_round_trips(value):
    assert float(format_gauge(value)) == value


def test_format_counter():
    assert format_counter(-15) == "-15"
