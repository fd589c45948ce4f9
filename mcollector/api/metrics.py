"""
Metric endpoints.

Path-parameter endpoints for single updates and reads, JSON endpoints for
structured and batch updates, a storage liveness check, and an HTML index
of every stored metric. Handlers are plain functions, so each request runs
its blocking storage calls on its own worker thread.
"""

from html import escape

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from mcollector.api.schemas import BatchResult, MetricPayload, MetricQuery
from mcollector.api.validation import (
    format_counter,
    format_gauge,
    parse_counter_value,
    parse_gauge_value,
    parse_metric_type,
    validate_name,
)
from mcollector.core.errors import ValidationError
from mcollector.core.logging import get_logger
from mcollector.storage.base import MetricsSnapshot, MetricType, Storage

logger = get_logger(__name__)
router = APIRouter(tags=["metrics"])


def get_storage(request: Request) -> Storage:
    """Storage backend attached to the application."""
    return request.app.state.storage


@router.post("/update/", response_model=MetricPayload, response_model_exclude_none=True)
def update_metric_json(
    payload: MetricPayload, storage: Storage = Depends(get_storage)
) -> MetricPayload:
    """Apply one JSON-encoded update and return the stored result."""
    if payload.type is MetricType.GAUGE:
        storage.insert_gauge(payload.id, payload.value)
        return payload

    total = storage.insert_counter(payload.id, payload.delta)
    return MetricPayload.reading(payload.type, payload.id, total)


@router.post("/updates/", response_model=BatchResult)
def update_metrics_batch(
    payloads: list[MetricPayload], storage: Storage = Depends(get_storage)
) -> BatchResult:
    """Apply a list of JSON-encoded updates atomically."""
    storage.insert_batch([payload.to_metric() for payload in payloads])
    logger.debug("Metric batch applied", data={"count": len(payloads)})
    return BatchResult(updated=len(payloads))


@router.post("/update/{metric_type}/{name}/{value}", response_class=PlainTextResponse)
def update_metric(
    metric_type: str,
    name: str,
    value: str,
    storage: Storage = Depends(get_storage),
) -> PlainTextResponse:
    """Apply a single update encoded in the URL path."""
    mtype = parse_metric_type(metric_type)
    validate_name(name)

    if mtype is MetricType.GAUGE:
        storage.insert_gauge(name, parse_gauge_value(value))
    else:
        storage.insert_counter(name, parse_counter_value(value))

    logger.debug("Metric updated", data={"type": mtype.value, "name": name})
    return PlainTextResponse("")


@router.post("/update/{metric_type}")
@router.post("/update/{metric_type}/{rest:path}")
def update_metric_malformed(metric_type: str, rest: str = "") -> None:
    """Update paths with a missing name or value."""
    raise ValidationError("Expected /update/{type}/{name}/{value}")


@router.post("/value/", response_model=MetricPayload, response_model_exclude_none=True)
def get_metric_json(
    query: MetricQuery, storage: Storage = Depends(get_storage)
) -> MetricPayload:
    """Return the stored value of a JSON-identified metric."""
    if query.type is MetricType.GAUGE:
        value: float | int = storage.select_gauge(query.id)
    else:
        value = storage.select_counter(query.id)
    return MetricPayload.reading(query.type, query.id, value)


@router.get("/value/{metric_type}/{name}", response_class=PlainTextResponse)
def get_metric(
    metric_type: str, name: str, storage: Storage = Depends(get_storage)
) -> PlainTextResponse:
    """Return the stored value as plain text."""
    mtype = parse_metric_type(metric_type)

    if mtype is MetricType.GAUGE:
        body = format_gauge(storage.select_gauge(name))
    else:
        body = format_counter(storage.select_counter(name))

    return PlainTextResponse(body)


@router.get("/ping", response_class=PlainTextResponse)
def ping(storage: Storage = Depends(get_storage)) -> PlainTextResponse:
    """Storage liveness check."""
    storage.ping()
    return PlainTextResponse("")


def render_index(snapshot: MetricsSnapshot) -> str:
    rows = [
        f"<tr><td>gauge</td><td>{escape(name)}</td><td>{format_gauge(value)}</td></tr>"
        for name, value in sorted(snapshot.gauges.items())
    ]
    rows += [
        f"<tr><td>counter</td><td>{escape(name)}</td><td>{format_counter(value)}</td></tr>"
        for name, value in sorted(snapshot.counters.items())
    ]
    return (
        "<!DOCTYPE html><html><head><title>Metrics</title></head><body>"
        "<table><tr><th>Type</th><th>Name</th><th>Value</th></tr>"
        + "".join(rows)
        + "</table></body></html>"
    )


@router.get("/", response_class=HTMLResponse)
def list_metrics(storage: Storage = Depends(get_storage)) -> HTMLResponse:
    """HTML table of every stored metric."""
    return HTMLResponse(render_index(storage.snapshot()))
