"""Request logging middleware for mcollector."""

import secrets
import time

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mcollector.core.logging import get_logger, request_context

logger = get_logger(__name__)


class ResponseRecorder:
    """Send wrapper that records status and body size without altering messages."""

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status: int | None = None
        self.bytes_written = 0

    async def send(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            await self._send(message)
        elif message["type"] == "http.response.body":
            body = message.get("body", b"")
            await self._send(message)
            self.bytes_written += len(body)
        else:
            await self._send(message)


def _request_uri(scope: Scope) -> str:
    path = scope.get("root_path", "") + scope["path"]
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


class RequestLoggingMiddleware:
    """
    Log one record per request once the downstream app has finished.

    The record is written on every exit path, including exceptions and
    client disconnects, with whatever status and byte count were recorded.
    A request that raised before starting a response is logged as 500.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        request_id = headers.get("x-request-id") or secrets.token_hex(8)
        uri = _request_uri(scope)
        method = scope["method"]

        token = request_context.set(
            {"request_id": request_id, "path": scope["path"], "method": method}
        )
        recorder = ResponseRecorder(send)
        start_time = time.perf_counter()

        try:
            await self.app(scope, receive, recorder.send)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            status = recorder.status if recorder.status is not None else 500
            logger.info(
                "Request completed",
                data={
                    "uri": uri,
                    "method": method,
                    "status": status,
                    "bytes": recorder.bytes_written,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            request_context.reset(token)
