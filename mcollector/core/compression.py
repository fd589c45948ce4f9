"""
Gzip content negotiation middleware.

Decompresses gzip request bodies of text-like content types and compresses
response bodies for clients that accept gzip. Requests and responses that
do not negotiate gzip pass through untouched.
"""

import gzip
import io
import zlib
from collections.abc import Iterable

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mcollector.core.errors import ErrorCode, ErrorResponse
from mcollector.core.logging import get_logger, request_context

logger = get_logger(__name__)

GZIP = "gzip"
COMPRESS_LEVEL = 9

# Only text payloads are ever decompressed
ALLOWED_CONTENT_TYPES = frozenset(
    {
        "application/javascript",
        "application/json",
        "text/css",
        "text/html",
        "text/plain",
        "text/xml",
    }
)

# Statuses that must not carry a body
_NO_BODY_STATUSES = {204, 304}


class CompressionWriteError(OSError):
    """Compressing a response chunk failed."""


def media_types(values: Iterable[str]) -> set[str]:
    """Media types of Content-Type header values, parameters stripped."""
    types = set()
    for value in values:
        media_type = value.split(";", 1)[0].strip().lower()
        if media_type:
            types.add(media_type)
    return types


def _quality(params: str) -> float:
    for param in params.split(";"):
        key, _, value = param.partition("=")
        if key.strip().lower() == "q":
            try:
                return float(value)
            except ValueError:
                return 0.0
    return 1.0


def codings(values: Iterable[str]) -> set[str]:
    """Codings listed across header values, skipping ones refused with ``q=0``."""
    result = set()
    for value in values:
        for item in value.split(","):
            coding, _, params = item.partition(";")
            coding = coding.strip().lower()
            if coding and _quality(params) > 0:
                result.add(coding)
    return result


async def _read_body(receive: Receive) -> bytes:
    chunks = []
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def _replay_body(scope: Scope, receive: Receive, body: bytes) -> tuple[Scope, Receive]:
    """Forward ``body`` as the whole request body with matching headers."""
    scope = dict(scope)
    headers = MutableHeaders(scope=scope)
    del headers["content-encoding"]
    headers["content-length"] = str(len(body))

    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return scope, replay


class GzipResponder:
    """
    Send wrapper that gzips one response.

    Holds the start message until the first body chunk so Content-Encoding
    is set before any body byte goes out. The compressor belongs to a single
    response and is closed exactly once, by the final body chunk or by
    :meth:`close`, whichever comes first.
    """

    def __init__(self, send: Send, compresslevel: int = COMPRESS_LEVEL) -> None:
        self._send = send
        self._buffer = io.BytesIO()
        self._gzip = gzip.GzipFile(mode="wb", fileobj=self._buffer, compresslevel=compresslevel)
        self._start_message: Message | None = None
        self._passthrough = False
        self._closed = False

    async def send(self, message: Message) -> None:
        message_type = message["type"]

        if message_type == "http.response.start":
            headers = Headers(raw=message.get("headers", []))
            if "content-encoding" in headers or message["status"] in _NO_BODY_STATUSES:
                self._passthrough = True
                await self._send(message)
            else:
                self._start_message = message
            return

        if message_type != "http.response.body" or self._passthrough:
            await self._send(message)
            return

        more_body = message.get("more_body", False)
        compressed = self._compress(message.get("body", b""), final=not more_body)

        if self._start_message is not None:
            start = dict(self._start_message)
            self._start_message = None
            start["headers"] = list(start.get("headers", []))
            headers = MutableHeaders(raw=start["headers"])
            headers["Content-Encoding"] = GZIP
            headers.add_vary_header("Accept-Encoding")
            if more_body:
                del headers["Content-Length"]
            else:
                headers["Content-Length"] = str(len(compressed))
            await self._send(start)

        await self._send({"type": "http.response.body", "body": compressed, "more_body": more_body})

    def _compress(self, body: bytes, final: bool) -> bytes:
        try:
            self._gzip.write(body)
            if final:
                self.close()
            else:
                self._gzip.flush()
        except (OSError, ValueError, zlib.error) as exc:
            raise CompressionWriteError(f"cannot write with gzip: {exc}") from exc

        data = self._buffer.getvalue()
        self._buffer.seek(0)
        self._buffer.truncate()
        return data

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Flush and close the compressor; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        self._gzip.close()


class GzipMiddleware:
    """Decompress gzip request bodies and gzip responses when accepted."""

    def __init__(
        self,
        app: ASGIApp,
        compresslevel: int = COMPRESS_LEVEL,
        content_types: Iterable[str] = ALLOWED_CONTENT_TYPES,
    ) -> None:
        self.app = app
        self.compresslevel = compresslevel
        self.content_types = frozenset(content_types)

    def should_decompress(self, headers: Headers) -> bool:
        """True if the request declares a gzip body of an allowed content type."""
        if not media_types(headers.getlist("content-type")) & self.content_types:
            return False
        return GZIP in codings(headers.getlist("content-encoding"))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)

        if self.should_decompress(headers):
            raw = await _read_body(receive)
            try:
                if not raw:
                    raise EOFError("empty gzip stream")
                body = gzip.decompress(raw)
            except (OSError, EOFError, zlib.error) as exc:
                logger.error("Failed to decompress request body", data={"error": str(exc)})
                error_response = ErrorResponse(
                    code=ErrorCode.DECOMPRESSION_FAILED,
                    message="failed to decompress data",
                    request_id=request_context.get().get("request_id"),
                )
                response = JSONResponse(status_code=500, content=error_response.to_dict())
                await response(scope, receive, send)
                return
            scope, receive = _replay_body(scope, receive, body)

        if GZIP not in codings(headers.getlist("accept-encoding")):
            await self.app(scope, receive, send)
            return

        responder = GzipResponder(send, self.compresslevel)
        try:
            await self.app(scope, receive, responder.send)
        finally:
            responder.close()
