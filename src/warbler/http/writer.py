"""Response writers.

A writer collects status, headers and body for one request into a pooled
buffer and emits the ASGI ``http.response.start`` / ``http.response.body``
pair when it is closed. The request handler always closes the writer,
whatever happened in the handler.

Compressing writers encode the buffered body on close. Responses without
a body (HEAD, 204, 304, or nothing written) are sent without framing and
without ``Content-Encoding``.
"""

import io
import zlib

from warbler._internal.asgi import Send
from warbler._internal.bufpool import BufferPool
from warbler.http.headers import MutableHeaders

BODYLESS_STATUSES: frozenset[int] = frozenset({204, 304})


def _allows_body(status: int) -> bool:
    return status >= 200 and status not in BODYLESS_STATUSES


def _add_vary(headers: MutableHeaders, name: str) -> None:
    current = headers.get("Vary")
    if not current:
        headers.set("Vary", name)
    elif name.lower() not in (v.strip().lower() for v in current.split(",")):
        headers.set("Vary", f"{current}, {name}")


class ResponseWriter:
    """Buffered, uncompressed response writer.

    ``write_header`` records the status once; later calls are ignored.
    Writing body bytes before a status commits 200.
    """

    __slots__ = ("_buf", "_closed", "_pool", "_send", "_status", "body_bytes_sent", "headers", "method")

    def __init__(self, send: Send, *, method: str = "GET", pool: BufferPool | None = None) -> None:
        self._send = send
        self._pool = pool
        self._buf: io.BytesIO = pool.get() if pool is not None else io.BytesIO()
        self._status: int | None = None
        self._closed = False
        self.method = method
        self.headers = MutableHeaders()
        self.body_bytes_sent = 0

    @property
    def status_code(self) -> int:
        return self._status if self._status is not None else 200

    @property
    def wrote_header(self) -> bool:
        return self._status is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def write_header(self, status: int) -> None:
        if self._status is None:
            self._status = status

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self._status is None:
            self._status = 200
        n = self._buf.write(data)
        self.body_bytes_sent += n
        return n

    def reset(self) -> None:
        """Drop everything written so far: status, headers and body."""
        self._buf.seek(0)
        self._buf.truncate()
        self._status = None
        self.body_bytes_sent = 0
        self.headers.clear()

    def encode(self, body: bytes) -> bytes:
        return body

    async def close(self) -> None:
        """Send the response. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        status = self.status_code
        try:
            body = self._buf.getvalue() if _allows_body(status) else b""
            body = self.encode(body)
            if _allows_body(status):
                self.headers.set("Content-Length", str(len(body)))
            else:
                self.headers.delete("Content-Length")

            await self._send(
                {
                    "type": "http.response.start",
                    "status": status,
                    "headers": self.headers.raw(),
                }
            )
            await self._send(
                {
                    "type": "http.response.body",
                    "body": b"" if self.method == "HEAD" else body,
                }
            )
        finally:
            if self._pool is not None:
                self._pool.put(self._buf)


class _CompressingWriter(ResponseWriter):
    __slots__ = ()

    encoding = ""

    def compressor(self) -> "zlib._Compress":
        raise NotImplementedError

    def encode(self, body: bytes) -> bytes:
        _add_vary(self.headers, "Accept-Encoding")
        if not body or self.method == "HEAD" or not _allows_body(self.status_code):
            self.headers.delete("Content-Encoding")
            return body
        self.headers.set("Content-Encoding", self.encoding)
        c = self.compressor()
        return c.compress(body) + c.flush()


class GzipResponseWriter(_CompressingWriter):
    """Writer producing ``Content-Encoding: gzip`` bodies."""

    __slots__ = ()

    encoding = "gzip"

    def compressor(self) -> "zlib._Compress":
        return zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, 31)


class DeflateResponseWriter(_CompressingWriter):
    """Writer producing ``Content-Encoding: deflate`` (zlib-wrapped) bodies."""

    __slots__ = ()

    encoding = "deflate"

    def compressor(self) -> "zlib._Compress":
        return zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, 15)
