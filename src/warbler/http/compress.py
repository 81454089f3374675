"""Response compressors.

A compressor advertises the ``Accept-Encoding`` token it handles and
creates the matching writer. The first registered compressor whose token
(or ``*``) appears in the request's ``Accept-Encoding`` is used.
"""

from collections.abc import Sequence
from typing import Protocol

from warbler._internal.asgi import Send
from warbler._internal.bufpool import BufferPool
from warbler.http.writer import DeflateResponseWriter, GzipResponseWriter, ResponseWriter


class Compressor(Protocol):
    """Creates compressing writers for one content coding."""

    @property
    def accept_encoding(self) -> str: ...

    def new(self, send: Send, *, method: str, pool: BufferPool | None) -> ResponseWriter: ...


class GzipCompressor:
    """``Content-Encoding: gzip``."""

    accept_encoding = "gzip"

    def new(self, send: Send, *, method: str, pool: BufferPool | None) -> ResponseWriter:
        return GzipResponseWriter(send, method=method, pool=pool)


class DeflateCompressor:
    """``Content-Encoding: deflate``."""

    accept_encoding = "deflate"

    def new(self, send: Send, *, method: str, pool: BufferPool | None) -> ResponseWriter:
        return DeflateResponseWriter(send, method=method, pool=pool)


def parse_accept_encoding(header: str | None) -> list[str]:
    """Content-coding tokens in client order; ``q=0`` entries are refused codings."""
    if not header:
        return []
    tokens: list[str] = []
    for part in header.split(","):
        token, _, params = part.partition(";")
        token = token.strip().lower()
        if not token:
            continue
        q = params.strip().lower()
        if q.startswith("q=") and q[2:].strip() in {"0", "0.0", "0.00", "0.000"}:
            continue
        tokens.append(token)
    return tokens


def select_compressor(header: str | None, compressors: Sequence[Compressor]) -> Compressor | None:
    """Pick the first compressor the client accepts, or ``None``."""
    if not compressors:
        return None
    tokens = parse_accept_encoding(header)
    if not tokens:
        return None
    for compressor in compressors:
        if "*" in tokens or compressor.accept_encoding in tokens:
            return compressor
    return None


def new_writer(
    send: Send,
    *,
    method: str,
    accept_encoding: str | None,
    compressors: Sequence[Compressor],
    pool: BufferPool | None = None,
) -> ResponseWriter:
    """Writer for one request: compressing when negotiated, plain otherwise."""
    compressor = select_compressor(accept_encoding, compressors)
    if compressor is None:
        return ResponseWriter(send, method=method, pool=pool)
    return compressor.new(send, method=method, pool=pool)
