"""Static file viewer.

Serves one file of a ``FileSystem`` with conditional and range support:

- ``ETag`` (CRC32, computed once) when the filesystem is immutable,
  honouring ``If-None-Match``
- otherwise ``Last-Modified``, honouring ``If-Modified-Since``
- a single ``bytes=`` range answered with 206, or 416 when unsatisfiable

A file that disappeared since registration answers 404.
"""

import email.utils
from typing import Any

from warbler.context import Context
from warbler.errors import NotFound
from warbler.fs import FileSystem
from warbler.http.etag import check_if_none_match, compute_etag, strip_for_not_modified
from warbler.mime import MimeType, content_type_for

ANY_MIME = MimeType("*", "*")


def parse_range(header: str, size: int) -> tuple[int, int] | None:
    """Resolve a single ``bytes=`` range to inclusive ``(start, end)``.

    Returns None when the header is not a single byte range (the full file
    is served then). Raises ``ValueError`` when the range is unsatisfiable.
    """
    unit, _, spec = header.partition("=")
    if unit.strip().lower() != "bytes" or "," in spec:
        return None
    first, sep, last = spec.strip().partition("-")
    first, last = first.strip(), last.strip()
    if not sep or (last and not last.isdigit()) or not (first.isdigit() or (not first and last)):
        return None

    if not first:
        # suffix range: the last N bytes
        length = int(last)
        if length == 0 or size == 0:
            raise ValueError(header)
        return max(size - length, 0), size - 1

    start = int(first)
    end = int(last) if last else size - 1
    if start >= size or end < start:
        raise ValueError(header)
    return start, min(end, size - 1)


def _not_modified_since(header: str | None, mod_time: float) -> bool:
    if not header or mod_time <= 0:
        return False
    try:
        since = email.utils.parsedate_to_datetime(header)
    except (TypeError, ValueError):
        return False
    return int(mod_time) <= since.timestamp()


class FileViewer:
    """Serves ``path`` from ``fsys``."""

    __slots__ = ("etag", "fsys", "path")

    mime_type = ANY_MIME

    def __init__(self, fsys: FileSystem, path: str, *, etag: str | None = None) -> None:
        self.fsys = fsys
        self.path = path
        self.etag = etag
        if etag is None and fsys.immutable:
            self.etag = compute_etag(fsys.read_bytes(path))

    def __repr__(self) -> str:
        return f"FileViewer({self.path!r})"

    async def render(self, ctx: Context, data: Any) -> None:
        request = ctx.request
        response = ctx.response
        try:
            info = self.fsys.stat(self.path)
            content = self.fsys.read_bytes(self.path)
        except FileNotFoundError:
            raise NotFound() from None

        headers = response.headers
        headers.set("Content-Type", content_type_for(self.path, content))
        headers.set("Accept-Ranges", "bytes")

        conditional = request.method in ("GET", "HEAD")
        if self.etag:
            headers.set("ETag", self.etag)
            if conditional and check_if_none_match(request.headers.get("If-None-Match"), self.etag):
                strip_for_not_modified(headers)
                response.write_header(304)
                return
        elif info.mod_time > 0:
            headers.set("Last-Modified", email.utils.formatdate(info.mod_time, usegmt=True))
            if (
                conditional
                and "If-None-Match" not in request.headers
                and _not_modified_since(request.headers.get("If-Modified-Since"), info.mod_time)
            ):
                strip_for_not_modified(headers)
                response.write_header(304)
                return

        range_header = request.headers.get("Range")
        if range_header and request.method in ("GET", "HEAD") and not response.wrote_header:
            size = len(content)
            try:
                byte_range = parse_range(range_header, size)
            except ValueError:
                headers.set("Content-Range", f"bytes */{size}")
                headers.delete("Content-Type")
                response.write_header(416)
                return
            if byte_range is not None:
                start, end = byte_range
                headers.set("Content-Range", f"bytes {start}-{end}/{size}")
                response.write_header(206)
                response.write(content[start : end + 1])
                return

        response.write_header(200)
        response.write(content)
