"""Media types, Accept parsing and content-type detection.

``MimeType`` is the unit of content negotiation: viewers declare one,
requests list several in ``Accept``, and ``match`` decides compatibility
with ``*`` wildcards honoured on either side.
"""

import mimetypes
import posixpath
from dataclasses import dataclass

DEFAULT_CHARSET = "; charset=utf-8"

_SNIFF_LEN = 512

# (prefix, mime) checked in order against the first bytes of a file
_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"%PDF-", "application/pdf"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
)

_HTML_MARKERS: tuple[bytes, ...] = (
    b"<!doctype html",
    b"<html",
    b"<head",
    b"<body",
    b"<script",
    b"<div",
    b"<p",
)


@dataclass(frozen=True, slots=True)
class MimeType:
    """A ``type/subtype`` pair; ``*`` in either slot is a wildcard."""

    type: str
    subtype: str

    @classmethod
    def parse(cls, value: str) -> "MimeType":
        """Parse ``"text/html; charset=utf-8"`` into ``MimeType("text", "html")``.

        Parameters are dropped; a bare ``*`` means ``*/*``.
        """
        media = value.split(";", 1)[0].strip().lower()
        if not media or media == "*":
            return cls("*", "*")
        if "/" not in media:
            return cls(media, "*")
        type_, subtype = media.split("/", 1)
        return cls(type_.strip() or "*", subtype.strip() or "*")

    def match(self, other: "MimeType") -> bool:
        """Symmetric wildcard comparison."""
        return _part_match(self.type, other.type) and _part_match(self.subtype, other.subtype)

    def __str__(self) -> str:
        return f"{self.type}/{self.subtype}"


def _part_match(a: str, b: str) -> bool:
    return a == "*" or b == "*" or a == b


def parse_accept(header: str | None) -> list[MimeType]:
    """Split an ``Accept`` header into media types, preserving client order.

    Quality parameters are ignored; order in the header is the preference.
    """
    if not header:
        return []
    return [MimeType.parse(part) for part in header.split(",") if part.strip()]


def parse_accept_language(header: str | None) -> list[str]:
    """Split an ``Accept-Language`` header into language tags, parameters dropped."""
    if not header:
        return []
    return [part.split(";", 1)[0].strip() for part in header.split(",") if part.strip()]


def get_mime_type(name: str, data: bytes) -> tuple[str, str]:
    """Return ``(mime, charset_suffix)`` for a file.

    The extension wins; otherwise the first bytes of *data* are sniffed.
    When the detected type carries no charset, ``"; charset=utf-8"`` is used.
    """
    mime, _ = mimetypes.guess_type(posixpath.basename(name), strict=False)
    if mime is None:
        mime = detect_content_type(data)
    media, sep, params = mime.partition(";")
    if not sep:
        return media, DEFAULT_CHARSET
    return media, sep + params


def detect_content_type(data: bytes) -> str:
    """Best-effort content sniffing over the first 512 bytes.

    Empty input is ``text/plain``.
    """
    head = data[:_SNIFF_LEN]
    if not head:
        return "text/plain; charset=utf-8"

    for prefix, mime in _SIGNATURES:
        if head.startswith(prefix):
            return mime

    stripped = head.lstrip().lower()
    if stripped.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    if any(stripped.startswith(marker) for marker in _HTML_MARKERS):
        return "text/html; charset=utf-8"

    if _is_text(head):
        return "text/plain; charset=utf-8"
    return "application/octet-stream"


def _is_text(head: bytes) -> bool:
    if b"\x00" in head:
        return False
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as exc:
        # a multibyte sequence cut at the sniff boundary is still text
        return exc.start >= len(head) - 3
    return True


_TEXTUAL_APPLICATION: frozenset[str] = frozenset(
    {"application/javascript", "application/json", "application/xml", "application/xhtml+xml", "image/svg+xml"}
)


def content_type_for(name: str, data: bytes) -> str:
    """``Content-Type`` header value for serving *data* as the file *name*.

    Only textual types get a charset.
    """
    mime, charset = get_mime_type(name, data)
    if mime.startswith("text/") or mime in _TEXTUAL_APPLICATION:
        return mime + charset
    return mime
