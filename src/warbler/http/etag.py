"""Entity tags and ``If-None-Match`` evaluation (RFC 7232).

``check_if_none_match`` compares the request's list against the ETag
already set on the response, using weak comparison. ``strip_for_not_modified``
removes the headers a 304 must not carry.
"""

import zlib

from warbler.http.headers import MutableHeaders

_WHITESPACE = " \t"


def compute_etag(data: bytes) -> str:
    """Quoted CRC32 hex digest of *data*: ``"1a2b3c4d"``."""
    return f'"{zlib.crc32(data) & 0xFFFFFFFF:08x}"'


def scan_etag(s: str) -> tuple[str, str]:
    """Read one ETag from the start of *s*.

    Returns ``(etag, remaining)``, or ``("", "")`` when *s* does not start
    with a syntactically valid ``"text"`` or ``W/"text"``.
    """
    s = s.strip(_WHITESPACE)
    start = 2 if s.startswith("W/") else 0
    if len(s) - start < 2 or s[start] != '"':
        return "", ""
    for i in range(start + 1, len(s)):
        c = ord(s[i])
        if s[i] == '"':
            return s[: i + 1], s[i + 1 :]
        if not (c == 0x21 or 0x23 <= c <= 0x7E or c >= 0x80):
            return "", ""
    return "", ""


def etag_weak_match(a: str, b: str) -> bool:
    """Weak comparison: equal once any ``W/`` prefix is removed."""
    return a.removeprefix("W/") == b.removeprefix("W/")


def check_if_none_match(if_none_match: str | None, etag: str | None) -> bool:
    """True when the client's cached copy (``If-None-Match``) is still current."""
    if not if_none_match:
        return False
    buf = if_none_match
    while True:
        buf = buf.strip(_WHITESPACE)
        if not buf:
            return False
        if buf[0] == ",":
            buf = buf[1:]
            continue
        if buf[0] == "*":
            return True
        tag, buf = scan_etag(buf)
        if not tag:
            return False
        if etag and etag_weak_match(tag, etag):
            return True


def strip_for_not_modified(headers: MutableHeaders) -> None:
    """Remove representation headers a 304 must not carry.

    ``Last-Modified`` is kept only when there is no ``ETag`` to guide caches.
    """
    headers.delete("Content-Type")
    headers.delete("Content-Length")
    headers.delete("Content-Encoding")
    if headers.get("ETag"):
        headers.delete("Last-Modified")
