"""Plain-text viewer for arbitrary values."""

from typing import Any

from warbler.context import Context
from warbler.mime import MimeType

TEXT_MIME = MimeType("text", "plain")


class StringViewer:
    """Writes ``str(data)`` as ``text/plain``; ``None`` writes nothing."""

    __slots__ = ()

    mime_type = TEXT_MIME

    async def render(self, ctx: Context, data: Any) -> None:
        if data is None:
            body = b""
        elif isinstance(data, bytes):
            body = data
        else:
            body = str(data).encode("utf-8")
        ctx.response.headers.set("Content-Type", "text/plain; charset=utf-8")
        ctx.response.write(body)
