"""HTML template viewer."""

from typing import Any

from warbler.context import Context
from warbler.mime import MimeType
from warbler.templating.store import HtmlTemplate
from warbler.viewers.protocol import template_context

HTML_MIME = MimeType("text", "html")


class HtmlViewer:
    """Renders an ``HtmlTemplate`` from the store.

    The template record is shared with the store, so a hot reload is
    visible on the next request without re-registering the viewer.
    """

    __slots__ = ("template",)

    mime_type = HTML_MIME

    def __init__(self, template: HtmlTemplate) -> None:
        self.template = template

    def __repr__(self) -> str:
        return f"HtmlViewer({self.template.name!r})"

    async def render(self, ctx: Context, data: Any) -> None:
        body = self.template.render(template_context(ctx, data))
        ctx.response.headers.set("Content-Type", "text/html; charset=utf-8")
        ctx.response.write(body)
