"""Text template viewer."""

from typing import Any

from warbler.context import Context
from warbler.mime import MimeType
from warbler.templating.text import TextTemplate
from warbler.viewers.protocol import template_context


class TextViewer:
    """Renders a ``TextTemplate`` with the MIME type of its file."""

    __slots__ = ("template",)

    def __init__(self, template: TextTemplate) -> None:
        self.template = template

    def __repr__(self) -> str:
        return f"TextViewer({self.template.name!r})"

    @property
    def mime_type(self) -> MimeType:
        return MimeType.parse(self.template.mime)

    async def render(self, ctx: Context, data: Any) -> None:
        body = self.template.render(template_context(ctx, data))
        ctx.response.headers.set("Content-Type", self.template.content_type)
        ctx.response.write(body)
