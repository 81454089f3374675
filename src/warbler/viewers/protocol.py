"""Viewer protocol.

A viewer renders handler data for one MIME type into the response writer
of a ``Context``. Viewers set ``Content-Type`` and body; they never
overwrite a status the handler already committed.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from warbler.mime import MimeType

if TYPE_CHECKING:
    from warbler.context import Context


@runtime_checkable
class Viewer(Protocol):
    """Renders data for one media type."""

    @property
    def mime_type(self) -> MimeType: ...

    async def render(self, ctx: Context, data: Any) -> None: ...


def template_context(ctx: Context, data: Any) -> dict[str, Any]:
    """Variables exposed to HTML and text templates.

    ``data`` is always available; when it is a mapping its keys are also
    top-level variables.
    """
    context: dict[str, Any] = {
        "data": data,
        "request": ctx.request,
        "route": ctx.route,
        "values": ctx.values,
        "temp_data": ctx.temp_data,
    }
    if isinstance(data, Mapping):
        context.update(data)
    return context
