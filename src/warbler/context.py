"""Per-request context.

A ``Context`` bundles the request, its response writer and the matched
route for the lifetime of one request, and is what handlers, middleware
and viewers receive. ``get_context()`` returns the context of the running
request from anywhere in the call stack.

Thread safety:
    ``context_var`` is task-local under asyncio. A ``Context`` itself is
    owned by its request and never shared.
"""

from __future__ import annotations

from contextvars import ContextVar
from urllib.parse import quote
from typing import TYPE_CHECKING, Any

from warbler.errors import ViewNotFound
from warbler.mime import MimeType, parse_accept, parse_accept_language

if TYPE_CHECKING:
    from warbler.app import App
    from warbler.http.request import Request
    from warbler.http.writer import ResponseWriter
    from warbler.routing.route import Route
    from warbler.viewers.protocol import Viewer

# reserved characters, and "%" so existing escapes survive
URL_SAFE = ":/?#[]@!$&'()*+,;=%"

context_var: ContextVar[Context] = ContextVar("warbler_context")
"""The current request context. Set by the ASGI handler before dispatch."""


def get_context() -> Context:
    """Return the current request context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()


class Context:
    """State of one in-flight request.

    ``values`` carries data between middleware and handlers; ``temp_data``
    is passed to templates alongside the handler's data.
    """

    __slots__ = ("app", "rendered", "request", "response", "route", "temp_data", "values")

    def __init__(self, app: App, request: Request, response: ResponseWriter, route: Route | None = None) -> None:
        self.app = app
        self.request = request
        self.response = response
        self.route = route
        self.values: dict[str, Any] = {}
        self.temp_data: dict[str, Any] = {}
        self.rendered = False

    def __repr__(self) -> str:
        return f"Context({self.request.method} {self.request.path!r})"

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.values[name] = value

    @property
    def written_status(self) -> bool:
        """True once a status code has been committed."""
        return self.response.wrote_header

    def write_status(self, code: int) -> None:
        """Commit *code*; only the first call has an effect."""
        if not self.response.wrote_header:
            self.response.write_header(code)

    def write_header(self, key: str, value: str) -> None:
        """Set response header *key*; an empty *value* deletes it."""
        if not value:
            self.response.headers.delete(key)
            return
        self.response.headers.set(key, value)

    def accept(self) -> list[MimeType]:
        """Media types from ``Accept`` in client order, parameters dropped."""
        return parse_accept(self.request.headers.get("accept"))

    def accept_language(self) -> list[str]:
        """Language tags from ``Accept-Language`` in client order."""
        return parse_accept_language(self.request.headers.get("accept-language"))

    def request_referer(self) -> str:
        """Page the request came from; the interceptor may know better than ``Referer``."""
        interceptor = self.app.interceptor
        if interceptor is not None:
            referer = interceptor.request_referer(self)
            if referer:
                return referer
        return self.request.headers.get("referer") or ""

    def redirect(self, url: str, status: int = 302) -> None:
        """Send the client to *url* (``Location`` + *status*) unless the interceptor handles it.

        Characters a header cannot carry are percent-encoded; existing
        escapes and URL delimiters are kept.
        """
        url = quote(url, safe=URL_SAFE)
        interceptor = self.app.interceptor
        if interceptor is not None and interceptor.redirect(self, url, status):
            return
        self.write_header("Location", url)
        self.write_status(status)

    async def view(self, data: Any = None, name: str | None = None) -> None:
        """Render *data* with a negotiated viewer.

        With *name*, the app's viewer registry is consulted and the viewer
        is used if its MIME type is acceptable; otherwise the route's viewers
        are matched against ``Accept``. Falls back to the route's default
        viewer. Raises ``ViewNotFound`` when nothing can render.
        """
        viewer = self.select_viewer(name)
        await viewer.render(self, data)
        self.rendered = True

    def select_viewer(self, name: str | None = None) -> Viewer:
        accepts = self.accept()

        if name:
            viewer = self.app.get_viewer(name)
            if viewer is not None and _acceptable(viewer, accepts or [MimeType("*", "*")]):
                return viewer
        elif accepts and self.route is not None:
            for accept in accepts:
                for viewer in self.route.viewers.values():
                    if viewer.mime_type.match(accept):
                        return viewer

        default = self.route.options.viewer if self.route is not None else None
        if default is None:
            raise ViewNotFound()
        return default


def _acceptable(viewer: Viewer, accepts: list[MimeType]) -> bool:
    return any(viewer.mime_type.match(accept) for accept in accepts)
