"""Route groups: a path prefix with middleware of its own.

Routes registered through a group run the app middleware first, then the
group's::

    admin = app.group("/admin")
    admin.use(require_staff)
    admin.get("/users", list_users)      # GET /admin/users
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from warbler._internal.types import Handler
from warbler.routing.pattern import split_pattern

if TYPE_CHECKING:
    from warbler.app import App
    from warbler.middleware.protocol import Middleware
    from warbler.routing.route import RouteOption


class Group:
    __slots__ = ("app", "middleware", "prefix")

    def __init__(self, app: App, prefix: str) -> None:
        self.app = app
        self.prefix = prefix.rstrip("/")
        self.middleware: list[Middleware] = []

    def __repr__(self) -> str:
        return f"Group({self.prefix!r}, middleware={len(self.middleware)})"

    def use(self, *middleware: Middleware) -> None:
        """Add middleware to this group; it runs inside the app's middleware."""
        self.middleware.extend(middleware)
        self.app.recompose(self)

    def get(self, pattern: str, handler: Handler, *options: RouteOption) -> None:
        self.handle_func("GET " + pattern, handler, *options)

    def post(self, pattern: str, handler: Handler, *options: RouteOption) -> None:
        self.handle_func("POST " + pattern, handler, *options)

    def put(self, pattern: str, handler: Handler, *options: RouteOption) -> None:
        self.handle_func("PUT " + pattern, handler, *options)

    def delete(self, pattern: str, handler: Handler, *options: RouteOption) -> None:
        self.handle_func("DELETE " + pattern, handler, *options)

    def handle_func(self, pattern: str, handler: Handler, *options: RouteOption) -> None:
        """Register *handler* for *pattern* with the group prefix inserted before the path."""
        method, host, path = split_pattern(pattern)
        prefixed = f"{host}{self.prefix}{path}"
        if method:
            prefixed = f"{method} {prefixed}"
        self.app.handle_func(prefixed, handler, *options, group=self)
