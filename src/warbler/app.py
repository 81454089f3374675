"""Warbler application class.

Routes come from two places: handlers registered in code and the view
engines, which turn a read-only file tree into routes and named viewers.
With ``AppConfig(watch=True)`` the tree is polled and changes are applied
to the live app without a restart.

Thread safety:
    The route table, the viewer registry and the template store are
    guarded by one reader/writer lock. Registration and file-change
    application take the write side; request dispatch takes the read
    side only to resolve the route and viewers. Nothing awaits while
    holding it.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import anyio

from warbler._internal.asgi import Receive, Scope, Send
from warbler._internal.bufpool import BufferPool
from warbler._internal.rwlock import RWLock
from warbler._internal.types import Handler
from warbler.config import AppConfig
from warbler.context import Context
from warbler.engines import ViewEngine, default_engines
from warbler.engines.static import asset_url as default_asset_url
from warbler.fs import FileSystem
from warbler.fsnotify import Event, Watcher
from warbler.http.compress import Compressor
from warbler.interceptor import Interceptor
from warbler.middleware.protocol import Middleware, compose
from warbler.routing.group import Group
from warbler.routing.pattern import split_file, split_pattern
from warbler.routing.route import Route, RouteOption, RouteOptions
from warbler.routing.router import Router
from warbler.server.handler import handle_request
from warbler.templating.store import TemplateStore
from warbler.viewers.json import JsonViewer
from warbler.viewers.protocol import Viewer


def route_key(method: str, host: str, path: str) -> str:
    """Normalized pattern string identifying a route."""
    return f"{method} {host}{path}" if method else f"{host}{path}"


def _render_with(viewer: Viewer) -> Handler:
    async def render(ctx: Context) -> None:
        await viewer.render(ctx, None)
        ctx.rendered = True

    return render


class App:
    """The warbler application.

    Usage::

        app = App(fsys=DirFS("site"), config=AppConfig(watch=True))

        async def users(ctx):
            return await load_users()

        app.get("/users", users)

    Templates link to static files with ``{{ asset("css/site.css") }}``;
    pass ``asset_url`` to resolve names differently, for example to add a
    version query or a CDN host.

    ``app`` is an ASGI 3.0 callable; serve it with any ASGI server.
    """

    __slots__ = (
        "_middleware",
        "_routes",
        "_viewers",
        "asset_url",
        "buffer_pool",
        "compressors",
        "config",
        "fsys",
        "funcs",
        "interceptor",
        "lock",
        "logger",
        "router",
        "templates",
        "view_engines",
        "viewer",
        "watcher",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        logger: logging.Logger | None = None,
        router: Router | None = None,
        fsys: FileSystem | None = None,
        view_engines: Sequence[ViewEngine] | None = None,
        viewer: Viewer | None = None,
        compressors: Sequence[Compressor] = (),
        interceptor: Interceptor | None = None,
        funcs: Mapping[str, Callable[..., Any]] | None = None,
        asset_url: Callable[[str], str] | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.logger = logger or logging.getLogger("warbler")
        self.router = router or Router()
        self.fsys = fsys
        self.view_engines: list[ViewEngine] = list(view_engines) if view_engines is not None else default_engines()
        self.viewer: Viewer = viewer or JsonViewer()
        self.compressors: tuple[Compressor, ...] = tuple(compressors)
        self.interceptor = interceptor
        self.asset_url: Callable[[str], str] = asset_url or default_asset_url
        self.funcs: dict[str, Callable[..., Any]] = {**(funcs or {}), "asset": self.asset_url}
        self.templates = TemplateStore(funcs=self.funcs)
        self.lock = RWLock()
        self.buffer_pool = BufferPool(self.config.buffer_pool_size)
        self.watcher: Watcher | None = None

        self._routes: dict[str, Route] = {}
        self._viewers: dict[str, Viewer] = {}
        self._middleware: list[Middleware] = []

        if fsys is not None:
            with self.lock.write():
                for engine in self.view_engines:
                    engine.load(fsys, self)

            if self.config.watch:
                self.watcher = Watcher(fsys, check_interval=self.config.check_interval)
                self.watcher.add(".")

    # -- Registration --

    @property
    def routes(self) -> list[Route]:
        with self.lock.read():
            return list(self._routes.values())

    def use(self, *middleware: Middleware) -> None:
        """Add middleware around every route, including those already registered.

        The first middleware registered runs outermost.
        """
        with self.lock.write():
            self._middleware.extend(middleware)
            for route in self._routes.values():
                route.chain = self._compose(route)

    def recompose(self, group: Group) -> None:
        """Rebuild the chains of the routes registered through *group*."""
        with self.lock.write():
            for route in self._routes.values():
                if route.group is group:
                    route.chain = self._compose(route)

    def group(self, prefix: str) -> Group:
        """Routes under *prefix*, sharing middleware added with ``Group.use``."""
        return Group(self, prefix)

    def get(self, pattern: str, handler: Handler, *options: RouteOption) -> None:
        self.handle_func("GET " + pattern, handler, *options)

    def post(self, pattern: str, handler: Handler, *options: RouteOption) -> None:
        self.handle_func("POST " + pattern, handler, *options)

    def put(self, pattern: str, handler: Handler, *options: RouteOption) -> None:
        self.handle_func("PUT " + pattern, handler, *options)

    def delete(self, pattern: str, handler: Handler, *options: RouteOption) -> None:
        self.handle_func("DELETE " + pattern, handler, *options)

    def route(self, pattern: str, *options: RouteOption) -> Callable[[Handler], Handler]:
        """Decorator form of ``handle_func``::

            @app.route("GET /users/{id:int}")
            async def user(ctx):
                ...
        """

        def decorator(func: Handler) -> Handler:
            self.handle_func(pattern, func, *options)
            return func

        return decorator

    def handle_func(self, pattern: str, handler: Handler, *options: RouteOption, group: Group | None = None) -> None:
        """Register *handler* for ``"[METHOD ][host]/path"``.

        Re-registering a pattern replaces its handler and options and keeps
        the viewers it already has, such as the page a view engine attached.
        Without ``with_viewer`` options the app's default viewer is used.

        Raises ``ConfigurationError`` for a malformed pattern.
        """
        method, host, path = split_pattern(pattern)
        route_options = RouteOptions()
        for option in options:
            option(route_options)
        if not route_options.viewers:
            route_options.viewers.append(self.viewer)

        key = route_key(method, host, path)
        with self.lock.write():
            route = self._routes.get(key)
            if route is None:
                route = Route(pattern=key, method=method, host=host, path=path, handler=handler)
                self._add_route(route)
            route.handler = handler
            route.options = route_options
            route.group = group
            for viewer in route_options.viewers:
                route.add_viewer(viewer)
            route.chain = self._compose(route)

    def handle_page(self, pattern: str, view_name: str, viewer: Viewer) -> None:
        """Serve *viewer* at *pattern* and register it as *view_name*.

        When *pattern* already has a route (a handler for the same path),
        the viewer is added to it for content negotiation instead.
        """
        method, host, path = split_pattern(pattern)
        key = route_key(method, host, path)
        with self.lock.write():
            self._viewers[view_name] = viewer
            route = self._routes.get(key)
            if route is not None:
                route.add_viewer(viewer)
                return
            self._add_viewer_route(key, method, host, path, viewer)

    def handle_file(self, name: str, viewer: Viewer) -> None:
        """Serve *viewer* at the route derived from file *name*; existing routes win."""
        _, _, pattern = split_file(name)
        method, host, path = split_pattern(pattern)
        key = route_key(method, host, path)
        with self.lock.write():
            if key in self._routes:
                return
            self._viewers[name] = viewer
            self._add_viewer_route(key, method, host, path, viewer)

    def add_viewer(self, name: str, viewer: Viewer) -> None:
        """Make *viewer* selectable as ``ctx.view(data, name)``."""
        with self.lock.write():
            self._viewers[name] = viewer

    def get_viewer(self, name: str) -> Viewer | None:
        with self.lock.read():
            return self._viewers.get(name)

    def _add_viewer_route(self, key: str, method: str, host: str, path: str, viewer: Viewer) -> None:
        route = Route(
            pattern=key,
            method=method,
            host=host,
            path=path,
            handler=_render_with(viewer),
            options=RouteOptions(viewers=[viewer]),
        )
        route.add_viewer(viewer)
        route.chain = self._compose(route)
        self._add_route(route)

    def _add_route(self, route: Route) -> None:
        self._routes[route.pattern] = route
        self.router.add(route)

    def _compose(self, route: Route) -> Handler:
        middleware = list(self._middleware)
        if route.group is not None:
            middleware.extend(route.group.middleware)
        return compose(route.handler, middleware)

    # -- Hot reload --

    def apply_change(self, event: Event) -> None:
        """Feed one file change to every view engine, in order."""
        if self.fsys is None:
            return
        with self.lock.write():
            for engine in self.view_engines:
                try:
                    engine.file_changed(self.fsys, self, event)
                except Exception:
                    self.logger.exception("View engine %s failed on %s", type(engine).__name__, event)

    async def watch(self) -> None:
        """Run the watcher and apply its events until it stops.

        The watcher closes both streams when it exits; the end of the
        event stream ends this task.
        """
        watcher = self.watcher
        if watcher is None:
            return

        async def log_errors() -> None:
            async with watcher.errors:
                async for exc in watcher.errors:
                    self.logger.error("Watcher failed to scan: %s", exc)

        async with anyio.create_task_group() as tg:
            tg.start_soon(watcher.run)
            tg.start_soon(log_errors)
            async with watcher.events:
                async for event in watcher.events:
                    self.apply_change(event)
            tg.cancel_scope.cancel()

    def stop(self) -> None:
        """Stop the watcher; ``watch()`` returns once it has wound down."""
        if self.watcher is not None:
            self.watcher.stop()

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles the lifespan scope directly and delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            return

        await handle_request(self, scope, receive, send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Hot reload lives for the duration of the lifespan: it starts on
        ``lifespan.startup`` and is stopped on ``lifespan.shutdown``.
        """
        async with anyio.create_task_group() as tg:
            while True:
                message = await receive()
                msg_type = message["type"]

                if msg_type == "lifespan.startup":
                    if self.watcher is not None:
                        tg.start_soon(self.watch)
                    await send({"type": "lifespan.startup.complete"})

                elif msg_type == "lifespan.shutdown":
                    self.stop()
                    await send({"type": "lifespan.shutdown.complete"})
                    return
