"""Warbler: an ASGI framework whose routes and views come from a file tree.

Lay out a directory and every file finds its place::

    public/css/site.css        GET /css/site.css
    layouts/main.html          page skeleton
    components/nav.html        fragment included by name
    pages/users/index.html     GET /users/
    views/card.html            ctx.view(data, "views/card")
    text/sitemap.xml           ctx.view(data, "text/sitemap.xml")

Basic usage::

    from warbler import App, AppConfig, DirFS

    app = App(AppConfig(watch=True), fsys=DirFS("site"))

    async def users(ctx):
        return [{"name": "ada"}]

    app.get("/users", users)   # JSON, or pages/users.html for browsers

Serve ``app`` with any ASGI server.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Context",
    "DirFS",
    "EmbedFS",
    "HTTPError",
    "HandleCancelled",
    "MapFS",
    "Middleware",
    "MethodNotAllowed",
    "Next",
    "NotFound",
    "ViewNotFound",
    "WarblerError",
    "get_context",
    "with_metadata",
    "with_navigation",
    "with_viewer",
]

_ERRORS = (
    "ConfigurationError",
    "HTTPError",
    "HandleCancelled",
    "MethodNotAllowed",
    "NotFound",
    "ViewNotFound",
    "WarblerError",
)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import warbler`` fast while providing a clean top-level API.
    """
    if name == "App":
        from warbler.app import App

        return App

    if name == "AppConfig":
        from warbler.config import AppConfig

        return AppConfig

    if name in ("Context", "get_context"):
        import warbler.context

        return getattr(warbler.context, name)

    if name in ("DirFS", "EmbedFS", "MapFS"):
        import warbler.fs

        return getattr(warbler.fs, name)

    if name in ("Middleware", "Next"):
        import warbler.middleware.protocol

        return getattr(warbler.middleware.protocol, name)

    if name in ("with_metadata", "with_navigation", "with_viewer"):
        import warbler.routing.route

        return getattr(warbler.routing.route, name)

    if name in _ERRORS:
        import warbler.errors

        return getattr(warbler.errors, name)

    msg = f"module 'warbler' has no attribute {name!r}"
    raise AttributeError(msg)
