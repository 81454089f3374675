"""Static files under ``public/``.

Every file becomes a ``GET`` route: ``public/css/site.css`` is served at
``/css/site.css``, ``public/docs/index.html`` at ``/docs/`` and
``public/@example.com/robots.txt`` at ``/robots.txt`` for host
``example.com`` only.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from warbler.fs import clean
from warbler.fsnotify import Event, Op
from warbler.routing.pattern import split_file
from warbler.viewers.file import FileViewer

if TYPE_CHECKING:
    from warbler.app import App
    from warbler.fs import FileSystem

logger = logging.getLogger("warbler.engines")

PUBLIC_DIR = "public/"


def asset_url(name: str) -> str:
    """URL at which the ``public/`` file *name* is served.

    The default ``asset()`` resolver of templates: ``asset("css/site.css")``
    renders ``/css/site.css``. A ``public/`` prefix is accepted and a
    ``@host/`` prefix is dropped, since the route is served on that host.
    """
    name = clean(name).removeprefix(PUBLIC_DIR).lower()
    _, path, _ = split_file("" if name == "." else name)
    return path


class StaticViewEngine:
    """Registers a ``FileViewer`` route for each file under ``public/``."""

    __slots__ = ()

    def load(self, fsys: FileSystem, app: App) -> None:
        for info in fsys.walk(PUBLIC_DIR.rstrip("/")):
            self.handle(fsys, app, info.name)

    def file_changed(self, fsys: FileSystem, app: App, event: Event) -> None:
        # Write and Remove need no route changes: the viewer reads on demand.
        if event.has(Op.CREATE) and event.name.startswith(PUBLIC_DIR):
            self.handle(fsys, app, event.name)

    def handle(self, fsys: FileSystem, app: App, path: str) -> None:
        name = path.removeprefix(PUBLIC_DIR).lower()
        try:
            viewer = FileViewer(fsys, path)
        except FileNotFoundError:
            logger.warning("Static file %s vanished before registration", path)
            return
        app.handle_file(name, viewer)
