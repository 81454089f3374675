"""Text templates under ``text/``.

Each file becomes a ``TextViewer`` in the viewer registry, addressable by
its full path (``text/sitemap.xml``). Text templates have no routes of
their own; a handler selects one with ``ctx.view(data, "text/sitemap.xml")``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from warbler.errors import TemplateParseError
from warbler.fsnotify import Event, Op
from warbler.templating.text import TextTemplate
from warbler.viewers.text import TextViewer

if TYPE_CHECKING:
    from warbler.app import App
    from warbler.fs import FileSystem

logger = logging.getLogger("warbler.engines")

TEXT_DIR = "text/"


class TextViewEngine:
    """Loads every file under ``text/`` as a text template."""

    __slots__ = ()

    def load(self, fsys: FileSystem, app: App) -> None:
        for info in fsys.walk(TEXT_DIR.rstrip("/")):
            self.handle(fsys, app, info.name)

    def file_changed(self, fsys: FileSystem, app: App, event: Event) -> None:
        if not event.name.startswith(TEXT_DIR) or event.has(Op.REMOVE):
            return

        viewer = app.get_viewer(event.name)
        if event.has(Op.WRITE) and isinstance(viewer, TextViewer):
            try:
                viewer.template.load(fsys)
            except TemplateParseError as exc:
                logger.error("Text template %s failed to compile: %s", exc.path, exc.cause)
            return

        self.handle(fsys, app, event.name)

    def handle(self, fsys: FileSystem, app: App, path: str) -> None:
        template = TextTemplate(path, funcs=app.funcs)
        try:
            template.load(fsys)
        except TemplateParseError as exc:
            logger.error("Text template %s failed to compile: %s", exc.path, exc.cause)
            return
        app.add_viewer(path, TextViewer(template))
