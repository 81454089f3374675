"""HTML templates: components, layouts, pages and views.

Loading runs in four phases so that every template finds the ones it
builds on already compiled::

    components/   reusable fragments, included or imported by name
    layouts/      page skeletons, selected by ``<!--layout:NAME-->``
    pages/        routable: ``pages/users/index.html`` -> ``GET /users/{$}``
    views/        named, non-routable: ``ctx.view(data, "views/card")``

Pages are also available by name (``pages/users/index``) in the viewer
registry.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from warbler.errors import TemplateParseError
from warbler.fsnotify import Event, Op
from warbler.routing.pattern import split_file
from warbler.templating.store import TEMPLATE_EXT, HtmlTemplate, template_name
from warbler.viewers.html import HtmlViewer

if TYPE_CHECKING:
    from warbler.app import App
    from warbler.fs import FileSystem

logger = logging.getLogger("warbler.engines")

COMPONENTS_DIR = "components/"
LAYOUTS_DIR = "layouts/"
PAGES_DIR = "pages/"
VIEWS_DIR = "views/"

_INDEX = "index" + TEMPLATE_EXT


def page_pattern(path: str) -> str:
    """Route pattern of a page file: ``pages/about.html`` -> ``GET /about``."""
    rel = path.removeprefix(PAGES_DIR)
    if rel != _INDEX and not rel.endswith("/" + _INDEX):
        rel = rel.removesuffix(TEMPLATE_EXT)
    _, _, pattern = split_file(rel)
    return pattern


class HtmlViewEngine:
    """Loads HTML templates into the app's template store."""

    __slots__ = ()

    def load(self, fsys: FileSystem, app: App) -> None:
        for directory in (COMPONENTS_DIR, LAYOUTS_DIR):
            for path in _html_files(fsys, directory):
                self.load_template(fsys, app, path)
        for path in _html_files(fsys, PAGES_DIR):
            self.load_page(fsys, app, path)
        for path in _html_files(fsys, VIEWS_DIR):
            self.load_view(fsys, app, path)

    def file_changed(self, fsys: FileSystem, app: App, event: Event) -> None:
        # Removed templates keep serving their last compiled version.
        if event.has(Op.REMOVE) or not event.name.lower().endswith(TEMPLATE_EXT):
            return

        name = template_name(event.name)
        if event.has(Op.WRITE) and name in app.templates:
            try:
                app.templates.reload(fsys, name)
            except TemplateParseError as exc:
                logger.error("Template %s failed to recompile, keeping previous version: %s", exc.path, exc.cause)
            return

        if event.name.startswith((COMPONENTS_DIR, LAYOUTS_DIR)):
            self.load_template(fsys, app, event.name)
        elif event.name.startswith(PAGES_DIR):
            self.load_page(fsys, app, event.name)
        elif event.name.startswith(VIEWS_DIR):
            self.load_view(fsys, app, event.name)

    def load_template(self, fsys: FileSystem, app: App, path: str) -> HtmlTemplate | None:
        try:
            return app.templates.load(fsys, path)
        except TemplateParseError as exc:
            logger.error("Template %s failed to compile, skipping: %s", exc.path, exc.cause)
            return None

    def load_page(self, fsys: FileSystem, app: App, path: str) -> None:
        template = self.load_template(fsys, app, path)
        if template is None:
            return
        app.handle_page(page_pattern(path), template.name, HtmlViewer(template))

    def load_view(self, fsys: FileSystem, app: App, path: str) -> None:
        template = self.load_template(fsys, app, path)
        if template is None:
            return
        app.add_viewer(template.name, HtmlViewer(template))


def _html_files(fsys: FileSystem, directory: str) -> list[str]:
    return [info.name for info in fsys.walk(directory.rstrip("/")) if info.name.lower().endswith(TEMPLATE_EXT)]
