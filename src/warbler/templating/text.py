"""Text templates (sitemaps, feeds, robots.txt, ...).

Text templates are compiled without autoescaping and carry the MIME type
of their file, so a viewer can serve them with the right ``Content-Type``.
They have no dependency graph: a reload touches one file.
"""

from collections.abc import Callable, Mapping
from typing import Any

from kida import DictLoader, Environment, TemplateNotFoundError, TemplateSyntaxError

from warbler.errors import TemplateParseError
from warbler.fs import FileSystem
from warbler.mime import DEFAULT_CHARSET, get_mime_type
from warbler.templating import funcmap


class TextTemplate:
    """A single text template addressed by its full path (``text/sitemap.xml``)."""

    __slots__ = ("charset", "compiled", "funcs", "mime", "name")

    def __init__(self, name: str, *, funcs: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self.name = name
        self.funcs = dict(funcs or {})
        self.compiled: Any = None
        self.mime = "text/plain"
        self.charset = DEFAULT_CHARSET

    def __repr__(self) -> str:
        return f"TextTemplate({self.name!r}, mime={self.mime!r})"

    @property
    def content_type(self) -> str:
        return self.mime + self.charset

    def load(self, fsys: FileSystem) -> None:
        """(Re)compile from *fsys*; on error the previous version is kept."""
        data = fsys.read_bytes(self.name)
        if data:
            mime, charset = get_mime_type(self.name, data)
        else:
            mime, charset = "text/plain", DEFAULT_CHARSET

        try:
            source = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TemplateParseError(self.name, exc) from exc

        env = Environment(loader=DictLoader({self.name: source}), autoescape=False)
        for fname, func in funcmap.seal().items():
            env.add_global(fname, func)
        for fname, func in self.funcs.items():
            env.add_global(fname, func)
        try:
            compiled = env.get_template(self.name)
        except (TemplateSyntaxError, TemplateNotFoundError) as exc:
            raise TemplateParseError(self.name, exc) from exc

        self.compiled = compiled
        self.mime = mime
        self.charset = charset

    def render(self, context: Mapping[str, Any]) -> str:
        if self.compiled is None:
            return ""
        return self.compiled.render(dict(context))
