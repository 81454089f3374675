"""HTML template store with a name-keyed dependency graph.

Templates reference each other by name (``{% extends %}``, ``{% include %}``,
``{% import %}``, ``{% from ... import %}``). The store is the only owner of
``HtmlTemplate`` records; edges in both directions are kept as sets of
names, so a template never holds another one alive.

Publishing a template compiles it in a private kida ``Environment`` whose
loader is a snapshot of the template's source plus the sources of its
transitive dependencies. A compiled template therefore never observes a
half-reloaded dependency; a reload publishes a new snapshot and swaps it in.

Layouts are declared with a marker on the first line of a page::

    <!--layout:main-->
    {% block content %}...{% endblock %}

which is equivalent to ``{% extends "layouts/main" %}``.
"""

import logging
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from kida import DictLoader, Environment, TemplateNotFoundError, TemplateSyntaxError

from warbler.errors import TemplateParseError
from warbler.fs import FileSystem
from warbler.templating import funcmap

logger = logging.getLogger("warbler.templating")

TEMPLATE_EXT = ".html"
LAYOUT_DIR = "layouts/"

_REFERENCE_RE = re.compile(r"""\{%-?\s*(?:extends|include|import|from)\s+["']([^"']+)["']""")
_LAYOUT_PREFIX = "<!--layout:"
_LAYOUT_SUFFIX = "-->"


def template_name(path: str) -> str:
    """``"components/nav.html"`` -> ``"components/nav"``."""
    return path.removesuffix(TEMPLATE_EXT)


def parse_layout(first_line: str) -> str:
    """Return the layout template name declared by *first_line*, or ``""``."""
    compact = first_line.replace(" ", "").replace("\t", "")
    start = compact.find(_LAYOUT_PREFIX)
    if start < 0:
        return ""
    start += len(_LAYOUT_PREFIX)
    end = compact.find(_LAYOUT_SUFFIX, start)
    name = compact[start:end] if end >= 0 else ""
    return LAYOUT_DIR + template_name(name) if name else ""


def read_source(fsys: FileSystem, path: str) -> str:
    """Template source of *path*; undecodable bytes are a ``TemplateParseError``."""
    data = fsys.read_bytes(path)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise TemplateParseError(path, exc) from exc


def scan_dependencies(source: str, self_name: str) -> set[str]:
    """Names of the templates *source* references, excluding itself."""
    names = {template_name(m.group(1)) for m in _REFERENCE_RE.finditer(source)}
    names.discard(self_name)
    return names


@dataclass(slots=True, eq=False)
class HtmlTemplate:
    """One template file and its place in the dependency graph."""

    name: str
    path: str
    source: str = ""
    layout: str = ""
    dependencies: set[str] = field(default_factory=set)
    dependents: set[str] = field(default_factory=set)
    compiled: Any = None

    def render(self, context: Mapping[str, Any]) -> str:
        if self.compiled is None:
            return ""
        return self.compiled.render(dict(context))


class TemplateStore:
    """Arena of ``HtmlTemplate`` records keyed by name.

    Not thread-safe by itself: the app mutates it under its write lock.
    Rendering reads ``HtmlTemplate.compiled``, which is replaced atomically.
    """

    def __init__(
        self,
        *,
        autoescape: bool = True,
        funcs: Mapping[str, Callable[..., Any]] | None = None,
    ) -> None:
        self._templates: dict[str, HtmlTemplate] = {}
        self.autoescape = autoescape
        self.funcs: dict[str, Callable[..., Any]] = dict(funcs or {})

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __iter__(self) -> Iterator[HtmlTemplate]:
        return iter(list(self._templates.values()))

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, name: str) -> HtmlTemplate | None:
        return self._templates.get(name)

    def load(self, fsys: FileSystem, path: str, name: str | None = None) -> HtmlTemplate:
        """Read, parse and publish *path*, then republish templates waiting on it.

        Raises ``TemplateParseError`` if the file does not compile; the store
        is left unchanged in that case. ``OSError`` propagates.
        """
        name = name or template_name(path)
        tpl = self._templates.get(name)
        if tpl is not None:
            # viewers hold the record, so it is updated in place
            tpl.path = path
            self._refresh(fsys, tpl)
        else:
            tpl = HtmlTemplate(name=name, path=path)
            self._parse(tpl, read_source(fsys, path))
            tpl.compiled = self._compile(tpl)
            self._templates[name] = tpl
            self._link(tpl)

        # templates that referenced this name before it existed
        for other in self._templates.values():
            if other is not tpl and name in other.dependencies:
                tpl.dependents.add(other.name)
        self._cascade(fsys, tpl, {name})
        return tpl

    def reload(self, fsys: FileSystem, name: str) -> bool:
        """Re-read template *name* from *fsys* and cascade to its dependents.

        Returns False if *name* is not in the store. On a parse error the
        previously published version keeps serving and the error propagates
        as ``TemplateParseError``.
        """
        tpl = self._templates.get(name)
        if tpl is None:
            return False
        self._refresh(fsys, tpl)
        self._cascade(fsys, tpl, {name})
        return True

    def _refresh(self, fsys: FileSystem, tpl: HtmlTemplate) -> None:
        source = read_source(fsys, tpl.path)
        staged = HtmlTemplate(name=tpl.name, path=tpl.path)
        self._parse(staged, source)
        compiled = self._compile(staged)

        self._unlink(tpl)
        tpl.source = staged.source
        tpl.layout = staged.layout
        tpl.dependencies = staged.dependencies
        tpl.compiled = compiled
        self._link(tpl)

    def _cascade(self, fsys: FileSystem, tpl: HtmlTemplate, seen: set[str]) -> None:
        for dependent_name in sorted(tpl.dependents):
            if dependent_name in seen:
                continue
            seen.add(dependent_name)
            dependent = self._templates.get(dependent_name)
            if dependent is None:
                tpl.dependents.discard(dependent_name)
                continue
            try:
                self._refresh(fsys, dependent)
            except FileNotFoundError:
                logger.info("Dependent template %s is gone, unlinking from %s", dependent.path, tpl.name)
                tpl.dependents.discard(dependent_name)
                continue
            except TemplateParseError as exc:
                logger.error("Template %s failed to recompile: %s", exc.path, exc.cause)
                continue
            self._cascade(fsys, dependent, seen)

    def _parse(self, tpl: HtmlTemplate, source: str) -> None:
        first_line, newline, rest = source.partition("\n")
        layout = parse_layout(first_line)
        if layout:
            source = f'{{% extends "{layout}" %}}{newline}{rest}'
        tpl.source = source
        tpl.layout = layout
        tpl.dependencies = scan_dependencies(source, tpl.name)

    def _link(self, tpl: HtmlTemplate) -> None:
        for dep in tpl.dependencies:
            other = self._templates.get(dep)
            if other is not None:
                other.dependents.add(tpl.name)

    def _unlink(self, tpl: HtmlTemplate) -> None:
        for dep in tpl.dependencies:
            other = self._templates.get(dep)
            if other is not None:
                other.dependents.discard(tpl.name)

    def closure(self, tpl: HtmlTemplate) -> dict[str, str]:
        """Sources of *tpl* and every stored template it reaches, by name."""
        sources = {tpl.name: tpl.source}
        pending = list(tpl.dependencies)
        while pending:
            dep_name = pending.pop()
            if dep_name in sources:
                continue
            dep = self._templates.get(dep_name)
            if dep is None:
                continue
            sources[dep_name] = dep.source
            pending.extend(dep.dependencies)
        return sources

    def _compile(self, tpl: HtmlTemplate) -> Any:
        sources = self.closure(tpl)
        mapping: dict[str, str] = {}
        for name, source in sources.items():
            mapping[name] = source
            mapping[name + TEMPLATE_EXT] = source

        env = Environment(loader=DictLoader(mapping), autoescape=self.autoescape)
        for fname, func in funcmap.seal().items():
            env.add_global(fname, func)
        for fname, func in self.funcs.items():
            env.add_global(fname, func)

        try:
            for name in sources:
                if name != tpl.name:
                    env.get_template(name)
            return env.get_template(tpl.name)
        except (TemplateSyntaxError, TemplateNotFoundError) as exc:
            raise TemplateParseError(tpl.path, exc) from exc
