"""Route records and per-route options.

A ``Route`` is keyed by its normalized pattern string. Re-registering the
same pattern mutates the existing record in place: handler and options are
replaced, viewers accumulate.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from warbler._internal.types import Handler

if TYPE_CHECKING:
    from warbler.routing.group import Group
    from warbler.viewers.protocol import Viewer

NAVIGATION_NAME = "name"
NAVIGATION_ICON = "icon"
NAVIGATION_ACCESS = "access"


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:    ``/users``        (is_param=False)
    Param:     ``/{id}``         (is_param=True, param_name="id")
    Typed:     ``/{id:int}``     (is_param=True, param_type="int")
    Rest:      ``/{rest...}``    (is_param=True, param_type="path")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(slots=True)
class RouteOptions:
    """Metadata and viewers attached to a route.

    The first viewer is the route's default: it answers requests without
    an ``Accept`` header and named views that cannot be satisfied.
    """

    metadata: dict[str, Any] = field(default_factory=dict)
    viewers: list[Viewer] = field(default_factory=list)

    @property
    def viewer(self) -> Viewer | None:
        return self.viewers[0] if self.viewers else None

    def get(self, name: str) -> Any:
        return self.metadata.get(name)

    def string(self, name: str) -> str:
        value = self.metadata.get(name)
        return value if isinstance(value, str) else ""


type RouteOption = Callable[[RouteOptions], None]


def with_metadata(key: str, value: Any) -> RouteOption:
    """Set ``key`` in the route metadata; a falsy value removes it."""

    def apply(options: RouteOptions) -> None:
        if value:
            options.metadata[key] = value
        else:
            options.metadata.pop(key, None)

    return apply


def with_navigation(name: str, icon: str = "", access: str = "") -> RouteOption:
    """Attach navigation metadata (menu label, icon, access tag)."""

    def apply(options: RouteOptions) -> None:
        options.metadata[NAVIGATION_NAME] = name
        options.metadata[NAVIGATION_ICON] = icon
        options.metadata[NAVIGATION_ACCESS] = access

    return apply


def with_viewer(*viewers: Viewer) -> RouteOption:
    """Add viewers to the route, in preference order."""

    def apply(options: RouteOptions) -> None:
        options.viewers.extend(viewers)

    return apply


@dataclass(slots=True)
class Route:
    """A registered route.

    ``chain`` is the handler wrapped in the app middleware, then the
    middleware of ``group`` when the route was registered through one. It is
    rebuilt whenever either list grows.
    """

    pattern: str
    method: str
    host: str
    path: str
    handler: Handler
    options: RouteOptions = field(default_factory=RouteOptions)
    viewers: dict[str, Viewer] = field(default_factory=dict)
    chain: Handler | None = None
    group: Group | None = None

    def add_viewer(self, viewer: Viewer) -> None:
        """Register *viewer* under its MIME type, replacing any viewer of the same type."""
        self.viewers[str(viewer.mime_type)] = viewer


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, Any]
