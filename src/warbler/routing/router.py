"""Trie-based router with host scoping.

Routes may be added at any time: view engines register new pages and files
while the app is serving. Callers serialize ``add`` against ``match`` with
the app's reader/writer lock.

Path forms::

    /users             exact
    /users/{id:int}    typed parameter
    /files/{rest...}   rest of the path (also ``{rest:path}``)
    /docs/{$}          the directory itself only
    /docs/             the directory and everything below it
"""

import re
from dataclasses import dataclass
from urllib.parse import quote

from warbler.errors import HTTPError, MethodNotAllowed, NotFound
from warbler.routing.params import CONVERTERS, convert_param, parse_segment
from warbler.routing.pattern import EXACT_SUFFIX
from warbler.routing.route import PathSegment, Route, RouteMatch

ANY_METHOD = "*"


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/users"             -> [PathSegment("users")]
        "/users/{id}"        -> [PathSegment("users"), PathSegment("{id}", is_param=True, ...)]
        "/files/{rest...}"   -> [PathSegment("files"), PathSegment(..., param_type="path")]
    """
    return [parse_segment(part) for part in path.strip("/").split("/") if part]


class _TrieNode:
    """A node in the route trie."""

    __slots__ = ("catch_all", "children", "param_child", "routes_by_method", "slash_routes", "subtree_routes")

    def __init__(self) -> None:
        self.children: dict[str, _TrieNode] = {}
        self.param_child: _ParamEdge | None = None
        self.catch_all: _CatchAllEdge | None = None
        # "/users"
        self.routes_by_method: dict[str, Route] = {}
        # "/users/{$}"
        self.slash_routes: dict[str, Route] = {}
        # "/users/"
        self.subtree_routes: dict[str, Route] = {}


@dataclass(slots=True)
class _ParamEdge:
    """A parameter edge in the trie."""

    param_name: str
    param_type: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    """A catch-all edge that consumes the remaining path."""

    param_name: str
    route_by_method: dict[str, Route]


type _Found = tuple[dict[str, Route], dict[str, object]]


class Router:
    """Trie router keyed by host, then path, then method.

    Host-specific routes take precedence over host-agnostic ones. ``HEAD``
    falls back to ``GET``; a route registered without a method answers
    every method.

    Usage::

        router = Router()
        router.add(route)
        match = router.match("GET", "example.com", "/users/42")
    """

    __slots__ = ("_hosts",)

    def __init__(self) -> None:
        self._hosts: dict[str, _TrieNode] = {}

    def add(self, route: Route) -> None:
        """Insert *route*; a later route with the same method and path replaces it."""
        path = route.path
        slash_exact = path.endswith(EXACT_SUFFIX)
        if slash_exact:
            path = path[: -len(EXACT_SUFFIX)]
        subtree = not slash_exact and path.endswith("/")
        method = route.method or ANY_METHOD

        node = self._hosts.setdefault(route.host, _TrieNode())
        for seg in parse_path(path):
            if seg.is_param and seg.param_type == "path":
                if node.catch_all is None:
                    node.catch_all = _CatchAllEdge(param_name=seg.param_name or "path", route_by_method={})
                node.catch_all.route_by_method[method] = route
                return

            if seg.is_param:
                if node.param_child is None:
                    pattern, _ = CONVERTERS[seg.param_type]
                    node.param_child = _ParamEdge(
                        param_name=seg.param_name or "",
                        param_type=seg.param_type,
                        regex=re.compile(f"^{pattern}$"),
                        node=_TrieNode(),
                    )
                node = node.param_child.node
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        if slash_exact:
            node.slash_routes[method] = route
        elif subtree:
            node.subtree_routes[method] = route
        else:
            node.routes_by_method[method] = route

    @property
    def routes(self) -> list[Route]:
        """Return all registered routes, each once."""
        seen: set[int] = set()
        result: list[Route] = []
        for root in self._hosts.values():
            self._collect_routes(root, seen, result)
        return result

    def _collect_routes(self, node: _TrieNode, seen: set[int], result: list[Route]) -> None:
        tables = [node.routes_by_method, node.slash_routes, node.subtree_routes]
        if node.catch_all is not None:
            tables.append(node.catch_all.route_by_method)
        for table in tables:
            for route in table.values():
                if id(route) not in seen:
                    seen.add(id(route))
                    result.append(route)

        for child in node.children.values():
            self._collect_routes(child, seen, result)
        if node.param_child is not None:
            self._collect_routes(node.param_child.node, seen, result)

    def match(self, method: str, host: str, path: str, query: str = "") -> RouteMatch:
        """Match a request against registered routes.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFound`` if no route matches the path, ``MethodNotAllowed``
        if the path matches but the method doesn't, and a 301 ``HTTPError``
        when only the directory form (trailing slash) of the path exists;
        *query* is carried over to its ``Location``.
        """
        parts = [p for p in path.split("/") if p]
        trailing = path.endswith("/")

        allowed: set[str] = set()
        for root in self._roots(host):
            found = self._match_node(root, parts, 0, {}, trailing)
            if found is None:
                continue
            routes, params = found
            route = _select(routes, method)
            if route is not None:
                return RouteMatch(route=route, path_params=params)
            allowed.update(routes)

        if allowed:
            if "GET" in allowed:
                allowed.add("HEAD")
            raise MethodNotAllowed(frozenset(allowed))

        if not trailing and any(self._match_node(root, parts, 0, {}, True) for root in self._roots(host)):
            location = quote(path, safe="/") + "/"
            if query:
                location += "?" + query
            raise HTTPError(status=301, detail="Moved Permanently", headers=(("Location", location),))

        raise NotFound(f"No route matches {method} {path!r}")

    def _roots(self, host: str) -> list[_TrieNode]:
        roots: list[_TrieNode] = []
        host = host.rsplit(":", 1)[0].lower() if not host.endswith("]") else host.lower()
        if host and host in self._hosts:
            roots.append(self._hosts[host])
        if "" in self._hosts:
            roots.append(self._hosts[""])
        return roots

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, object],
        trailing: bool,
    ) -> _Found | None:
        """Recursively match path parts against the trie."""
        if index == len(parts):
            routes = node.slash_routes if trailing else node.routes_by_method
            if routes:
                return routes, params
            if trailing and node.subtree_routes:
                return node.subtree_routes, params
            if node.catch_all is not None:
                return node.catch_all.route_by_method, {**params, node.catch_all.param_name: ""}
            return None

        part = parts[index]

        # 1. Static child (exact match)
        if part in node.children:
            result = self._match_node(node.children[part], parts, index + 1, params, trailing)
            if result is not None:
                return result

        # 2. Parameter child
        if node.param_child is not None:
            edge = node.param_child
            if edge.regex.match(part):
                new_params = {**params, edge.param_name: convert_param(part, edge.param_type)}
                result = self._match_node(edge.node, parts, index + 1, new_params, trailing)
                if result is not None:
                    return result

        # 3. Catch-all
        if node.catch_all is not None:
            remaining = "/".join(parts[index:])
            if trailing:
                remaining += "/"
            return node.catch_all.route_by_method, {**params, node.catch_all.param_name: remaining}

        # 4. Enclosing directory
        if node.subtree_routes:
            return node.subtree_routes, params

        return None


def _select(routes: dict[str, Route], method: str) -> Route | None:
    route = routes.get(method)
    if route is None and method == "HEAD":
        route = routes.get("GET")
    if route is None:
        route = routes.get(ANY_METHOD)
    return route
