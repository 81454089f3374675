"""Routing: pattern splitting, route records, the trie router and groups."""

from warbler.routing.group import Group
from warbler.routing.pattern import split_file, split_pattern
from warbler.routing.route import (
    Route,
    RouteMatch,
    RouteOption,
    RouteOptions,
    with_metadata,
    with_navigation,
    with_viewer,
)
from warbler.routing.router import Router

__all__ = [
    "Group",
    "Route",
    "RouteMatch",
    "RouteOption",
    "RouteOptions",
    "Router",
    "split_file",
    "split_pattern",
    "with_metadata",
    "with_navigation",
    "with_viewer",
]
