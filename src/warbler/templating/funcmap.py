"""Process-wide template function map.

Functions registered here are available to every HTML and text template
as globals. Registration closes when the first template is compiled, so
all templates in a process see the same set.

Usage::

    from warbler.templating import funcmap

    funcmap.register("title", str.title)
"""

import threading
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from warbler.errors import ConfigurationError


def _join(sep: str, *items: Any) -> str:
    """``join(", ", "a", "b")`` or ``join(", ", ["a", "b"])``."""
    if len(items) == 1 and not isinstance(items[0], str):
        items = tuple(items[0])
    return sep.join(str(item) for item in items)


BUILTINS: Mapping[str, Callable[..., Any]] = MappingProxyType(
    {
        "upper": str.upper,
        "lower": str.lower,
        "join": _join,
    }
)

_lock = threading.Lock()
_funcs: dict[str, Callable[..., Any]] = dict(BUILTINS)
_sealed = False


def register(name: str, func: Callable[..., Any]) -> None:
    """Add *func* to the map. Raises ``ConfigurationError`` once sealed."""
    with _lock:
        if _sealed:
            msg = f"Cannot register template function {name!r}: templates are already compiled."
            raise ConfigurationError(msg)
        _funcs[name] = func


def register_map(funcs: Mapping[str, Callable[..., Any]]) -> None:
    for name, func in funcs.items():
        register(name, func)


def seal() -> Mapping[str, Callable[..., Any]]:
    """Close registration and return the final, read-only map."""
    global _sealed
    with _lock:
        _sealed = True
        return MappingProxyType(_funcs)


def is_sealed() -> bool:
    return _sealed
