"""Shared type aliases used across warbler modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: ``(ctx) -> value``, sync or async
Handler: TypeAlias = Callable[..., Any]
