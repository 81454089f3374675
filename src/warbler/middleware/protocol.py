"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    async def my_mw(ctx: Context, next: Next) -> Any: ...

No base class required. The framework checks the shape, not the lineage.

Middleware registered first runs outermost. ``next`` runs the rest of
the chain and returns the handler's value; a middleware may write to
``ctx.response`` before or after it, or return without calling it to
short-circuit the route.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

from warbler._internal.invoke import invoke
from warbler._internal.types import Handler

if TYPE_CHECKING:
    from warbler.context import Context

# The rest of the chain, ending in the route handler
type Next = Callable[[Context], Awaitable[Any]]


class Middleware(Protocol):
    """Protocol for warbler middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(ctx: Context, next: Next) -> Any:
            start = time.monotonic()
            result = await next(ctx)
            ctx.write_header("X-Time", f"{time.monotonic() - start:.3f}")
            return result

        # Class middleware
        class RequireUser:
            async def __call__(self, ctx: Context, next: Next) -> Any:
                ...
    """

    async def __call__(self, ctx: Context, next: Next) -> Any: ...


def compose(handler: Handler, middleware: Sequence[Middleware]) -> Next:
    """Wrap *handler* in *middleware*, the first element outermost."""

    async def endpoint(ctx: Context) -> Any:
        return await invoke(handler, ctx)

    chain: Next = endpoint
    for mw in reversed(middleware):

        async def link(ctx: Context, _mw: Middleware = mw, _next: Next = chain) -> Any:
            return await _mw(ctx, _next)

        chain = link
    return chain
