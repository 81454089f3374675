"""Interceptor protocol.

An interceptor lets an extension take over request-level behaviour that
depends on the client, such as how a redirect is expressed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from warbler.context import Context


class Interceptor(Protocol):
    def request_referer(self, ctx: Context) -> str:
        """Referer known to the client library, or ``""``."""
        ...

    def redirect(self, ctx: Context, url: str, status: int = 302) -> bool:
        """Handle the redirect and return True, or return False to let the context do it."""
        ...
