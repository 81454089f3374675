"""Middleware: ``async (ctx, next)`` callables wrapped around route handlers."""

from warbler.middleware.protocol import Middleware, Next, compose

__all__ = ["Middleware", "Next", "compose"]
