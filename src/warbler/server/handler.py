"""ASGI handler: translates ASGI scope/messages to warbler types.

The only component that talks ASGI for a request. It builds the typed
``Request`` and the (possibly compressing) writer, matches the route,
runs the route's middleware chain inside a ``Context`` and turns every
outcome into a response:

- handler return value   rendered through content negotiation
- ``HandleCancelled``    whatever was written is sent as-is
- ``HTTPError``          its status, headers and detail as plain text
- anything else          500 with an ``X-Log-Id`` correlating the log line

The writer is always closed, so a response is sent exactly once.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from warbler._internal.asgi import Receive, Scope, Send
from warbler._internal.invoke import invoke
from warbler.context import Context, context_var
from warbler.errors import HandleCancelled, HTTPError
from warbler.http.compress import new_writer
from warbler.http.request import Request
from warbler.http.writer import ResponseWriter
from warbler.server.logid import next_log_id

if TYPE_CHECKING:
    from warbler.app import App

logger = logging.getLogger("warbler.server")

LOG_ID_HEADER = "X-Log-Id"
_PLAIN_TEXT = "text/plain; charset=utf-8"


async def handle_request(app: App, scope: Scope, receive: Receive, send: Send) -> None:
    """Process a single HTTP request through the full pipeline."""
    request = Request.from_asgi(scope, receive)
    writer = new_writer(
        send,
        method=request.method,
        accept_encoding=request.headers.get("accept-encoding"),
        compressors=app.compressors,
        pool=app.buffer_pool,
    )
    ctx = Context(app, request, writer)
    token = context_var.set(ctx)
    start = time.perf_counter()

    try:
        with app.lock.read():
            match = app.router.match(request.method, request.host, request.path, request.query.raw.decode("latin-1"))
        ctx.route = match.route
        ctx.request = request.with_path_params(match.path_params)

        chain = match.route.chain or match.route.handler
        result = await invoke(chain, ctx)
        if result is not None and not ctx.rendered:
            await ctx.view(result)
    except HandleCancelled:
        logger.debug("%s %s cancelled by handler", request.method, request.path)
    except HTTPError as exc:
        write_http_error(writer, exc)
    except Exception:
        log_id = next_log_id()
        app.logger.error(
            "Unhandled error in %s %s [%s]",
            request.method,
            request.path,
            log_id,
            exc_info=True,
            extra={"log_id": log_id},
        )
        write_internal_error(writer, log_id)
    finally:
        context_var.reset(token)
        await writer.close()

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "%s %s -> %d (%d bytes, %.1fms)",
            request.method,
            request.path,
            writer.status_code,
            writer.body_bytes_sent,
            (time.perf_counter() - start) * 1000,
        )


def write_http_error(writer: ResponseWriter, exc: HTTPError) -> None:
    """Replace whatever was written with *exc* as a plain-text response."""
    writer.reset()
    for name, value in exc.headers:
        writer.headers.set(name, value)
    writer.headers.set("Content-Type", _PLAIN_TEXT)
    writer.write_header(exc.status)
    if exc.detail:
        writer.write(exc.detail)


def write_internal_error(writer: ResponseWriter, log_id: str) -> None:
    """Replace whatever was written with an empty 500 carrying *log_id*."""
    writer.reset()
    writer.headers.set(LOG_ID_HEADER, log_id)
    writer.write_header(500)
