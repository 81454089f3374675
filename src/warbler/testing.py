"""In-process test client for warbler applications.

Requests go straight into the ASGI callable; no socket is opened.
Entering the client does what the ASGI lifespan does for a server: when
the app watches its file tree, the hot reload task runs until exit.

Usage::

    async with TestClient(app) as client:
        response = await client.get("/users", headers={"Accept": "text/html"})
        assert response.status == 200
"""

from __future__ import annotations

import contextlib
import json as json_module
from dataclasses import dataclass
from typing import Any

import anyio

from warbler._internal.asgi import Message, Scope
from warbler.app import App
from warbler.http.headers import Headers


@dataclass(frozen=True, slots=True)
class TestResponse:
    """Status, headers and body the app sent for one request."""

    __test__ = False

    status: int
    headers: Headers
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type") or ""

    def json(self) -> Any:
        return json_module.loads(self.body)


def build_scope(method: str, target: str, headers: dict[str, str] | None = None) -> Scope:
    """ASGI ``http`` scope for *target* (path plus optional query string)."""
    path, _, query = target.partition("?")
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query.encode("latin-1"),
        "root_path": "",
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 0),
    }


class _Exchange:
    """Feeds one request body to the app and records what it sends back."""

    __slots__ = ("_pending", "body", "headers", "status")

    def __init__(self, body: bytes) -> None:
        self._pending: list[Message] = [{"type": "http.request", "body": body, "more_body": False}]
        self.status = 500
        self.headers: list[tuple[bytes, bytes]] = []
        self.body = bytearray()

    async def receive(self) -> Message:
        if self._pending:
            return self._pending.pop()
        return {"type": "http.disconnect"}

    async def send(self, message: Message) -> None:
        match message["type"]:
            case "http.response.start":
                self.status = message["status"]
                self.headers = list(message.get("headers", ()))
            case "http.response.body":
                self.body += message.get("body", b"")

    def response(self) -> TestResponse:
        return TestResponse(status=self.status, headers=Headers(tuple(self.headers)), body=bytes(self.body))


class TestClient:
    """Async context manager sending requests to an ``App``."""

    __test__ = False

    __slots__ = ("_stack", "app")

    def __init__(self, app: App) -> None:
        self.app = app
        self._stack: contextlib.AsyncExitStack | None = None

    async def __aenter__(self) -> TestClient:
        stack = contextlib.AsyncExitStack()
        if self.app.watcher is not None:
            tg = await stack.enter_async_context(anyio.create_task_group())
            tg.start_soon(self.app.watch)
            stack.callback(self.app.stop)
        self._stack = stack
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            await stack.aclose()

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        return await self.request("GET", path, headers=headers)

    async def head(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        return await self.request("HEAD", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
        json: Any = None,
    ) -> TestResponse:
        """POST *body*, or *json* encoded with an ``application/json`` content type."""
        if json is not None:
            body = json_module.dumps(json).encode("utf-8")
            headers = {"Content-Type": "application/json", **(headers or {})}
        return await self.request("POST", path, headers=headers, body=body)

    async def put(self, path: str, *, headers: dict[str, str] | None = None, body: bytes = b"") -> TestResponse:
        return await self.request("PUT", path, headers=headers, body=body)

    async def delete(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        return await self.request("DELETE", path, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
    ) -> TestResponse:
        """Run one request through the app and collect the response."""
        exchange = _Exchange(body)
        await self.app(build_scope(method, path, headers), exchange.receive, exchange.send)
        return exchange.response()
