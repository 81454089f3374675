"""Immutable HTTP request.

Frozen metadata with async body access, built once per ASGI call.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import parse_qs

from warbler._internal.asgi import Receive, Scope
from warbler.http.headers import Headers


class QueryParams(Mapping[str, str]):
    """Immutable query string parameters.

    ``__getitem__`` returns the first value for a key.
    ``get_list`` returns all values for a key.
    """

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes = b"") -> None:
        self._raw = query_string
        self._data: dict[str, list[str]] = parse_qs(query_string.decode("latin-1"), keep_blank_values=True)

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, []))

    @property
    def raw(self) -> bytes:
        return self._raw


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``host`` comes from the ``Host`` header (falling back to the ASGI
    ``server`` tuple) and keeps any port; the router strips it.
    """

    method: str
    path: str
    host: str
    headers: Headers
    query: QueryParams
    http_version: str
    client: tuple[str, int] | None
    path_params: dict[str, Any] = field(default_factory=dict)

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = field(default=None, repr=False, compare=False)

    # Private: body cache (the dict is mutable, the field is not)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def url(self) -> str:
        """Request path plus query string."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw.decode('latin-1')}"
        return self.path

    def with_path_params(self, path_params: dict[str, Any]) -> Request:
        """Copy of this request carrying the matched route's parameters.

        The body cache is shared so a body read by middleware isn't lost.
        """
        return replace(self, path_params=path_params)

    async def body(self) -> bytes:
        """Read the full request body; cached after the first call."""
        if "_body" in self._cache:
            return self._cache["_body"]
        result = b"".join([chunk async for chunk in self.stream()])
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        if self._receive is None:
            return
        while True:
            message = await self._receive()
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        return json_module.loads(await self.body())

    async def text(self) -> str:
        return (await self.body()).decode("utf-8")

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive | None = None) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        host = headers.get("host")
        if host is None:
            server = scope.get("server")
            host = f"{server[0]}:{server[1]}" if server else ""
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            host=host,
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
            _receive=receive,
        )
