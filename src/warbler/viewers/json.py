"""JSON viewer."""

import dataclasses
import datetime
import json as json_module
from collections.abc import Mapping, Set
from typing import Any

from warbler.context import Context
from warbler.mime import MimeType

JSON_MIME = MimeType("application", "json")


def _default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Set):
        return sorted(value, key=str)
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def encode_json(data: Any) -> bytes:
    """Serialize *data*; dataclasses, sets and datetimes are supported."""
    return json_module.dumps(data, default=_default, ensure_ascii=False).encode("utf-8")


class JsonViewer:
    """Serializes data as ``application/json``.

    Encoding happens before anything is written, so an unserializable value
    fails without leaving a partial response behind.
    """

    __slots__ = ()

    mime_type = JSON_MIME

    async def render(self, ctx: Context, data: Any) -> None:
        body = encode_json(data)
        ctx.response.headers.set("Content-Type", "application/json; charset=utf-8")
        ctx.response.write(body)
