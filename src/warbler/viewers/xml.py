"""XML viewer.

Supported data:

- ``xml.etree.ElementTree.Element``, serialized as-is
- a dataclass instance, as ``<ClassName>`` with one child per field
- a mapping with a single key, as a root element named by that key

Nested mappings become child elements, lists and tuples repeat the
element, scalars become text. Anything else raises ``TypeError`` before
the response is touched.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any
from xml.etree import ElementTree

from warbler.context import Context
from warbler.mime import MimeType

XML_MIME = MimeType("text", "xml")


def _fill(element: ElementTree.Element, value: Any) -> None:
    if value is None:
        return
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        for key, child in value.items():
            _append(element, str(key), child)
        return
    if isinstance(value, bool):
        element.text = "true" if value else "false"
        return
    if isinstance(value, (str, int, float)):
        element.text = str(value)
        return
    msg = f"Object of type {type(value).__name__} is not XML serializable"
    raise TypeError(msg)


def _append(parent: ElementTree.Element, tag: str, value: Any) -> None:
    if isinstance(value, (list, tuple)):
        for item in value:
            _append(parent, tag, item)
        return
    _fill(ElementTree.SubElement(parent, tag), value)


def to_element(data: Any) -> ElementTree.Element:
    if isinstance(data, ElementTree.Element):
        return data
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        root = ElementTree.Element(type(data).__name__)
        _fill(root, data)
        return root
    if isinstance(data, Mapping) and len(data) == 1:
        ((tag, value),) = data.items()
        root = ElementTree.Element(str(tag))
        _fill(root, value)
        return root
    msg = f"Object of type {type(data).__name__} is not XML serializable"
    raise TypeError(msg)


def encode_xml(data: Any) -> bytes:
    if data is None:
        return b""
    return ElementTree.tostring(to_element(data), encoding="unicode").encode("utf-8")


class XmlViewer:
    """Serializes data as ``text/xml``."""

    __slots__ = ()

    mime_type = XML_MIME

    async def render(self, ctx: Context, data: Any) -> None:
        body = encode_xml(data)
        ctx.response.headers.set("Content-Type", "text/xml; charset=utf-8")
        ctx.response.write(body)
