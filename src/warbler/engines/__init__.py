"""View engines: filesystem areas turned into viewers and routes."""

from warbler.engines.html import HtmlViewEngine
from warbler.engines.protocol import ViewEngine
from warbler.engines.static import StaticViewEngine
from warbler.engines.text import TextViewEngine

__all__ = ["HtmlViewEngine", "StaticViewEngine", "TextViewEngine", "ViewEngine", "default_engines"]


def default_engines() -> list[ViewEngine]:
    return [StaticViewEngine(), HtmlViewEngine(), TextViewEngine()]
