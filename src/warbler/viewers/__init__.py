"""Viewers: per-MIME renderers of handler data."""

from warbler.viewers.file import FileViewer
from warbler.viewers.html import HtmlViewer
from warbler.viewers.json import JsonViewer
from warbler.viewers.protocol import Viewer
from warbler.viewers.string import StringViewer
from warbler.viewers.text import TextViewer
from warbler.viewers.xml import XmlViewer

__all__ = ["FileViewer", "HtmlViewer", "JsonViewer", "StringViewer", "TextViewer", "Viewer", "XmlViewer"]
