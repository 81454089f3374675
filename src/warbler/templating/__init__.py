"""Template compilation for HTML pages and text files.

``TemplateStore`` holds HTML templates and their dependency graph;
``TextTemplate`` is the standalone kind used for text viewers.
"""

from warbler.templating.store import HtmlTemplate, TemplateStore
from warbler.templating.text import TextTemplate

__all__ = ["HtmlTemplate", "TemplateStore", "TextTemplate"]
