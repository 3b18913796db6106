"""
Minimal element-tree capability the product extractor works against,
plus the lxml-backed implementation used in production.
"""

from typing import List, Optional, Protocol, Union

import structlog
from lxml import html

logger = structlog.get_logger(__name__)


class Element(Protocol):
    def select(self, selector: str) -> List["Element"]:
        """Return descendants matching a CSS selector, in document order."""
        ...

    def text(self) -> str:
        """Return the concatenated text content of the element."""
        ...

    def attr(self, name: str) -> Optional[str]:
        """Return an attribute value or None when absent."""
        ...


class LxmlElement:
    __slots__ = ("_el",)

    def __init__(self, el: html.HtmlElement):
        self._el = el

    def select(self, selector: str) -> List["LxmlElement"]:
        return [LxmlElement(el) for el in self._el.cssselect(selector)]

    def text(self) -> str:
        return str(self._el.text_content() or "")

    def attr(self, name: str) -> Optional[str]:
        return self._el.get(name)

    def __repr__(self) -> str:
        return f"<LxmlElement {self._el.tag}>"


def parse_document(markup: Union[str, bytes]) -> LxmlElement:
    """Parse an HTML page into an element tree rooted at <html>."""
    try:
        root = html.document_fromstring(markup)
    except ValueError:
        # lxml refuses str input that carries an XML encoding declaration
        if isinstance(markup, bytes):
            raise
        root = html.document_fromstring(markup.encode("utf-8"))
    logger.debug("document_parsed", root_tag=root.tag)
    return LxmlElement(root)
