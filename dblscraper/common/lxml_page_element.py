"""LxmlPageElement implementation of the PageElement protocol.

This module provides the standard PageElement implementation, backed by
lxml.html trees and cssselect-compiled selectors, and parse_html() which
turns a fetched body into the root element.
"""

from __future__ import annotations

from functools import lru_cache

from cssselect import SelectorError
from lxml import etree, html
from lxml.cssselect import CSSSelector
from lxml.html import HtmlElement

from dblscraper.common.exceptions import (
    HTMLParseException,
    InvalidSelectorException,
)

_UTF8_PARSER = html.HTMLParser(encoding="utf-8")


@lru_cache(maxsize=512)
def compile_css(selector: str) -> CSSSelector:
    """Compile a CSS selector, caching the result.

    Args:
        selector: CSS selector expression.

    Returns:
        A compiled CSSSelector using HTML semantics.

    Raises:
        InvalidSelectorException: If the selector cannot be compiled.
    """
    try:
        return CSSSelector(selector, translator="html")
    except SelectorError as e:
        raise InvalidSelectorException(selector) from e


def parse_html(markup: str, url: str = "") -> LxmlPageElement:
    """Parse an HTML document into its root PageElement.

    Args:
        markup: The document body.
        url: The document URL, kept for error context.

    Returns:
        LxmlPageElement wrapping the <html> root.

    Raises:
        HTMLParseException: If no document tree can be built.
    """
    try:
        root = html.document_fromstring(markup)
    except ValueError:
        # lxml refuses str input that carries an XML encoding declaration
        try:
            root = html.document_fromstring(
                markup.encode("utf-8"), parser=_UTF8_PARSER
            )
        except etree.ParserError as e:
            raise HTMLParseException(url, str(e)) from e
    except etree.ParserError as e:
        raise HTMLParseException(url, str(e)) from e

    return LxmlPageElement(root, url)


class LxmlPageElement:
    """Implementation of the PageElement protocol wrapping an lxml element.

    Attributes:
        _element: The underlying lxml HtmlElement.
        _url: The URL of the document, for error context.
    """

    def __init__(self, element: HtmlElement, url: str = "") -> None:
        """Initialize LxmlPageElement.

        Args:
            element: The lxml HtmlElement to wrap.
            url: The URL of the document the element belongs to.
        """
        self._element = element
        self._url = url

    def __repr__(self) -> str:
        return f"LxmlPageElement(<{self.tag_name()}>, url={self._url!r})"

    def query_css(self, selector: str) -> list[LxmlPageElement]:
        """Query descendant elements by CSS selector.

        Args:
            selector: CSS selector expression.

        Returns:
            List of matching descendant LxmlPageElement instances, in
            document order.

        Raises:
            InvalidSelectorException: If the selector cannot be compiled.
        """
        try:
            compiled = compile_css(selector)
        except InvalidSelectorException as e:
            raise InvalidSelectorException(selector, self._url) from e

        # cssselect matches descendant-or-self; only descendants are wanted
        return [
            LxmlPageElement(elem, self._url)
            for elem in compiled(self._element)
            if elem is not self._element
        ]

    def text_content(self) -> str:
        return str(self._element.text_content())

    def get_attribute(self, name: str) -> str | None:
        return self._element.get(name)

    def next_sibling(self) -> LxmlPageElement | None:
        sibling = self._element.getnext()
        # Comments and processing instructions have non-string tags
        while sibling is not None and not isinstance(sibling.tag, str):
            sibling = sibling.getnext()
        if sibling is None:
            return None
        return LxmlPageElement(sibling, self._url)

    def matches(self, selector: str) -> bool:
        """Check whether this element itself matches a CSS selector.

        The selector is evaluated from the document root so that
        combinators keep their normal meaning.

        Args:
            selector: CSS selector expression.

        Returns:
            True if the element is among the selector's matches.
        """
        root = self._element.getroottree().getroot()
        return any(
            elem is self._element for elem in compile_css(selector)(root)
        )

    def tag_name(self) -> str:
        return str(self._element.tag).lower()
