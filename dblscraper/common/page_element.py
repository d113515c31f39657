"""PageElement protocol for data extraction.

This module provides the parser-agnostic interface the extraction engine
programs against: query a parsed document or subtree by CSS selector, read
text and attributes, and step to the next sibling element. PageElement is
always backed by static parsed HTML (see LxmlPageElement).
"""

from __future__ import annotations

from typing import Protocol


class PageElement(Protocol):
    """Protocol for parser-agnostic data extraction from HTML elements.

    Queries never validate result counts: an empty list is a valid answer
    and callers decide what absence means.
    """

    def query_css(self, selector: str) -> list[PageElement]:
        """Query descendant elements by CSS selector.

        Args:
            selector: CSS selector expression. Adjacent-sibling combinators
                and attribute-prefix matches are supported.

        Returns:
            Matching elements in document order (possibly empty).

        Raises:
            InvalidSelectorException: If the selector cannot be compiled.
        """
        ...

    def text_content(self) -> str:
        """Extract the text content of the element and its descendants.

        Returns:
            The raw, untrimmed text.
        """
        ...

    def get_attribute(self, name: str) -> str | None:
        """Extract an attribute value.

        Args:
            name: Name of the attribute.

        Returns:
            Value of the attribute, or None if it doesn't exist.
        """
        ...

    def next_sibling(self) -> PageElement | None:
        """Get the next element sibling.

        Text, comments and processing instructions are skipped.

        Returns:
            The following sibling element, or None for the last child.
        """
        ...

    def matches(self, selector: str) -> bool:
        """Check whether this element itself matches a CSS selector.

        Args:
            selector: CSS selector expression.

        Returns:
            True if the element is selected by the selector.
        """
        ...

    def tag_name(self) -> str:
        """Get the element's tag name.

        Returns:
            Tag name as a lowercase string (e.g., "div", "a").
        """
        ...
