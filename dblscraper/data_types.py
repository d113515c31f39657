"""Core data types for the scraper-driver pipeline.

This module contains:

- DocumentRef: the relative path of one remote document
- RawDocument: a fetched, not yet parsed document body
- TaskStatus / TaskEvent: per-document progress events
- BaseScraper: the base class the concrete scrapers derive from

A scraper knows *what* to extract (index link selector, record schema,
acceptance rule). The driver knows *how* to fetch (concurrency, rate limits,
failure accounting). Neither owns an HTTP client; the request manager is
passed to the driver explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from pyrate_limiter import Duration, Rate

from dblscraper.common.extraction import Schema, extract
from dblscraper.common.page_element import PageElement

# A relative path such as "/characters/1234". No identity beyond its value;
# duplicate refs are fetched independently.
DocumentRef = str

RecordT = TypeVar("RecordT", bound=BaseModel)

DEFAULT_USER_AGENT = "Mozilla/5.0 (U; Linux x86_64) Gecko/20130401 Firefox/58.3"


@dataclass(frozen=True)
class RawDocument:
    """The body of a successfully fetched page.

    Owned by the task that fetched it and discarded after extraction.

    Attributes:
        ref: The DocumentRef that was requested.
        url: The absolute URL that was fetched.
        status_code: HTTP status code of the response.
        text: Decoded response body.
    """

    ref: DocumentRef
    url: str
    status_code: int
    text: str


class TaskStatus(Enum):
    """Outcome of one fetch+extract task."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class TaskEvent:
    """Progress event emitted once per document.

    Attributes:
        index: Submission index of the document.
        ref: The document that was processed.
        status: How the task ended.
        error: The failure, for FAILED tasks.
    """

    index: int
    ref: DocumentRef
    status: TaskStatus
    error: Exception | None = None


class BaseScraper(Generic[RecordT]):
    """Base class for all scrapers.

    Scrapers are generic over their record type. The class attributes are
    the static configuration of one origin site; the constructor can
    override the origin for tests and mirrors.

    Class Attributes:
        base_url: Origin every DocumentRef is resolved against.
        index_path: DocumentRef of the page listing all documents.
        link_selector: CSS selector for the index links; their ``href``
            attributes become DocumentRefs.
        schema: Extraction schema producing one record per document.
        output_filename: Default file the CLI writes the collection to.
        user_agent: Client identity header the origin requires.
        timeout: Per-request timeout in seconds.
        rate_limits: pyrate_limiter Rates enforced across all requests to
            the origin. An empty list disables rate limiting.
    """

    base_url: ClassVar[str] = ""
    index_path: ClassVar[DocumentRef] = "/"
    link_selector: ClassVar[str] = "a[href]"
    schema: ClassVar[Schema[Any]]
    output_filename: ClassVar[str] = "records.json"
    user_agent: ClassVar[str] = DEFAULT_USER_AGENT
    timeout: ClassVar[float] = 5.0
    rate_limits: ClassVar[list[Rate]] = [Rate(1, Duration.SECOND)]

    def __init__(self, base_url: str | None = None) -> None:
        """Initialize the scraper.

        Args:
            base_url: Optional origin overriding the class default.
        """
        self.origin = base_url or self.base_url

    def get_schema(self) -> Schema[RecordT]:
        """Return the schema used for every document."""
        return self.schema

    def parse_index(self, page: PageElement) -> list[DocumentRef]:
        """Collect the document refs listed on the index page.

        Links without an ``href`` attribute are skipped; an empty ``href``
        is kept and resolves to the origin itself. Order and duplicates
        are kept as they appear in the document.

        Args:
            page: The parsed index page.

        Returns:
            DocumentRefs in document order.
        """
        refs: list[DocumentRef] = []
        for link in page.query_css(self.link_selector):
            href = link.get_attribute("href")
            if href is not None:
                refs.append(href)
        return refs

    def parse_record(
        self, page: PageElement, document: RawDocument
    ) -> RecordT | None:
        """Extract one record from a parsed document.

        Args:
            page: The parsed document.
            document: The raw document, for context.

        Returns:
            The record, or None if ``accepts`` rejected it.
        """
        record = extract(page, self.get_schema())
        if not self.accepts(record):
            return None
        return record

    def accepts(self, record: RecordT) -> bool:
        """Decide whether an extracted record belongs in the collection.

        The default accepts every record.
        """
        return True
