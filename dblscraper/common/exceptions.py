"""Exception types for scraper errors.

This module defines the exception hierarchy used across the pipeline:

- Assumption exceptions: the document does not look like we expected
  (unparseable markup, a broken selector in a schema).
- Transient exceptions: the fetch failed in a way that might resolve on
  retry (timeouts, transport failures, unexpected status codes).
- Output exceptions: the final collection could not be encoded or written.
- Run-level exceptions: the index stage failed or the run was interrupted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dblscraper.driver.async_driver import RunResult


class ScraperAssumptionException(Exception):
    """Base class for scraper assumption violations.

    Scrapers make assumptions about website structure and data formats.
    When these assumptions are violated, they should raise clear,
    contextual exceptions that help diagnose the issue.
    """

    def __init__(
        self,
        message: str,
        request_url: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the assumption violation.
            request_url: The URL of the request that triggered this error.
            context: Optional dict of additional context (selector, etc).
        """
        self.message = message
        self.request_url = request_url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        parts = [self.message]
        parts.append(f"URL: {self.request_url}")

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


class HTMLParseException(ScraperAssumptionException):
    """Raised when markup cannot be turned into a document tree.

    lxml recovers from almost any malformed HTML, so in practice this is
    raised for empty bodies or bodies that contain no element at all.
    """

    def __init__(self, request_url: str, reason: str) -> None:
        self.reason = reason
        super().__init__(
            "Could not parse HTML document",
            request_url,
            {"reason": reason},
        )


class InvalidSelectorException(ScraperAssumptionException):
    """Raised when a CSS selector in a schema cannot be compiled.

    This is a programming error in a schema, never a property of the
    fetched document.

    Attributes:
        selector: The selector that failed to compile.
    """

    def __init__(self, selector: str, request_url: str = "") -> None:
        self.selector = selector
        super().__init__(
            f"Invalid CSS selector '{selector}'",
            request_url,
            {"selector": selector},
        )


# =============================================================================
# Transient Exceptions
# =============================================================================


class TransientException(Exception):
    """Base class for transient errors that might resolve on retry.

    Transient exceptions represent temporary failures like network issues,
    unexpected status codes, or timeouts. The driver decides whether to
    retry; the request manager never does.
    """

    pass


class HTMLResponseAssumptionException(TransientException):
    """Raised when HTTP response has unexpected status code.

    Attributes:
        status_code: The actual HTTP status code received.
        expected_codes: List of status codes that were expected.
        url: The URL that returned the unexpected status.
        message: Human-readable error message.
    """

    def __init__(
        self,
        status_code: int,
        expected_codes: list[int],
        url: str,
    ) -> None:
        """Initialize the exception.

        Args:
            status_code: The actual status code received.
            expected_codes: List of expected status codes.
            url: The URL of the request.
        """
        self.status_code = status_code
        self.expected_codes = expected_codes
        self.url = url

        expected_str = ", ".join(str(code) for code in expected_codes)
        self.message = (
            f"HTTP {status_code} from {url} (expected one of: {expected_str})"
        )
        super().__init__(self.message)


class RequestTimeoutException(TransientException):
    """Raised when a request times out.

    Attributes:
        url: The URL that timed out.
        timeout_seconds: The timeout duration in seconds.
        message: Human-readable error message.
    """

    def __init__(self, url: str, timeout_seconds: float | None) -> None:
        """Initialize the exception.

        Args:
            url: The URL that timed out.
            timeout_seconds: The timeout duration in seconds.
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.message = f"Request to {url} timed out after {timeout_seconds}s"
        super().__init__(self.message)


class TransportFailureException(TransientException):
    """Raised when the request fails below HTTP (DNS, reset, TLS).

    Attributes:
        url: The URL that could not be reached.
        cause: The underlying transport error.
        message: Human-readable error message.
    """

    def __init__(self, url: str, cause: BaseException) -> None:
        self.url = url
        self.cause = cause
        self.message = (
            f"Transport failure for {url}: {type(cause).__name__}: {cause}"
        )
        super().__init__(self.message)


# =============================================================================
# Output Exceptions
# =============================================================================


class OutputException(Exception):
    """Base class for failures while persisting the final collection.

    Attributes:
        path: The output path, if one was involved.
        message: Human-readable error message.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)


class SerializationException(OutputException):
    """Raised when the record collection cannot be encoded as JSON."""


class PersistException(OutputException):
    """Raised when the encoded collection cannot be written to disk."""


# =============================================================================
# Run-level Exceptions
# =============================================================================


class IndexFetchException(Exception):
    """Raised when the index page cannot be fetched or parsed.

    Without the index there is nothing to scrape, so this is fatal for the
    whole run.

    Attributes:
        url: The index URL.
        cause: The fetch or parse error that stopped the run.
    """

    def __init__(self, url: str, cause: Exception) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to fetch index page {url}: {cause}")


class RunInterruptedException(Exception):
    """Aggregate error for a run that was stopped before all tasks ran.

    Attributes:
        result: The partial RunResult collected before the stop.
        not_launched: Number of documents that were never fetched.
    """

    def __init__(self, result: RunResult, not_launched: int) -> None:
        self.result = result
        self.not_launched = not_launched
        super().__init__(
            f"Run interrupted: {len(result.records)} records collected, "
            f"{len(result.failures)} failed, {not_launched} not launched"
        )
