"""Request managers for fetching documents.

This module provides AsyncRequestManager, which encapsulates the HTTP
client and turns a DocumentRef into a RawDocument or a typed failure, and
PacedRequestManager, which adds fixed-window rate limiting via
pyrate_limiter so the origin sites see a polite request rate.

The request manager is responsible for:

- Maintaining the HTTP client (httpx.AsyncClient)
- Resolving DocumentRefs against the origin
- Classifying failures (timeout, transport, status)

It never retries. Retry, if enabled, is the driver's decision.
"""

from __future__ import annotations

import logging
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any
from urllib.parse import urljoin

import httpx
from pyrate_limiter import InMemoryBucket, Limiter, Rate

from dblscraper.common.exceptions import (
    HTMLResponseAssumptionException,
    RequestTimeoutException,
    TransportFailureException,
)
from dblscraper.data_types import DEFAULT_USER_AGENT, DocumentRef, RawDocument

logger = logging.getLogger(__name__)


class AsyncRequestManager:
    """Manages HTTP requests for the async driver.

    This class encapsulates:

    - httpx.AsyncClient lifecycle
    - Request resolution (DocumentRef to absolute URL)
    - Response classification

    Example::

        async with AsyncRequestManager(
            base_url="https://legends.dbz.space",
            timeout=5.0,
        ) as manager:
            document = await manager.fetch("/characters/")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = 5.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            base_url: Origin every DocumentRef is joined to.
            timeout: Request timeout in seconds. None means no timeout.
            user_agent: Client identity sent with every request. Some
                origins reject the default httpx identity.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.base_url = base_url
        self.timeout = timeout

        # A jar that accepts no cookies keeps requests independent
        no_cookies = CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))

        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
            cookies=no_cookies,
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncRequestManager:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit - closes the client."""
        await self.close()

    def resolve_url(self, ref: DocumentRef) -> str:
        """Join a DocumentRef to the origin.

        Root-relative refs are appended to the origin as given, so an
        origin with a path prefix (a mirror under ``/dbl``) keeps it.
        Anything else follows ordinary URL resolution.
        """
        if ref.startswith("/") and not ref.startswith("//"):
            return self.base_url.rstrip("/") + ref
        return urljoin(self.base_url, ref)

    async def fetch(self, ref: DocumentRef) -> RawDocument:
        """Fetch one document.

        Args:
            ref: Relative path of the document.

        Returns:
            RawDocument with the decoded body.

        Raises:
            RequestTimeoutException: If the request exceeds the timeout.
            TransportFailureException: If the request fails below HTTP.
            HTMLResponseAssumptionException: If the status is not 2xx.
        """
        url = self.resolve_url(ref)

        try:
            http_response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise RequestTimeoutException(
                url=url, timeout_seconds=self.timeout
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise TransportFailureException(url, e) from e

        if not http_response.is_success:
            raise HTMLResponseAssumptionException(
                status_code=http_response.status_code,
                expected_codes=[200],
                url=url,
            )

        logger.debug(f"Fetched {url} ({len(http_response.content)} bytes)")

        return RawDocument(
            ref=ref,
            url=url,
            status_code=http_response.status_code,
            text=http_response.text,
        )


class PacedRequestManager(AsyncRequestManager):
    """AsyncRequestManager with pyrate_limiter rate limiting.

    Every fetch first acquires a token from a shared Limiter, so the
    aggregate request rate stays within the configured rates however many
    tasks call fetch() concurrently. When multiple rates are provided, all
    are enforced simultaneously.

    Example::

        from pyrate_limiter import Duration, Rate

        manager = PacedRequestManager(
            base_url="https://dblegends.net",
            rates=[Rate(1, Duration.SECOND)],
        )
        document = await manager.fetch("/banner/123")
    """

    def __init__(
        self,
        base_url: str,
        rates: list[Rate] | None = None,
        timeout: float | None = 5.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the rate-limited request manager.

        Args:
            base_url: Origin every DocumentRef is joined to.
            rates: List of pyrate_limiter Rate objects. If None or empty,
                no rate limiting is applied.
            timeout: Request timeout in seconds. None means no timeout.
            user_agent: Client identity sent with every request.
            transport: Optional httpx transport.
        """
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            user_agent=user_agent,
            transport=transport,
        )
        self._rates = list(rates or [])
        self._limiter: Limiter | None = None

        if self._rates:
            self._limiter = Limiter(InMemoryBucket(self._rates))
            logger.info(
                f"Rate limiter initialized with {len(self._rates)} rate(s): "
                + ", ".join(f"{r.limit}/{r.interval}ms" for r in self._rates)
            )
        else:
            logger.info("No rate limits configured")

    async def fetch(self, ref: DocumentRef) -> RawDocument:
        if self._limiter:
            await self._limiter.try_acquire_async(name="request", weight=1)
        return await super().fetch(ref)
