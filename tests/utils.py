"""Test utilities for the scraper tests.

This module provides reusable helpers: result-collecting callbacks and a
stub request manager that serves canned pages without the network while
recording what the driver asked for.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from dblscraper.common.exceptions import (
    HTMLResponseAssumptionException,
    TransientException,
)
from dblscraper.common.request_manager import AsyncRequestManager
from dblscraper.data_types import DocumentRef, RawDocument

logger = logging.getLogger(__name__)


def collect_results_async() -> tuple[
    Callable[[Any], Awaitable[None]], list[Any]
]:
    """Create an async callback that collects results in a list.

    Returns:
        A tuple of (async_callback_function, results_list).
        The callback appends data to the results list.
        The results list is shared and can be inspected after driver.run().

    Example:
        callback, results = collect_results_async()
        driver = AsyncDriver(scraper, manager, on_record=callback)
        await driver.run()
        assert len(results) > 0
    """
    results: list[Any] = []

    async def callback(data: Any) -> None:
        results.append(data)

    return callback, results


class StubRequestManager(AsyncRequestManager):
    """Request manager serving pages from a dict.

    Refs missing from ``pages`` fail with a 404. Every fetch is recorded,
    and the highest number of concurrent fetches is tracked.

    Attributes:
        fetched: Refs in the order fetch() was called.
        max_in_flight: Highest number of fetches running at once.
    """

    def __init__(
        self,
        pages: dict[DocumentRef, str],
        delay: float = 0.0,
        failures: dict[DocumentRef, list[TransientException]] | None = None,
    ) -> None:
        """Initialize the stub.

        Args:
            pages: Body per ref.
            delay: Simulated network time per fetch.
            failures: Errors to raise for a ref, one per call, before the
                page (if any) is served.
        """
        super().__init__(base_url="http://stub.test")
        self.pages = pages
        self.delay = delay
        self.failures = failures or {}
        self.fetched: list[DocumentRef] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, ref: DocumentRef) -> RawDocument:
        self.fetched.append(ref)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            pending = self.failures.get(ref)
            if pending:
                raise pending.pop(0)
            url = self.resolve_url(ref)
            if ref not in self.pages:
                raise HTMLResponseAssumptionException(404, [200], url)
            return RawDocument(
                ref=ref, url=url, status_code=200, text=self.pages[ref]
            )
        finally:
            self.in_flight -= 1
