"""Asynchronous driver implementation.

This module contains the driver that runs a scraper end to end:

1. Fetch and parse the scraper's index page into DocumentRefs
2. Spawn one task per ref, admitted through a semaphore so that at most
   ``num_workers`` fetch+extract tasks run at once
3. Collect records into a lock-guarded collector, keyed by submission
   index so the output order is deterministic
4. Return once every task has ended, successfully or not

Per-document failures are reported and dropped; they never abort the
batch. A failure to get the index page is fatal.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic

from dblscraper.common.exceptions import (
    HTMLParseException,
    IndexFetchException,
    RunInterruptedException,
    TransientException,
)
from dblscraper.common.lxml_page_element import parse_html
from dblscraper.common.request_manager import (
    AsyncRequestManager,
    PacedRequestManager,
)
from dblscraper.data_types import (
    BaseScraper,
    DocumentRef,
    RawDocument,
    RecordT,
    TaskEvent,
    TaskStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskFailure:
    """A document whose fetch or parse failed.

    Attributes:
        index: Submission index of the document.
        ref: The document that failed.
        error: The failure that ended the task.
    """

    index: int
    ref: DocumentRef
    error: Exception


@dataclass
class RunResult(Generic[RecordT]):
    """Outcome of a driver run.

    Attributes:
        records: Extracted records in submission order.
        failures: Documents whose fetch or parse failed.
        rejected: Documents whose record the scraper did not accept.
        not_launched: Documents never fetched because the run was stopped.
        error: Aggregate error when the run was stopped early.
    """

    records: list[RecordT] = field(default_factory=list)
    failures: list[TaskFailure] = field(default_factory=list)
    rejected: list[DocumentRef] = field(default_factory=list)
    not_launched: list[DocumentRef] = field(default_factory=list)
    error: RunInterruptedException | None = None


class ResultCollector(Generic[RecordT]):
    """Shared sink for task outcomes.

    Records go into slots pre-sized to the number of refs, so the final
    order matches submission order regardless of completion order. All
    mutation happens under one lock.
    """

    def __init__(self, size: int) -> None:
        self._slots: list[RecordT | None] = [None] * size
        self._failures: list[TaskFailure] = []
        self._rejected: list[tuple[int, DocumentRef]] = []
        self._not_launched: list[tuple[int, DocumentRef]] = []
        self._lock = asyncio.Lock()

    async def add_record(self, index: int, record: RecordT) -> None:
        async with self._lock:
            self._slots[index] = record

    async def add_failure(
        self, index: int, ref: DocumentRef, error: Exception
    ) -> None:
        async with self._lock:
            self._failures.append(TaskFailure(index, ref, error))

    async def add_rejected(self, index: int, ref: DocumentRef) -> None:
        async with self._lock:
            self._rejected.append((index, ref))

    async def add_not_launched(self, index: int, ref: DocumentRef) -> None:
        async with self._lock:
            self._not_launched.append((index, ref))

    def result(self) -> RunResult[RecordT]:
        """Build the RunResult. Call only after every task has ended."""
        return RunResult(
            records=[record for record in self._slots if record is not None],
            failures=sorted(self._failures, key=lambda f: f.index),
            rejected=[ref for _, ref in sorted(self._rejected)],
            not_launched=[ref for _, ref in sorted(self._not_launched)],
        )


class AsyncDriver(Generic[RecordT]):
    """Asynchronous driver running a scraper with bounded concurrency.

    Example usage::

        from tests.utils import collect_results_async

        rates = [Rate(1, Duration.SECOND)]
        callback, results = collect_results_async()
        async with PacedRequestManager(base_url, rates=rates) as manager:
            driver = AsyncDriver(
                CharacterScraper(),
                request_manager=manager,
                on_record=callback,
                num_workers=8,
            )
            result = await driver.run()
    """

    def __init__(
        self,
        scraper: BaseScraper[RecordT],
        request_manager: AsyncRequestManager | None = None,
        on_record: Callable[[RecordT], Awaitable[None]] | None = None,
        on_task_complete: Callable[[TaskEvent], Awaitable[None]]
        | None = None,
        on_run_start: Callable[[str, int], Awaitable[None]] | None = None,
        on_run_complete: Callable[
            [str, str, Exception | None], Awaitable[None]
        ]
        | None = None,
        stop_event: asyncio.Event | None = None,
        num_workers: int = 8,
        retries: int = 0,
        retry_base_delay: float = 1.0,
    ) -> None:
        """Initialize the driver.

        Args:
            scraper: Scraper providing the index path, link selector and
                record schema.
            request_manager: Request manager used for every fetch. If None,
                a PacedRequestManager is built from the scraper's class
                configuration and closed when the run ends.
            on_record: Optional async callback invoked with each accepted
                record as soon as it is extracted.
            on_task_complete: Optional async callback invoked with a
                TaskEvent once per document (succeeded, failed, skipped).
            on_run_start: Optional async callback invoked after the index
                is parsed. Receives scraper_name (str) and the number of
                documents (int).
            on_run_complete: Optional async callback invoked when the run
                ends. Receives scraper_name (str), status ("completed" |
                "interrupted" | "error") and error (Exception | None).
            stop_event: Optional asyncio.Event for graceful shutdown. Once
                set, no new task is admitted; tasks already fetching finish.
            num_workers: Maximum number of fetch+extract tasks in flight.
            retries: Extra attempts for a document after a transient
                failure. Defaults to 0 (no retry).
            retry_base_delay: Base delay for exponential retry backoff.
        """
        if num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {num_workers}")

        self.scraper = scraper

        if request_manager is not None:
            self.request_manager = request_manager
            self._owns_request_manager = False
        else:
            self.request_manager = PacedRequestManager(
                base_url=scraper.origin,
                rates=scraper.rate_limits,
                timeout=scraper.timeout,
                user_agent=scraper.user_agent,
            )
            self._owns_request_manager = True

        self.on_record = on_record
        self.on_task_complete = on_task_complete
        self.on_run_start = on_run_start
        self.on_run_complete = on_run_complete
        self.stop_event = stop_event
        self.num_workers = num_workers
        self.retries = retries
        self.retry_base_delay = retry_base_delay

    async def run(self) -> RunResult[RecordT]:
        """Run the scraper from its index page to the final collection.

        Returns:
            RunResult with the records in submission order. If the run was
            stopped early, ``error`` holds a RunInterruptedException.

        Raises:
            IndexFetchException: If the index page cannot be fetched or
                parsed.
        """
        scraper_name = self.scraper.__class__.__name__
        status = "completed"
        error: Exception | None = None

        try:
            refs = await self.fetch_index()

            if self.on_run_start:
                await self.on_run_start(scraper_name, len(refs))

            result = await self.scrape(refs)
            if result.error is not None:
                status = "interrupted"
                error = result.error

            logger.info(
                f"{scraper_name}: {len(result.records)} records, "
                f"{len(result.failures)} failed, "
                f"{len(result.rejected)} rejected, "
                f"{len(result.not_launched)} not launched"
            )
            return result

        except Exception as e:
            status = "error"
            error = e
            raise
        finally:
            if self._owns_request_manager:
                await self.request_manager.close()

            if self.on_run_complete:
                await self.on_run_complete(scraper_name, status, error)

    async def fetch_index(self) -> list[DocumentRef]:
        """Fetch the index page and extract the document refs from it.

        Returns:
            DocumentRefs in document order.

        Raises:
            IndexFetchException: If the index page cannot be fetched or
                parsed.
        """
        index_path = self.scraper.index_path
        try:
            document = await self._fetch(index_path)
            page = parse_html(document.text, document.url)
        except (TransientException, HTMLParseException) as e:
            raise IndexFetchException(
                self.request_manager.resolve_url(index_path), e
            ) from e

        refs = self.scraper.parse_index(page)
        if refs:
            logger.info(f"Found {len(refs)} documents on {document.url}")
        else:
            logger.warning(f"No documents found on {document.url}")
        return refs

    async def scrape(self, refs: list[DocumentRef]) -> RunResult[RecordT]:
        """Fetch and extract every ref with bounded concurrency.

        Args:
            refs: Documents to process. Duplicates are fetched
                independently.

        Returns:
            RunResult for this batch.
        """
        collector: ResultCollector[RecordT] = ResultCollector(len(refs))
        gate = asyncio.Semaphore(self.num_workers)

        tasks = [
            asyncio.create_task(self._process(index, ref, gate, collector))
            for index, ref in enumerate(refs)
        ]
        # Join: every task ends before the collection is read
        await asyncio.gather(*tasks)

        result = collector.result()
        if result.not_launched:
            result.error = RunInterruptedException(
                result, len(result.not_launched)
            )
        return result

    async def _process(
        self,
        index: int,
        ref: DocumentRef,
        gate: asyncio.Semaphore,
        collector: ResultCollector[RecordT],
    ) -> None:
        """Fetch, parse and extract one document.

        Args:
            index: Submission index of the document.
            ref: The document to process.
            gate: Semaphore bounding the number of tasks in flight.
            collector: Shared result collector.
        """
        async with gate:
            if self.stop_event and self.stop_event.is_set():
                await collector.add_not_launched(index, ref)
                await self._report(TaskEvent(index, ref, TaskStatus.SKIPPED))
                return

            try:
                document = await self._fetch(ref)
                page = parse_html(document.text, document.url)
            except (TransientException, HTMLParseException) as e:
                logger.warning(f"Failed to fetch {ref}: {e}")
                await collector.add_failure(index, ref, e)
                await self._report(
                    TaskEvent(index, ref, TaskStatus.FAILED, error=e)
                )
                return

            record = self.scraper.parse_record(page, document)
            if record is None:
                await collector.add_rejected(index, ref)
                await self._report(TaskEvent(index, ref, TaskStatus.SKIPPED))
                return

            await collector.add_record(index, record)
            logger.debug(f"Extracted record from {ref}")
            if self.on_record:
                await self.on_record(record)
            await self._report(TaskEvent(index, ref, TaskStatus.SUCCEEDED))

    async def _fetch(self, ref: DocumentRef) -> RawDocument:
        """Fetch a document, retrying transient failures if configured.

        Retry delay is ``retry_base_delay * 2**attempt``.
        """
        attempt = 0
        while True:
            try:
                return await self.request_manager.fetch(ref)
            except TransientException as e:
                stopping = self.stop_event is not None and self.stop_event.is_set()
                if attempt >= self.retries or stopping:
                    raise
                delay = self.retry_base_delay * (2**attempt)
                attempt += 1
                logger.info(
                    f"Retrying {ref} (attempt {attempt + 1} of "
                    f"{self.retries + 1}) in {delay:.1f}s after: {e}"
                )
                await asyncio.sleep(delay)

    async def _report(self, event: TaskEvent) -> None:
        if self.on_task_complete:
            await self.on_task_complete(event)
