"""Callback functions for the driver's progress hooks.

This module provides callbacks that can be passed to AsyncDriver's
on_task_complete, on_run_start and on_run_complete parameters, for
logging and terminal progress display.

Example::

    from dblscraper.driver.callbacks import TqdmProgress

    progress = TqdmProgress()
    driver = AsyncDriver(
        scraper,
        request_manager=manager,
        on_run_start=progress.on_run_start,
        on_task_complete=progress.on_task_complete,
        on_run_complete=progress.on_run_complete,
    )
"""

from __future__ import annotations

import logging

from tqdm import tqdm

from dblscraper.data_types import TaskEvent, TaskStatus

logger = logging.getLogger(__name__)


async def log_task_event(event: TaskEvent) -> None:
    """Log one task outcome.

    Failures go to WARNING, everything else to DEBUG.
    """
    if event.status is TaskStatus.FAILED:
        logger.warning(f"[{event.index}] {event.ref} failed: {event.error}")
    else:
        logger.debug(f"[{event.index}] {event.ref} {event.status.value}")


class TqdmProgress:
    """Progress bar over the documents of one run.

    The bar is created when the index has been parsed and the total is
    known. Failures are written above the bar so they stay visible.
    """

    def __init__(self, disable: bool = False) -> None:
        self.disable = disable
        self.bar: tqdm | None = None
        self.failed = 0

    async def on_run_start(self, scraper_name: str, total: int) -> None:
        self.bar = tqdm(
            total=total,
            desc=scraper_name,
            unit="page",
            disable=self.disable,
        )

    async def on_task_complete(self, event: TaskEvent) -> None:
        if self.bar is None:
            return
        if event.status is TaskStatus.FAILED:
            self.failed += 1
            self.bar.set_postfix(failed=self.failed)
            tqdm.write(f"Failed {event.ref}: {event.error}")
        self.bar.update(1)

    async def on_run_complete(
        self, scraper_name: str, status: str, error: Exception | None
    ) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None
