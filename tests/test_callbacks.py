"""Tests for the progress callbacks."""

import logging

import pytest

from dblscraper.common.exceptions import HTMLResponseAssumptionException
from dblscraper.data_types import TaskEvent, TaskStatus
from dblscraper.driver.callbacks import TqdmProgress, log_task_event


class TestLogTaskEvent:
    @pytest.mark.asyncio
    async def test_failure_logged_as_warning(self, caplog):
        error = HTMLResponseAssumptionException(500, [200], "http://x/a")

        with caplog.at_level(logging.DEBUG, logger="dblscraper"):
            await log_task_event(
                TaskEvent(3, "/a", TaskStatus.FAILED, error=error)
            )

        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        assert "/a" in record.getMessage()
        assert "HTTP 500" in record.getMessage()

    @pytest.mark.asyncio
    async def test_success_logged_as_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="dblscraper"):
            await log_task_event(TaskEvent(0, "/b", TaskStatus.SUCCEEDED))

        assert caplog.records[0].levelno == logging.DEBUG


class TestTqdmProgress:
    @pytest.mark.asyncio
    async def test_bar_lifecycle(self, capsys):
        progress = TqdmProgress(disable=True)

        await progress.on_run_start("CharacterScraper", 3)
        assert progress.bar is not None
        assert progress.bar.total == 3

        await progress.on_task_complete(TaskEvent(0, "/a", TaskStatus.SUCCEEDED))
        await progress.on_task_complete(
            TaskEvent(
                1,
                "/b",
                TaskStatus.FAILED,
                error=HTMLResponseAssumptionException(404, [200], "http://x/b"),
            )
        )
        assert progress.failed == 1
        assert "Failed /b: HTTP 404" in capsys.readouterr().out

        await progress.on_run_complete("CharacterScraper", "completed", None)
        assert progress.bar is None

    @pytest.mark.asyncio
    async def test_events_before_start_are_ignored(self):
        progress = TqdmProgress(disable=True)

        await progress.on_task_complete(TaskEvent(0, "/a", TaskStatus.SKIPPED))

        assert progress.bar is None
