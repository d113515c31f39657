"""dblscraper CLI — scrape character and banner data.

Usage:
    dblscraper characters                  # Write .CHARACTER-STATS.json
    dblscraper banners                     # Write .BANNER_DATA.json
    dblscraper banners --summary           # ... and print each banner
    dblscraper characters -o stats.json --workers 4 --delay 2

The ``dbl-characters`` and ``dbl-banners`` scripts run the matching
command directly.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
from pyrate_limiter import Duration, Rate

from dblscraper.common.exceptions import IndexFetchException, OutputException
from dblscraper.common.request_manager import PacedRequestManager
from dblscraper.common.serialization import write_records
from dblscraper.data_types import BaseScraper
from dblscraper.driver.async_driver import AsyncDriver, RunResult
from dblscraper.driver.callbacks import TqdmProgress, log_task_event
from dblscraper.scrapers.banners import DEFAULT_DATE_SEPARATOR, BannerScraper
from dblscraper.scrapers.characters import CharacterScraper
from dblscraper.scrapers.models import Banner

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="dblscraper")
def cli() -> None:
    """dblscraper — Dragon Ball Legends data scrapers."""


def scrape_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every scrape command."""
    options = [
        click.option(
            "-o",
            "--output",
            type=click.Path(dir_okay=False),
            default=None,
            help="Output JSON file (default: the scraper's output file).",
        ),
        click.option(
            "--workers",
            type=click.IntRange(min=1),
            default=8,
            show_default=True,
            help="Maximum number of pages fetched concurrently.",
        ),
        click.option(
            "--delay",
            type=click.FloatRange(min=0),
            default=None,
            help=(
                "Seconds between requests, as a rate limit of one request "
                "per DELAY seconds. 0 disables it (default: 1.0)."
            ),
        ),
        click.option(
            "--timeout",
            type=click.FloatRange(min=0, min_open=True),
            default=None,
            help="Per-request timeout in seconds (default: 5.0).",
        ),
        click.option(
            "--retries",
            type=click.IntRange(min=0),
            default=0,
            show_default=True,
            help="Extra attempts per page after a transient failure.",
        ),
        click.option(
            "--base-url",
            default=None,
            help="Origin to scrape instead of the live site.",
        ),
        click.option(
            "--no-progress",
            is_flag=True,
            help="Do not show a progress bar.",
        ),
        click.option("-v", "--verbose", is_flag=True, help="Verbose logging."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command()
@scrape_options
def characters(
    output: str | None,
    workers: int,
    delay: float | None,
    timeout: float | None,
    retries: int,
    base_url: str | None,
    no_progress: bool,
    verbose: bool,
) -> None:
    """Scrape every character page of legends.dbz.space."""
    _configure_logging(verbose)
    scraper = CharacterScraper(base_url=base_url)
    _scrape_and_write(
        scraper,
        output=output,
        workers=workers,
        delay=delay,
        timeout=timeout,
        retries=retries,
        progress=not no_progress,
    )


def _validate_separator(
    ctx: click.Context, param: click.Parameter, value: str
) -> str:
    if not value:
        raise click.BadParameter("must not be empty")
    return value


@cli.command()
@scrape_options
@click.option(
    "--date-separator",
    default=DEFAULT_DATE_SEPARATOR,
    callback=_validate_separator,
    show_default=True,
    help="Delimiter between the start and end date of a banner.",
)
@click.option(
    "--summary",
    is_flag=True,
    help="Print each collected banner after the run.",
)
def banners(
    output: str | None,
    workers: int,
    delay: float | None,
    timeout: float | None,
    retries: int,
    base_url: str | None,
    no_progress: bool,
    verbose: bool,
    date_separator: str,
    summary: bool,
) -> None:
    """Scrape every banner page of dblegends.net."""
    _configure_logging(verbose)
    scraper = BannerScraper(base_url=base_url, date_separator=date_separator)
    result = _scrape_and_write(
        scraper,
        output=output,
        workers=workers,
        delay=delay,
        timeout=timeout,
        retries=retries,
        progress=not no_progress,
        on_written=_print_banner_summary if summary else None,
    )
    logger.debug(f"{len(result.rejected)} banners without a title dropped")


# ------------------------------------------------------------------
# Runner
# ------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _delay_rates(delay: float) -> list[Rate]:
    """One request per ``delay`` seconds. Zero disables rate limiting."""
    interval_ms = Duration.SECOND * delay
    if interval_ms <= 0:
        return []
    return [Rate(1, interval_ms)]


def _scrape_and_write(
    scraper: BaseScraper[Any],
    output: str | None,
    workers: int,
    delay: float | None,
    timeout: float | None,
    retries: int,
    progress: bool,
    on_written: Callable[[RunResult[Any]], None] | None = None,
) -> RunResult[Any]:
    """Run a scraper and write its records.

    Records collected before an interruption are still written; the
    command then fails so the exit code reflects the partial run.

    Raises:
        click.ClickException: If the index or output stage fails, or the
            run was interrupted.
    """
    output_path = Path(output or scraper.output_filename)
    click.echo(f"Scraper: {scraper.__class__.__name__}")
    click.echo(f"Origin:  {scraper.origin}")

    if delay is None:
        rates = scraper.rate_limits
    else:
        rates = _delay_rates(delay)

    try:
        result = asyncio.run(
            _run_async(
                scraper,
                workers=workers,
                rates=rates,
                timeout=scraper.timeout if timeout is None else timeout,
                retries=retries,
                progress=progress,
            )
        )
    except IndexFetchException as e:
        raise click.ClickException(f"Index stage failed: {e}") from e

    try:
        write_records(result.records, output_path)
    except OutputException as e:
        raise click.ClickException(f"Output stage failed: {e}") from e

    click.echo(
        f"Wrote {len(result.records)} records to {output_path} "
        f"({len(result.failures)} failed)"
    )
    if on_written is not None:
        on_written(result)

    if result.error is not None:
        raise click.ClickException(str(result.error))
    click.echo("Done.")
    return result


async def _run_async(
    scraper: BaseScraper[Any],
    workers: int,
    rates: list[Rate],
    timeout: float,
    retries: int,
    progress: bool,
) -> RunResult[Any]:
    stop_event = asyncio.Event()
    bar = TqdmProgress(disable=not progress)

    async def on_task_complete(event: Any) -> None:
        await log_task_event(event)
        await bar.on_task_complete(event)

    previous_handler = signal.getsignal(signal.SIGINT)

    def handle_signal(signum: int, frame: Any) -> None:
        sig_name = signal.Signals(signum).name
        logger.info(
            f"Received {sig_name}, finishing in-flight pages and stopping..."
        )
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    try:
        async with PacedRequestManager(
            base_url=scraper.origin,
            rates=rates,
            timeout=timeout,
            user_agent=scraper.user_agent,
        ) as manager:
            driver = AsyncDriver(
                scraper,
                request_manager=manager,
                on_task_complete=on_task_complete,
                on_run_start=bar.on_run_start,
                on_run_complete=bar.on_run_complete,
                stop_event=stop_event,
                num_workers=workers,
                retries=retries,
            )
            return await driver.run()
    finally:
        signal.signal(signal.SIGINT, previous_handler)


def _print_banner_summary(result: RunResult[Banner]) -> None:
    click.echo("Banners:")
    for banner in result.records:
        click.echo(f"Title: {banner.title}")
        click.echo(f"Image URL: {banner.image_url}")
        click.echo(f"Start Date: {banner.start_date}")
        click.echo(f"End Date: {banner.end_date}")
        click.echo("Featured Characters:")
        for char in banner.featured_chars:
            click.echo(f"- Name: {char.name}, Image: {char.image}")
        click.echo()


if __name__ == "__main__":
    cli()
