"""Shared fixtures for the scraper tests."""

import asyncio
import socket
import threading
import time
from collections.abc import Generator
from contextlib import closing

import pytest
from aiohttp import web

from tests.mock_server import (
    BANNERS,
    CHARACTERS,
    create_app,
    generate_banner_html,
    generate_character_html,
)


@pytest.fixture
def goku_html() -> str:
    """HTML of the first mock character (one unique ability, LF, no ultra)."""
    return generate_character_html(CHARACTERS[0])


@pytest.fixture
def piccolo_html() -> str:
    """HTML of the mock character with zenkai, ultra and ultimate blocks."""
    return generate_character_html(CHARACTERS[1])


@pytest.fixture
def banner_html() -> str:
    """HTML of the first mock banner (a two-part period)."""
    return generate_banner_html(BANNERS[0])


# =============================================================================
# aiohttp test server fixtures
# =============================================================================


def find_free_port() -> int:
    """Find a free port on localhost.

    Returns:
        An available port number.
    """
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class AioHttpTestServer:
    """Wrapper to run aiohttp server in a background thread."""

    def __init__(self, app: web.Application, port: int) -> None:
        self.app = app
        self.port = port
        self.host = "127.0.0.1"
        self._loop: asyncio.AbstractEventLoop | None = None
        self._runner: web.AppRunner | None = None
        self._thread: threading.Thread | None = None
        self._started = threading.Event()

    @property
    def url(self) -> str:
        """Get the base URL of the server."""
        return f"http://{self.host}:{self.port}"

    def start(self) -> None:
        """Start the server in a background thread."""
        self._thread = threading.Thread(target=self._run_server, daemon=True)
        self._thread.start()
        self._started.wait(timeout=5.0)

    def _run_server(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        async def start() -> None:
            self._runner = web.AppRunner(self.app)
            await self._runner.setup()
            site = web.TCPSite(self._runner, self.host, self.port)
            await site.start()

        self._loop.run_until_complete(start())
        self._started.set()
        self._loop.run_forever()

    def stop(self) -> None:
        """Stop the server and clean up resources."""
        if self._loop and self._runner:
            runner = self._runner
            future = asyncio.run_coroutine_threadsafe(
                runner.cleanup(), self._loop
            )
            future.result(timeout=5.0)

        if self._loop:
            self._loop.call_soon_threadsafe(self._loop.stop)

        if self._thread:
            self._thread.join(timeout=2.0)


@pytest.fixture
def mock_site() -> Generator[AioHttpTestServer, None, None]:
    """Create and start an aiohttp test server serving both mock sites.

    Yields:
        AioHttpTestServer instance with the mock app running.
    """
    server = AioHttpTestServer(create_app(), find_free_port())
    server.start()
    # Give the listener a moment to accept connections
    time.sleep(0.05)
    yield server
    server.stop()


@pytest.fixture
def server_url(mock_site: AioHttpTestServer) -> str:
    """Get the base URL of the test server.

    Returns:
        The base URL string (e.g., "http://127.0.0.1:8080").
    """
    return mock_site.url
