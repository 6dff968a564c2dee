"""Shared test fixtures for the rshell test suite.

Provides settings tuned for fast tests, a scripted loopback TCP server
standing in for the command-execution server, and mock collaborators
for the dispatcher.
"""

from __future__ import annotations

import asyncio
import io
import socket
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from rshell.config.settings import Settings, ShellConfig
from rshell.local.launcher import ProcessLauncher
from rshell.remote.connection import ConnectionManager

# Short enough to keep the suite fast, long enough for loopback traffic.
TEST_IDLE_TIMEOUT = 0.3


# ---------------------------------------------------------------------------
# Scripted server
# ---------------------------------------------------------------------------


class ScriptedServer:
    """Loopback stand-in for the command-execution server.

    Records every line it receives and answers each one with ``reply``.
    With ``close_after`` set it closes the connection ``close_delay``
    seconds after replying; otherwise it stays silent and keeps the
    connection open.
    """

    def __init__(
        self,
        reply: bytes = b"",
        close_after: bool = False,
        close_delay: float = 0.0,
    ) -> None:
        self.reply = reply
        self.close_after = close_after
        self.close_delay = close_delay
        self.received: list[bytes] = []
        self.connections = 0
        self.port = 0
        self._server: asyncio.Server | None = None
        self._writers: list[asyncio.StreamWriter] = []

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        for writer in self._writers:
            writer.close()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.append(writer)
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                self.received.append(line)
                if self.reply:
                    writer.write(self.reply)
                    await writer.drain()
                if self.close_after:
                    await asyncio.sleep(self.close_delay)
                    break
        except ConnectionError:
            pass
        finally:
            writer.close()


@pytest_asyncio.fixture
async def scripted_server():
    """Factory fixture: ``await scripted_server(reply=..., close_after=...)``."""
    servers: list[ScriptedServer] = []

    async def _start(**kwargs) -> ScriptedServer:
        server = ScriptedServer(**kwargs)
        await server.start()
        servers.append(server)
        return server

    yield _start

    for server in servers:
        await server.stop()


@pytest.fixture
def unused_port() -> int:
    """A loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


# ---------------------------------------------------------------------------
# Settings / output
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Default settings with a short idle timeout."""
    return Settings(shell=ShellConfig(idle_timeout=TEST_IDLE_TIMEOUT))


@pytest.fixture
def out() -> io.StringIO:
    """Captured user-visible output stream."""
    return io.StringIO()


# ---------------------------------------------------------------------------
# Mock Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_manager() -> MagicMock:
    """A ConnectionManager double: sends succeed, nothing is open."""
    manager = MagicMock(spec=ConnectionManager)
    manager.keepalive = False
    manager.is_open = False
    manager.send = AsyncMock(return_value=True)
    manager.enable_keepalive = AsyncMock(return_value=True)
    manager.disable_keepalive.return_value = False
    return manager


@pytest.fixture
def mock_launcher() -> MagicMock:
    """A ProcessLauncher double whose runs exit with status 0."""
    launcher = MagicMock(spec=ProcessLauncher)
    launcher.run = AsyncMock(return_value=0)
    return launcher
