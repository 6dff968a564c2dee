"""Tests for the foreground and background response drains."""

from __future__ import annotations

import asyncio
import io
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rshell.domain.models import DrainResult
from rshell.remote.connection import ConnectionManager
from rshell.remote.reader import BACKGROUND_DONE_MARKER, drain_async, drain_sync
from rshell.remote.transport import NO_DATA


class TestDrainSync:
    @pytest.mark.asyncio
    async def test_idle_timeout_completes_and_closes(self, scripted_server) -> None:
        server = await scripted_server(reply=b"a.txt\nb.txt")
        manager = ConnectionManager("127.0.0.1", server.port)
        out = io.StringIO()

        assert await manager.send("ls -l")
        result = await drain_sync(manager, out, idle_timeout=0.3)

        assert result is DrainResult.COMPLETE
        assert out.getvalue() == "a.txt\nb.txt\n"
        assert not manager.is_open

    @pytest.mark.asyncio
    async def test_keepalive_leaves_connection_open(self, scripted_server) -> None:
        server = await scripted_server(reply=b"done")
        manager = ConnectionManager("127.0.0.1", server.port, keepalive=True)
        out = io.StringIO()

        await manager.send("true")
        assert await drain_sync(manager, out, idle_timeout=0.2) is DrainResult.COMPLETE
        assert manager.is_open
        manager.close()

    @pytest.mark.asyncio
    async def test_peer_close_severs_connection(self, scripted_server) -> None:
        server = await scripted_server(reply=b"partial", close_after=True)
        manager = ConnectionManager("127.0.0.1", server.port, keepalive=True)
        out = io.StringIO()

        await manager.send("cat big")
        result = await drain_sync(manager, out, idle_timeout=2.0)

        assert result is DrainResult.SEVERED
        assert out.getvalue() == "partial"
        assert not manager.is_open

    @pytest.mark.asyncio
    async def test_read_error_fails_and_closes(self, caplog: pytest.LogCaptureFixture) -> None:
        manager = ConnectionManager("127.0.0.1", 9)
        manager.connection.sock = MagicMock()
        with patch(
            "rshell.remote.reader.recv_nonblock",
            AsyncMock(side_effect=ConnectionResetError(104, "Connection reset by peer")),
        ):
            with caplog.at_level(logging.ERROR, logger="rshell"):
                result = await drain_sync(manager, io.StringIO())

        assert result is DrainResult.FAILED
        assert not manager.is_open
        assert "recv from remote server" in caplog.text

    @pytest.mark.asyncio
    async def test_multibyte_text_split_across_reads(self) -> None:
        manager = ConnectionManager("127.0.0.1", 9)
        manager.connection.sock = MagicMock()

        encoded = "héllo".encode()
        chunks = [encoded[:2], encoded[2:], NO_DATA]
        out = io.StringIO()
        with patch("rshell.remote.reader.recv_nonblock", AsyncMock(side_effect=chunks)):
            assert await drain_sync(manager, out) is DrainResult.COMPLETE
        assert out.getvalue() == "héllo\n"

    @pytest.mark.asyncio
    async def test_no_connection(self) -> None:
        manager = ConnectionManager("127.0.0.1", 9)
        assert await drain_sync(manager, io.StringIO()) is DrainResult.FAILED


class TestDrainAsync:
    @pytest.mark.asyncio
    async def test_idle_timeout_keeps_waiting_until_close(self, scripted_server) -> None:
        server = await scripted_server(reply=b"working...", close_after=True, close_delay=0.6)
        manager = ConnectionManager("127.0.0.1", server.port)
        out = io.StringIO()

        await manager.send("heavy-job")
        sock = manager.detach()
        task = asyncio.create_task(drain_async(sock, out, idle_timeout=0.1))

        # Several idle timeouts pass before the server closes.
        await asyncio.sleep(0.35)
        assert not task.done()
        assert out.getvalue() == "working..."

        await asyncio.wait_for(task, 5.0)
        assert out.getvalue() == "working..." + BACKGROUND_DONE_MARKER
        assert sock.fileno() == -1

    @pytest.mark.asyncio
    async def test_read_error_ends_drain(self) -> None:
        sock = MagicMock()
        out = io.StringIO()
        with patch(
            "rshell.remote.reader.recv_nonblock",
            AsyncMock(side_effect=[b"x", OSError(9, "Bad file descriptor")]),
        ):
            await drain_async(sock, out)
        assert out.getvalue() == "x" + BACKGROUND_DONE_MARKER
        sock.close.assert_called_once()
