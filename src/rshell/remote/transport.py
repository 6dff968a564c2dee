"""Low-level TCP helpers on top of the asyncio socket API.

The shell talks to the server with plain non-blocking sockets rather than
streams so that a socket can be duplicated and handed to a background
drain that owns its own descriptor.
"""

from __future__ import annotations

import asyncio
import logging
import socket

logger = logging.getLogger(__name__)


class _NoData:
    """Sentinel returned by :func:`recv_nonblock` when the wait timed out."""

    def __repr__(self) -> str:
        return "NO_DATA"


NO_DATA = _NoData()


class RemoteConnectError(Exception):
    """Raised when a TCP connection to the server cannot be established."""

    def __init__(self, host: str, port: int, code: int, reason: str = "") -> None:
        self.host = host
        self.port = port
        self.code = code
        super().__init__(f"Cannot connect to {host}:{port} (error code: {code})")
        self.reason = reason


class TransportError(Exception):
    """Raised when writing to the server fails."""


async def connect_by_port(host: str, port: int, timeout: float = 10.0) -> socket.socket:
    """Open a non-blocking TCP connection to ``host:port``.

    Every address the name resolves to is tried in order.

    Raises:
        RemoteConnectError: with the errno of the last failure, or -1 when
            there is none (timeouts).
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise RemoteConnectError(host, port, e.errno or -1, str(e)) from e

    last_error: OSError | None = None
    for family, type_, proto, _, address in infos:
        sock = socket.socket(family, type_, proto)
        sock.setblocking(False)
        try:
            await asyncio.wait_for(loop.sock_connect(sock, address), timeout)
        except (OSError, asyncio.TimeoutError) as e:
            sock.close()
            last_error = e
            logger.debug("Connect to %s failed: %s", address, e)
            continue
        return sock

    code = getattr(last_error, "errno", None) or -1
    raise RemoteConnectError(host, port, code, str(last_error))


async def recv_nonblock(
    sock: socket.socket, bufsize: int, timeout: float
) -> bytes | _NoData:
    """Read up to ``bufsize`` bytes, waiting at most ``timeout`` seconds.

    Returns:
        The bytes read, ``b""`` when the peer closed the stream, or
        :data:`NO_DATA` when nothing arrived in time.

    Raises:
        OSError: on a read error.
    """
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(loop.sock_recv(sock, bufsize), timeout)
    except asyncio.TimeoutError:
        return NO_DATA


async def send_all(sock: socket.socket, data: bytes) -> None:
    """Write the whole buffer.

    Raises:
        TransportError: if the write fails.
    """
    loop = asyncio.get_running_loop()
    try:
        await loop.sock_sendall(sock, data)
    except OSError as e:
        raise TransportError(f"write to remote server: {e}") from e
