"""Connection manager for the remote command-execution server.

Owns the one :class:`~rshell.domain.models.Connection` record. The socket
is opened lazily on the first remote command (or when keepalive is turned
on) and closed after each response unless keepalive is active.
"""

from __future__ import annotations

import logging
import socket

from rshell.domain.models import Connection
from rshell.remote.transport import (
    RemoteConnectError,
    TransportError,
    connect_by_port,
    send_all,
)

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Lazily connects to ``host:port`` and keeps at most one socket open.

    Usage::

        manager = ConnectionManager("localhost", 8001)
        if await manager.send("ls -l"):
            await drain_sync(manager, sys.stdout)
    """

    def __init__(
        self,
        host: str,
        port: int,
        keepalive: bool = False,
        connect_timeout: float = 10.0,
    ) -> None:
        self._conn = Connection(host=host, port=port, keepalive=keepalive)
        self._connect_timeout = connect_timeout
        self.connects = 0
        self.closes = 0

    @property
    def connection(self) -> Connection:
        return self._conn

    @property
    def is_open(self) -> bool:
        return self._conn.is_open

    @property
    def keepalive(self) -> bool:
        return self._conn.keepalive

    @property
    def sock(self) -> socket.socket | None:
        return self._conn.sock

    async def connect(self) -> socket.socket | None:
        """Return the open socket, connecting first if there is none.

        On failure the error (with its code) is logged and None returned;
        the connection stays closed.
        """
        if self._conn.sock is not None:
            return self._conn.sock

        try:
            sock = await connect_by_port(
                self._conn.host, self._conn.port, timeout=self._connect_timeout
            )
        except RemoteConnectError as e:
            logger.error("%s", e)
            return None

        self._conn.sock = sock
        self.connects += 1
        logger.debug(
            "Connected to remote server at %s:%d (fd=%d)",
            self._conn.host, self._conn.port, sock.fileno(),
        )
        return sock

    def close(self) -> None:
        """Close the socket if one is open."""
        if self._conn.sock is None:
            return
        try:
            self._conn.sock.close()
        finally:
            self._conn.sock = None
            self.closes += 1
        logger.debug("Remote connection closed")

    async def send(self, line: str) -> bool:
        """Send one command line followed by a single newline.

        Connects first if needed. A failed write closes the connection;
        no partial-write retry is attempted.

        Returns:
            True if the whole line was written.
        """
        sock = await self.connect()
        if sock is None:
            return False

        data = (line.rstrip("\r\n") + "\n").encode()
        try:
            await send_all(sock, data)
        except TransportError as e:
            logger.error("%s", e)
            self.close()
            return False

        logger.debug("Sent to remote: %r", data)
        return True

    def detach(self) -> socket.socket | None:
        """Hand a duplicate of the live socket to a background drain.

        The caller owns the returned socket and must close it. Without
        keepalive the manager's own copy is closed here, so the next
        command opens a fresh connection while the duplicate keeps the
        old stream alive for the background reader.
        """
        if self._conn.sock is None:
            return None
        dup = self._conn.sock.dup()
        dup.setblocking(False)
        if not self._conn.keepalive:
            self.close()
        return dup

    async def enable_keepalive(self) -> bool:
        """Turn keepalive on and connect right away.

        Returns:
            False if the initial connection could not be established.
            Keepalive stays on either way.
        """
        self._conn.keepalive = True
        return await self.connect() is not None

    def disable_keepalive(self) -> bool:
        """Turn keepalive off and close the connection.

        Returns:
            True if a connection was open.
        """
        was_open = self._conn.is_open
        self.close()
        self._conn.keepalive = False
        return was_open
