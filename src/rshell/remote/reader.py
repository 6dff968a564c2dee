"""Response drains for remote commands.

The server's response has no framing, so completion is inferred. A
foreground drain treats an idle timeout as "response complete" so the
shell never hangs. A background drain treats the same timeout as "still
working" and ends only when the server closes the stream or a read
fails.
"""

from __future__ import annotations

import codecs
import logging
import socket
from typing import TextIO

from rshell.domain.models import DrainResult
from rshell.remote.connection import ConnectionManager
from rshell.remote.transport import NO_DATA, recv_nonblock

logger = logging.getLogger(__name__)

BACKGROUND_DONE_MARKER = "\n[Background command completed]\n"

DEFAULT_IDLE_TIMEOUT = 5.0
DEFAULT_BUFSIZE = 1024


def _echo(out: TextIO, decoder: codecs.IncrementalDecoder, data: bytes) -> None:
    text = decoder.decode(data)
    if text:
        out.write(text)
        out.flush()


async def drain_sync(
    manager: ConnectionManager,
    out: TextIO,
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
    bufsize: int = DEFAULT_BUFSIZE,
) -> DrainResult:
    """Print the response on the manager's socket until it goes quiet.

    Returns:
        COMPLETE after an idle timeout; SEVERED if the server closed the
        connection; FAILED on a read error. The manager is closed in the
        last two cases, and after COMPLETE unless keepalive is on.
    """
    sock = manager.sock
    if sock is None:
        logger.error("No remote connection to read from")
        return DrainResult.FAILED

    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    total = 0
    while True:
        try:
            data = await recv_nonblock(sock, bufsize, idle_timeout)
        except OSError as e:
            logger.error("recv from remote server: %s", e)
            manager.close()
            return DrainResult.FAILED

        if data is NO_DATA:
            break
        if not data:
            out.write(decoder.decode(b"", final=True))
            out.flush()
            logger.debug("Remote server closed the connection after %d bytes", total)
            manager.close()
            return DrainResult.SEVERED

        total += len(data)
        _echo(out, decoder, data)

    out.write(decoder.decode(b"", final=True) + "\n")
    out.flush()
    logger.debug("Response complete (%d bytes)", total)

    if not manager.keepalive:
        manager.close()
    return DrainResult.COMPLETE


async def drain_async(
    sock: socket.socket,
    out: TextIO,
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
    bufsize: int = DEFAULT_BUFSIZE,
) -> None:
    """Print a background response until the server closes the stream.

    Owns ``sock`` (a duplicate made by :meth:`ConnectionManager.detach`)
    and closes it when done. Idle timeouts only mean "keep waiting".
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while True:
            try:
                data = await recv_nonblock(sock, bufsize, idle_timeout)
            except OSError as e:
                logger.error("recv from remote server: %s", e)
                break
            if data is NO_DATA:
                continue
            if not data:
                break
            _echo(out, decoder, data)

        out.write(decoder.decode(b"", final=True) + BACKGROUND_DONE_MARKER)
        out.flush()
    finally:
        sock.close()
