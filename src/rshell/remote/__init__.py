"""Remote command relay for rshell.

Manages the single socket to the command-execution server and drains the
server's untyped response stream, either in the foreground (idle timeout
means done) or in a detached background task (only closure means done).

Public API:
    ConnectionManager -- owns the one Connection record
    drain_sync -- foreground response drain
    drain_async -- background response drain
"""

from rshell.remote.connection import ConnectionManager
from rshell.remote.reader import drain_async, drain_sync
from rshell.remote.transport import RemoteConnectError, TransportError

__all__ = [
    "ConnectionManager",
    "RemoteConnectError",
    "TransportError",
    "drain_async",
    "drain_sync",
]
