"""Core domain models for the rshell system.

These models represent the data flowing through the shell: a classified
command built from one input line, the single remote connection record,
and the states and outcomes reported by the dispatcher and the response
reader.
"""

from __future__ import annotations

import enum
import socket

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class CommandRoute(str, enum.Enum):
    """Where a command is executed."""

    LOCAL_INTERNAL = "local_internal"  # Built-in, runs in-process
    LOCAL_EXTERNAL = "local_external"  # Child process via the launcher
    REMOTE = "remote"  # Forwarded to the command-execution server


class DrainResult(str, enum.Enum):
    """How a foreground response drain ended."""

    COMPLETE = "complete"  # Idle timeout with no further data
    SEVERED = "severed"  # Peer closed the stream
    FAILED = "failed"  # Read error


class ShellState(str, enum.Enum):
    """States of the command dispatcher."""

    IDLE = "idle"
    READING_INPUT = "reading_input"
    ROUTING = "routing"
    AWAITING_LOCAL_RESULT = "awaiting_local_result"
    AWAITING_REMOTE_RESULT = "awaiting_remote_result"


# ---------------------------------------------------------------------------
# Command Models
# ---------------------------------------------------------------------------


class Command(BaseModel):
    """One classified input line.

    ``tokens`` holds the arguments with the local prefix and background
    token already removed.
    """

    model_config = ConfigDict(frozen=True)

    tokens: list[str] = Field(min_length=1, description="Argument tokens, command name first")
    route: CommandRoute = Field(description="Where the command is executed")
    background: bool = Field(default=False, description="Whether the dispatcher returns immediately")

    @property
    def name(self) -> str:
        return self.tokens[0]

    @property
    def args(self) -> list[str]:
        return self.tokens[1:]

    def text(self) -> str:
        """The tokens rejoined into a single line, as sent to the server."""
        return " ".join(self.tokens)


# ---------------------------------------------------------------------------
# Connection Models
# ---------------------------------------------------------------------------


class Connection(BaseModel):
    """The single remote connection record.

    At most one live socket exists at a time. Without keepalive the
    socket is closed as soon as a response has been drained.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    host: str = Field(description="Remote execution server host name")
    port: int = Field(ge=1, le=65535, description="Remote execution server port")
    keepalive: bool = Field(default=False, description="Keep the socket open across commands")
    sock: socket.socket | None = Field(default=None, description="Live socket, if connected")

    @property
    def is_open(self) -> bool:
        return self.sock is not None
