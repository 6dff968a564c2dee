"""Domain models for rshell.

Core data structures and enumerations shared by the dispatcher, the
remote relay and the local launcher. All models use Pydantic v2.
"""

from rshell.domain.models import (
    Command,
    CommandRoute,
    Connection,
    DrainResult,
    ShellState,
)

__all__ = [
    "Command",
    "CommandRoute",
    "Connection",
    "DrainResult",
    "ShellState",
]
