"""Tokenizing and classifying input lines.

Syntax::

    ! name args...        local command (built-in or external)
    ! & name args...      external local command in the background
    name args...          remote command
    & name args...        remote command in the background
"""

from __future__ import annotations

from rshell.domain.models import Command, CommandRoute

INTERNAL_COMMANDS = frozenset({"exit", "keepalive", "close", "more"})


class CommandSyntaxError(ValueError):
    """Raised for a line that names no command after a prefix token."""


def tokenize(line: str) -> list[str]:
    """Split a line into whitespace-separated tokens."""
    return line.split()


def parse_command(
    tokens: list[str],
    local_prefix: str = "!",
    background_token: str = "&",
) -> Command:
    """Classify a non-empty token list.

    Built-in names are recognized only right after the local prefix;
    ``! & exit`` runs an external program called ``exit``.

    Raises:
        CommandSyntaxError: if a prefix or background token is not
            followed by a command name.
    """
    if not tokens:
        raise ValueError("cannot classify an empty line")

    if tokens[0] == local_prefix:
        rest = tokens[1:]
        if not rest:
            raise CommandSyntaxError(f"{local_prefix} expects a command")
        if rest[0] in INTERNAL_COMMANDS:
            return Command(tokens=rest, route=CommandRoute.LOCAL_INTERNAL)
        background, rest = _split_background(rest, background_token)
        return Command(tokens=rest, route=CommandRoute.LOCAL_EXTERNAL, background=background)

    background, rest = _split_background(tokens, background_token)
    return Command(tokens=rest, route=CommandRoute.REMOTE, background=background)


def _split_background(tokens: list[str], background_token: str) -> tuple[bool, list[str]]:
    if tokens[0] != background_token:
        return False, tokens
    if len(tokens) < 2:
        raise CommandSyntaxError(f"{background_token} expects a command")
    return True, tokens[1:]
