"""The command dispatcher: read a line, route it, run it, repeat.

Runs as a single asyncio loop. Foreground commands are awaited in place;
background commands are handed to the :class:`Supervisor` and the prompt
comes back at once.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from collections.abc import Callable, Sequence
from typing import Any, TextIO

from rshell.config.settings import Settings
from rshell.domain.models import Command, CommandRoute, DrainResult, ShellState
from rshell.local.launcher import ProcessLauncher
from rshell.local.pager import page_file
from rshell.local.supervisor import Supervisor
from rshell.remote.connection import ConnectionManager
from rshell.remote.reader import drain_async, drain_sync
from rshell.shell.commands import CommandSyntaxError, parse_command, tokenize

logger = logging.getLogger(__name__)

BANNER = "Remote shell v2.0."

ReadLine = Callable[[], str | None]


def stdin_readline() -> str | None:
    """Read one line from stdin without its terminator; None at EOF."""
    line = sys.stdin.readline()
    if not line:
        return None
    return line.rstrip("\r\n")


async def read_blocking(func: Callable[..., Any], *args: Any) -> Any:
    """Run a blocking stdin reader on a daemon thread and await its result.

    A daemon thread still blocked in ``readline`` does not hold up
    interpreter exit, so Ctrl-C at the prompt ends the shell at once.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()

    def _settle(result: Any, exc: Exception | None) -> None:
        if future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)

    def _target() -> None:
        try:
            result, exc = func(*args), None
        except Exception as e:
            result, exc = None, e
        try:
            loop.call_soon_threadsafe(_settle, result, exc)
        except RuntimeError:
            # Loop already closed; nobody is waiting for this line.
            logger.debug("Input arrived after the event loop closed")

    threading.Thread(target=_target, daemon=True, name="rshell-input").start()
    return await future


class Shell:
    """The interactive shell loop.

    Usage::

        shell = Shell(settings, ConnectionManager(host, port), ProcessLauncher())
        asyncio.run(shell.run())
    """

    def __init__(
        self,
        settings: Settings,
        manager: ConnectionManager,
        launcher: ProcessLauncher,
        supervisor: Supervisor | None = None,
        out: TextIO | None = None,
        read_line: ReadLine | None = None,
    ) -> None:
        self._settings = settings
        self._manager = manager
        self._launcher = launcher
        self._supervisor = supervisor or Supervisor()
        self._out = out or sys.stdout
        self._read_line = read_line or stdin_readline
        self.state = ShellState.IDLE

    @property
    def supervisor(self) -> Supervisor:
        return self._supervisor

    def _say(self, text: str) -> None:
        self._out.write(text + "\n")
        self._out.flush()

    def print_banner(self) -> None:
        terminal = self._settings.terminal
        remote = self._settings.remote
        self._say(BANNER)
        self._say(f"Terminal set to {terminal.hsize}x{terminal.vsize}.")
        self._say(f"Remote server: {remote.host}:{remote.port}")

    async def run(self) -> int:
        """Run until end of input or ``! exit``.

        Returns:
            The process exit code (always 0).
        """
        self.print_banner()
        try:
            while True:
                self.state = ShellState.IDLE
                self._out.write(self._settings.shell.prompt)
                self._out.flush()

                self.state = ShellState.READING_INPUT
                line = await read_blocking(self._read_line)
                if line is None:
                    self._say("\nBye")
                    break
                if not await self.handle_line(line):
                    break
        finally:
            self._manager.close()
            await self._supervisor.shutdown()
            self.state = ShellState.IDLE
        return 0

    async def handle_line(self, line: str) -> bool:
        """Route and execute one input line.

        Returns:
            False if the shell should terminate.
        """
        self.state = ShellState.ROUTING
        try:
            return await self._route(line)
        finally:
            self.state = ShellState.IDLE

    async def _route(self, line: str) -> bool:
        cfg = self._settings.shell
        line = line.rstrip("\r\n")
        if len(line) > cfg.max_line_length:
            self._say(f"line too long (max {cfg.max_line_length} characters)")
            return True

        tokens = tokenize(line)
        if not tokens:
            return True

        try:
            command = parse_command(tokens, cfg.local_prefix, cfg.background_token)
        except CommandSyntaxError as e:
            self._say(str(e))
            return True

        if command.route is CommandRoute.LOCAL_INTERNAL:
            return await self._run_internal(command)
        if command.route is CommandRoute.LOCAL_EXTERNAL:
            await self._run_local(command)
        else:
            await self._run_remote(command)
        return True

    # ------------------------------------------------------------------
    # Built-ins
    # ------------------------------------------------------------------

    async def _run_internal(self, command: Command) -> bool:
        name = command.name
        if name == "exit":
            self._say("Bye")
            self._manager.close()
            return False

        if name == "keepalive":
            if self._manager.keepalive:
                self._say("Already in keepalive mode.")
            else:
                self._say(
                    "Keepalive mode enabled. "
                    f"Use '{self._settings.shell.local_prefix} close' to close the connection."
                )
                if not await self._manager.enable_keepalive():
                    self._say("Warning: Could not establish initial connection to remote server.")
        elif name == "close":
            if self._manager.disable_keepalive():
                self._say("Connection closed. Keepalive mode disabled.")
            else:
                self._say("No connection to close.")
        elif name == "more":
            await self._more(command.args)
        return True

    async def _more(self, paths: Sequence[str]) -> None:
        if not paths:
            self._say("more: too few arguments")
            return
        terminal = self._settings.terminal
        for path in paths:
            await read_blocking(
                page_file,
                path, terminal.hsize, terminal.vsize, self._out, self._read_line,
            )

    # ------------------------------------------------------------------
    # External local commands
    # ------------------------------------------------------------------

    async def _run_local(self, command: Command) -> None:
        if command.background:
            self._supervisor.spawn(
                self._run_local_background(command.tokens), name=f"local:{command.name}",
            )
            return

        self.state = ShellState.AWAITING_LOCAL_RESULT
        status = await self._launcher.run(command.tokens)
        if status != 0:
            self._say(f"{command.name} completed with a non-null exit code ({status})")

    async def _run_local_background(self, argv: list[str]) -> None:
        token = self._settings.shell.background_token
        status = await self._launcher.run(argv, detached=True)
        self._say(f"{token} {argv[0]} done ({status})")
        if status != 0:
            self._say(f"{token} {argv[0]} completed with a non-null exit code")

    # ------------------------------------------------------------------
    # Remote commands
    # ------------------------------------------------------------------

    async def _run_remote(self, command: Command) -> None:
        cfg = self._settings.shell
        line = command.text()
        logger.debug(
            "Remote %s command: %s", "background" if command.background else "foreground", line,
        )

        self.state = ShellState.AWAITING_REMOTE_RESULT
        if not await self._manager.send(line):
            self._say("Failed to send remote command")
            return

        if command.background:
            sock = self._manager.detach()
            if sock is None:
                self._say("Failed to send remote command")
                return
            self._supervisor.spawn(
                drain_async(sock, self._out, cfg.idle_timeout, cfg.recv_bufsize),
                name=f"remote:{command.name}",
            )
            return

        result = await drain_sync(self._manager, self._out, cfg.idle_timeout, cfg.recv_bufsize)
        if result is DrainResult.SEVERED:
            self._say("Connection closed by remote server.")
        elif result is DrainResult.FAILED:
            self._say("Lost connection to remote server.")
