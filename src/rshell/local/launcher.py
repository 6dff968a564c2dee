"""Process launcher for external local commands.

A command is first executed exactly as given, then under each directory
of the search path in turn. ``$PATH`` is never consulted; a bare name
given directly resolves against the working directory, as ``execve``
would.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import subprocess
from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_PATH: tuple[str, ...] = ("/bin", "/usr/bin")

# How often a detached child is polled for its exit status.
DETACHED_POLL_INTERVAL = 0.05


class ProcessLauncher:
    """Runs one child process per invocation and waits for it.

    The caller that awaits :meth:`run` owns the child. Background runs
    are wrapped in a task and handed to the supervisor instead, so the
    two never compete for the same completion.
    """

    def __init__(
        self,
        search_path: Sequence[str] = DEFAULT_SEARCH_PATH,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._search_path = tuple(search_path)
        self._env = dict(env) if env is not None else None

    @property
    def search_path(self) -> tuple[str, ...]:
        return self._search_path

    def candidates(self, command: str) -> list[str]:
        """Executable paths to try for ``command``, in order."""
        direct = command if os.sep in command else os.path.join(os.curdir, command)
        return [direct] + [
            f"{directory.rstrip(os.sep)}{os.sep}{command}" for directory in self._search_path
        ]

    async def run(self, argv: Sequence[str], detached: bool = False) -> int:
        """Execute ``argv`` and return the child's exit status.

        Args:
            argv: Command name followed by its arguments.
            detached: Start the child in its own session, outside the
                event loop's process transports. Cancelling the waiting
                task (or closing the loop) then leaves the child running
                to completion instead of killing it.

        Returns:
            The exit code, or the negated signal number if the child was
            killed by a signal. If no candidate could be executed the
            errno of the last failed attempt is returned.
        """
        if not argv:
            raise ValueError("argv must contain at least the command name")

        command = argv[0]
        last_error: OSError | None = None
        for candidate in self.candidates(command):
            logger.debug("Attempting to run (%s) %s", candidate, list(argv[1:]))
            try:
                if detached:
                    return await self._run_detached(argv, candidate)
                proc = await asyncio.create_subprocess_exec(
                    *argv, executable=candidate, env=self._env,
                )
            except OSError as e:
                last_error = e
                continue

            status = await proc.wait()
            logger.debug("%s (pid=%d) exited with status %d", candidate, proc.pid, status)
            return status

        code = (last_error.errno if last_error else None) or errno.ENOENT
        logger.error("exec %s: %s", command, os.strerror(code))
        return code

    async def _run_detached(self, argv: Sequence[str], candidate: str) -> int:
        proc = subprocess.Popen(
            list(argv), executable=candidate, env=self._env, start_new_session=True,
        )
        logger.debug("%s started detached (pid=%d)", candidate, proc.pid)
        try:
            while proc.poll() is None:
                await asyncio.sleep(DETACHED_POLL_INTERVAL)
        except asyncio.CancelledError:
            logger.debug("Stopped waiting for %s (pid=%d); it keeps running", candidate, proc.pid)
            raise
        logger.debug("%s (pid=%d) exited with status %d", candidate, proc.pid, proc.returncode)
        return proc.returncode
