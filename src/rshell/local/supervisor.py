"""Supervisor for detached background work.

Every background local command and background response drain runs as an
asyncio task spawned here. Finished tasks are reaped by a done-callback
that discards the result and logs failures; nobody else waits on them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class Supervisor:
    """Tracks detached tasks until they finish."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def outstanding(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        """Start ``coro`` as a detached task and return immediately."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._reap)
        logger.debug("Spawned background task %s", task.get_name())
        return task

    def _reap(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Background task %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed: %s", task.get_name(), exc, exc_info=exc,
            )
        else:
            logger.debug("Reaped background task %s", task.get_name())

    async def join(self) -> None:
        """Wait until every task spawned so far has finished.

        The shell itself never joins; this is for callers (and tests) that
        need background work settled before they look at its output.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel whatever is still running and wait for it to unwind.

        Only the waiting tasks are cancelled. Background local children
        are started detached and keep running after the shell exits.
        """
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info("Cancelling %d background task(s)", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
