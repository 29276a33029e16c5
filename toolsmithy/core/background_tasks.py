"""Fire-and-forget task tracking for lifecycle managers.

Each lifecycle manager owns one ``BackgroundTaskManager``. Executions are
scheduled through it so that ``join`` can wait for the manager to go idle
and ``shutdown`` can bound how long a stuck tool keeps the process alive.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from toolsmithy.utils.logger import get_logger

logger = get_logger("core.background")


class BackgroundTaskManager:
    """Owns a set of tasks that nobody awaits directly."""

    def __init__(self, owner: str | None = None) -> None:
        self.owner = owner
        self._tasks: set[asyncio.Task[None]] = set()

    def _pending(self) -> list[asyncio.Task[None]]:
        return [t for t in self._tasks if not t.done()]

    async def _run(self, coro: Coroutine[Any, Any, None], label: str) -> None:
        try:
            await asyncio.sleep(0)
        except asyncio.CancelledError:
            # Never started; close so the coroutine is not reported as unawaited
            coro.close()
            raise
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Background task failed",
                owner=self.owner,
                task_name=label,
                error=str(e),
                exc_info=True,
            )

    def create_task(
        self, coro: Coroutine[Any, Any, None], name: str | None = None
    ) -> asyncio.Task[None]:
        """Schedule ``coro`` and return immediately.

        The coroutine body runs only after the caller yields, so whatever the
        caller does right after scheduling happens first. Exceptions are
        logged, not propagated. Needs a running event loop.
        """
        label = name or "unnamed"
        task: asyncio.Task[None] = asyncio.ensure_future(self._run(coro, label))
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.debug(
            "Scheduled background task",
            owner=self.owner,
            task_name=label,
            active_tasks=len(self._tasks),
        )
        return task

    async def join(self) -> None:
        """Return once no tracked task is left, including follow-ups.

        Cancelling ``join`` does not cancel the tasks.
        """
        while self._tasks:
            await asyncio.wait(list(self._tasks))

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Wait up to ``timeout`` seconds, then cancel whatever is still running."""
        if not self._tasks:
            return

        logger.info("Draining background tasks", owner=self.owner, count=len(self._tasks))
        try:
            await asyncio.wait_for(self.join(), timeout=timeout)
        except TimeoutError:
            stuck = self._pending()
            logger.warning(
                "Background tasks still running, cancelling",
                owner=self.owner,
                remaining=len(stuck),
            )
            self.cancel_all()
            not_done: set[asyncio.Task[None]] = set()
            if stuck:
                _, not_done = await asyncio.wait(stuck, timeout=1.0)
            if not_done:
                logger.error(
                    "Tasks ignored cancellation",
                    owner=self.owner,
                    remaining=len(not_done),
                )

        self._tasks.clear()
        logger.debug("Background tasks drained", owner=self.owner)

    @property
    def active_count(self) -> int:
        return len(self._pending())

    @property
    def has_tasks(self) -> bool:
        return bool(self._tasks)

    def cancel_all(self) -> None:
        """Request cancellation of every pending task without waiting."""
        for task in self._pending():
            task.cancel()
