"""
At most one in-flight asyncio task per owner, latest start wins.

Starting new work cancels the previous task and bumps a generation counter;
a task that finishes after it was superseded never reaches its callbacks.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger("dynaforms.logic.latest_task")


def has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class LatestTask:
    def __init__(self, name: str):
        self.name = name
        self._generation = 0
        self._task: Optional["asyncio.Task[None]"] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Cancels the running task; its result, if any, is discarded."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def start(
        self,
        work: Callable[[], Awaitable[Any]],
        on_result: Callable[[Any], None],
        on_error: Callable[[Exception], None],
    ) -> bool:
        """
        Supersedes any running task with ``work()``.

        Returns False, starting nothing, when there is no running event loop.
        """
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        self._task = loop.create_task(self._run(self._generation, work, on_result, on_error))
        return True

    async def _run(
        self,
        generation: int,
        work: Callable[[], Awaitable[Any]],
        on_result: Callable[[Any], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        try:
            result = await work()
        except asyncio.CancelledError:
            raise
        except Exception as error:
            if generation == self._generation:
                self._task = None
                on_error(error)
            return

        if generation != self._generation:
            logger.debug("stale_result_discarded", extra={"task": self.name, "generation": generation})
            return
        self._task = None
        on_result(result)
