from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any, TypeVar, cast

if TYPE_CHECKING:
    from collections.abc import Coroutine

_T = TypeVar("_T")
log = logging.getLogger(__name__)


class BackgroundTasks:
    """Track controller fetch/write tasks so they can be drained or cancelled."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[object]] = set()

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def spawn(
        self,
        coro: Coroutine[Any, Any, _T],
        *,
        name: str | None = None,
    ) -> asyncio.Task[_T]:
        """Schedule a coroutine on the running loop and track it until it finishes."""
        task = asyncio.create_task(coro, name=name)
        tracked = cast("asyncio.Task[object]", task)
        self._tasks.add(tracked)
        tracked.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[object]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        with contextlib.suppress(asyncio.CancelledError):
            exc = task.exception()
        if exc is None:
            return
        log.error(
            "Background task failed",
            extra={"task_name": task.get_name()},
            exc_info=(type(exc), exc, exc.__traceback__),
        )

    async def wait_idle(self) -> None:
        """Wait until every tracked task, including ones spawned meanwhile, is done."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def shutdown(self, *, timeout: float = 2.0) -> None:
        """Cancel tracked tasks and wait briefly for them to unwind."""
        pending = [task for task in self._tasks if not task.done()]
        if not pending:
            return

        for task in pending:
            task.cancel()

        done, _pending = await asyncio.wait(pending, timeout=timeout)
        if done:
            await asyncio.gather(*done, return_exceptions=True)
