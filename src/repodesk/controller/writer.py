"""Debounced, per-path serialized content writes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from repodesk.controller.notify import log_notify
from repodesk.errors import WriteError
from repodesk.utils.background_tasks import BackgroundTasks

if TYPE_CHECKING:
    from collections.abc import Callable

    from repodesk.adapters.repository import RemoteRepositoryService
    from repodesk.controller.notify import Notify

log = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5

WriteListener: TypeAlias = "Callable[[str, str], None]"


@dataclass
class _PathState:
    content: str = ""
    seq: int = 0
    written_seq: int = 0
    attempted_seq: int = 0
    timer: asyncio.Task[None] | None = None
    inflight: asyncio.Task[None] | None = None
    flush_requested: bool = False
    last_error: WriteError | None = None

    @property
    def dirty(self) -> bool:
        return self.seq != self.written_seq

    @property
    def writing(self) -> bool:
        return self.inflight is not None and not self.inflight.done()


class DebouncedWriter:
    """Coalesce edit events into at most one outbound write per quiescence window.

    Timers are trailing-edge and per path. At most one write per path is in
    flight; a flush requested meanwhile is deferred and then sends whatever
    content is newest at that point. Failed writes are reported but never
    retried automatically.
    """

    def __init__(
        self,
        service: RemoteRepositoryService,
        *,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        notify: Notify | None = None,
        tasks: BackgroundTasks | None = None,
    ) -> None:
        self._service = service
        self._delay = max(delay, 0.0)
        self._notify = notify or log_notify
        self._tasks = tasks or BackgroundTasks()
        self._paths: dict[str, _PathState] = {}
        self._listeners: list[WriteListener] = []

    @property
    def delay(self) -> float:
        return self._delay

    def add_listener(self, listener: WriteListener) -> None:
        """Call ``listener(path, content)`` after each successful write."""
        self._listeners.append(listener)

    def pending_paths(self) -> list[str]:
        return [path for path, state in self._paths.items() if state.dirty or state.writing]

    def latest_content(self, path: str) -> str | None:
        """Content recorded for ``path`` that is not yet known to be persisted."""
        state = self._paths.get(path)
        return state.content if state else None

    def last_error(self, path: str) -> WriteError | None:
        state = self._paths.get(path)
        return state.last_error if state else None

    def on_content_change(self, path: str, content: str) -> None:
        """Record an edit and (re)start the quiescence timer for ``path``."""
        state = self._paths.setdefault(path, _PathState())
        state.content = content
        state.seq += 1
        if state.timer is not None:
            state.timer.cancel()
        state.timer = self._tasks.spawn(self._debounce(path, state), name=f"debounce:{path}")

    async def _debounce(self, path: str, state: _PathState) -> None:
        await asyncio.sleep(self._delay)
        state.timer = None
        self.flush(path)

    def flush(self, path: str) -> asyncio.Task[None] | None:
        """Send the latest recorded content for ``path`` now.

        Returns a task that completes once the content recorded at call time
        has been sent, or None when there is nothing new to send. While a
        write is in flight the send is deferred until it settles.
        """
        state = self._paths.get(path)
        if state is None:
            return None
        if state.timer is not None:
            state.timer.cancel()
            state.timer = None
        if state.writing:
            state.flush_requested = True
            return self._tasks.spawn(self._settle(state), name=f"settle:{path}")
        if not state.dirty:
            return None
        state.inflight = self._tasks.spawn(self._write(path, state), name=f"write:{path}")
        return state.inflight

    async def flush_all(self) -> None:
        """Flush every path with unsent content and wait for the writes to finish.

        A path whose last write failed and that has not been edited since is
        left alone; only a new edit or an explicit ``flush`` sends it again.
        """
        for path, state in list(self._paths.items()):
            if state.last_error is not None and state.seq == state.attempted_seq:
                log.debug("Not resending %s after failed write", path)
                continue
            self.flush(path)
        await self.wait_idle()

    async def wait_idle(self) -> None:
        while True:
            pending = [
                task
                for state in self._paths.values()
                for task in (state.timer, state.inflight)
                if task is not None and not task.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _write(self, path: str, state: _PathState) -> None:
        content, seq = state.content, state.seq
        state.attempted_seq = seq
        try:
            await self._service.update_file_content(path, content)
        except Exception as exc:  # noqa: BLE001 - surfaced to the user, never re-queued
            error = WriteError(path, exc)
            state.last_error = error
            log.warning(str(error), exc_info=exc)
            self._notify(str(error), severity="error")
        else:
            state.written_seq = max(state.written_seq, seq)
            state.last_error = None
            for listener in list(self._listeners):
                listener(path, content)
        finally:
            state.inflight = None
            self._after_write(path, state)

    async def _settle(self, state: _PathState) -> None:
        while (task := state.inflight) is not None and not task.done():
            await asyncio.shield(task)

    def _after_write(self, path: str, state: _PathState) -> None:
        if state.flush_requested:
            state.flush_requested = False
            if state.seq > state.attempted_seq:
                state.inflight = self._tasks.spawn(
                    self._write(path, state), name=f"write:{path}"
                )
                return
        # Clean and idle: nothing left to remember for this path.
        if (
            not state.dirty
            and state.timer is None
            and state.last_error is None
            and self._paths.get(path) is state
        ):
            del self._paths[path]
