"""Tree-browsing editor mode: open any work-tree file and edit it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from repodesk.controller.notify import log_notify
from repodesk.errors import SelectionFetchError
from repodesk.utils.background_tasks import BackgroundTasks

if TYPE_CHECKING:
    import asyncio

    from repodesk.adapters.repository import RemoteRepositoryService
    from repodesk.controller.notify import Notify
    from repodesk.controller.writer import DebouncedWriter
    from repodesk.core.models import FileNode

log = logging.getLogger(__name__)

HEAD_REF = "HEAD"


class RepositoryTreeBrowser:
    def __init__(
        self,
        service: RemoteRepositoryService,
        writer: DebouncedWriter,
        *,
        notify: Notify | None = None,
        tasks: BackgroundTasks | None = None,
    ) -> None:
        self._service = service
        self._writer = writer
        self._notify = notify or log_notify
        self._tasks = tasks or BackgroundTasks()
        self.tree: list[FileNode] = []
        self.open_path: str | None = None
        self.content = ""
        self._open_seq = 0

    async def load_tree(self) -> bool:
        try:
            self.tree = await self._service.get_repository_tree()
        except Exception as exc:  # noqa: BLE001 - backend failures are reported, not raised
            error = SelectionFetchError("repository tree", exc)
            log.warning(str(error))
            self._notify(str(error), severity="error")
            return False
        return True

    def open_file(self, path: str) -> asyncio.Task[None]:
        """Open ``path`` and load its work-tree content; older opens are ignored."""
        self._open_seq += 1
        self.open_path = path
        return self._tasks.spawn(self._load(path, self._open_seq), name=f"open:{path}")

    async def _load(self, path: str, seq: int) -> None:
        try:
            content = await self._service.get_file_content(HEAD_REF, path)
        except Exception as exc:  # noqa: BLE001 - backend failures are reported, not raised
            if seq == self._open_seq:
                error = SelectionFetchError(f"content of {path}", exc)
                log.warning(str(error))
                self._notify(str(error), severity="error")
            return
        if seq != self._open_seq:
            return
        pending = self._writer.latest_content(path)
        self.content = pending if pending is not None else content

    def edit(self, content: str) -> None:
        if self.open_path is None:
            self._notify("Open a file first", severity="warning")
            return
        self.content = content
        self._writer.on_content_change(self.open_path, content)
