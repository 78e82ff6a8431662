"""Editor session: wires store, writer, coordinator and persistence together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from repodesk.controller.mutations import BulkMutationCoordinator
from repodesk.controller.notify import log_notify
from repodesk.controller.persistence import SessionPersistence
from repodesk.controller.selection import SelectionStore
from repodesk.controller.tree import RepositoryTreeBrowser
from repodesk.controller.writer import DebouncedWriter
from repodesk.utils.background_tasks import BackgroundTasks

if TYPE_CHECKING:
    from repodesk.adapters.repository import RemoteRepositoryService
    from repodesk.config import RepoDeskConfig
    from repodesk.controller.notify import Notify
    from repodesk.database.repository import SessionSlotRepository

log = logging.getLogger(__name__)


class EditorSession:
    """One operator session against one repository."""

    def __init__(
        self,
        service: RemoteRepositoryService,
        config: RepoDeskConfig,
        *,
        slots: SessionSlotRepository | None = None,
        notify: Notify | None = None,
    ) -> None:
        notify = notify or log_notify
        self._notify = notify
        self.service = service
        self.tasks = BackgroundTasks()
        self.store = SelectionStore(service, notify=notify, tasks=self.tasks)
        self.writer = DebouncedWriter(
            service,
            delay=config.editor.debounce_seconds,
            notify=notify,
            tasks=self.tasks,
        )
        self.writer.add_listener(self.store.reflect_write)
        self.mutations = BulkMutationCoordinator(service, self.store, notify=notify)
        self.tree = RepositoryTreeBrowser(service, self.writer, notify=notify, tasks=self.tasks)
        self.persistence: SessionPersistence | None = None
        if slots is not None:
            self.persistence = SessionPersistence(
                slots, config.general.session_key, tasks=self.tasks
            )

    async def start(self) -> bool:
        """Paint from the persisted slot (if any), then revalidate against the backend.

        Returns True when persisted state was restored.
        """
        restored = False
        if self.persistence is not None:
            restored = await self.persistence.hydrate(self.store)
            self.persistence.attach(self.store)
        log.info("Session started", extra={"restored": restored})
        await self.store.revalidate()
        return restored

    def edit(self, content: str) -> None:
        """Route an edit of the selected working-set file to the debounced writer."""
        path = self.store.selected_file
        if path is None:
            log.debug("Ignoring edit without a selected file")
            return
        commit = self.store.selected_commit
        if commit is None or not commit.is_working_set:
            self._notify("Historical commits are read-only", severity="warning")
            return
        self.writer.on_content_change(path, content)

    async def close(self) -> None:
        """Flush pending edits and state, then stop background work."""
        await self.writer.flush_all()
        if self.persistence is not None:
            await self.persistence.flush()
            self.persistence.detach()
        await self.tasks.shutdown()

    async def logout(self) -> None:
        """Flush edits, reset the selection to empty and forget the persisted slot."""
        await self.writer.flush_all()
        self.store.reset()
        if self.persistence is not None:
            await self.persistence.clear()
            self.persistence.detach()
        await self.tasks.shutdown()
