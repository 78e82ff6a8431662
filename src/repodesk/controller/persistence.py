"""Mirror of the selection store into a durable slot.

The slot is a cache for instant paint after a reload. It is never an
authority: after hydrating, the session re-fetches from the backend and
fresh data replaces whatever was persisted.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from repodesk.core.models import Commit, FileVersionPair, MobileStep
from repodesk.utils.background_tasks import BackgroundTasks

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable

    from repodesk.controller.selection import SelectionStore
    from repodesk.database.repository import SessionSlotRepository
    from repodesk.messages import StoreChanged

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class SessionSnapshot(BaseModel):
    """Serialized form of the persisted view state."""

    version: int = SNAPSHOT_VERSION
    selected_commit: Commit | None = None
    commits: list[Commit] = Field(default_factory=list)
    selected_file: str | None = None
    change_list: list[str] = Field(default_factory=list)
    file_versions: FileVersionPair = Field(default_factory=FileVersionPair)
    mobile_step: MobileStep = MobileStep.COMMITS

    @classmethod
    def capture(cls, store: SelectionStore) -> SessionSnapshot:
        return cls(
            selected_commit=store.selected_commit,
            commits=store.commits,
            selected_file=store.selected_file,
            change_list=store.change_list,
            file_versions=store.file_versions,
            mobile_step=store.mobile_step,
        )


class SessionPersistence:
    """Observe a store and write its state to the slot after every change.

    Writes are coalesced: while one save is running, further changes only
    mark the state dirty and the next save captures the newest state.
    """

    def __init__(
        self,
        slots: SessionSlotRepository,
        session_key: str = "default",
        *,
        tasks: BackgroundTasks | None = None,
    ) -> None:
        self._slots = slots
        self._key = session_key
        self._tasks = tasks or BackgroundTasks()
        self._store: SelectionStore | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._dirty = False
        self._writer: asyncio.Task[None] | None = None

    @property
    def session_key(self) -> str:
        return self._key

    def attach(self, store: SelectionStore) -> None:
        self.detach()
        self._store = store
        self._unsubscribe = store.subscribe(self._on_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = None
        self._store = None

    def _on_change(self, _message: StoreChanged) -> None:
        self._dirty = True
        if self._writer is None or self._writer.done():
            self._writer = self._tasks.spawn(self._drain(), name=f"persist:{self._key}")

    async def _drain(self) -> None:
        while self._dirty and self._store is not None:
            self._dirty = False
            payload = SessionSnapshot.capture(self._store).model_dump_json()
            try:
                await self._slots.save(self._key, payload)
            except (SQLAlchemyError, OSError) as exc:
                log.warning("Could not persist session state: %s", exc)

    async def flush(self) -> None:
        """Wait for pending saves to land."""
        if self._writer is not None:
            await self._writer

    async def load(self) -> SessionSnapshot | None:
        """Read the slot; unreadable or corrupt data counts as absent."""
        try:
            payload = await self._slots.load(self._key)
        except (SQLAlchemyError, OSError) as exc:
            log.warning("Could not read session state: %s", exc)
            return None
        if not payload:
            return None
        try:
            snapshot = SessionSnapshot.model_validate_json(payload)
        except PydanticValidationError as exc:
            log.warning("Discarding corrupt session state: %s", exc.errors()[:1])
            return None
        if snapshot.version != SNAPSHOT_VERSION:
            log.info("Discarding session state with version %s", snapshot.version)
            return None
        return snapshot

    async def hydrate(self, store: SelectionStore) -> bool:
        """Restore ``store`` from the slot; returns False when nothing usable was stored."""
        snapshot = await self.load()
        if snapshot is None:
            return False
        store.restore(snapshot)
        return True

    async def clear(self) -> None:
        await self.flush()
        try:
            await self._slots.delete(self._key)
        except (SQLAlchemyError, OSError) as exc:
            log.warning("Could not clear session state: %s", exc)
