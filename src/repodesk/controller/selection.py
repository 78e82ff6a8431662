"""Selection store: commit -> changed file -> file versions.

The store is mutated only from the event loop. Each operation changes the
selection synchronously and then schedules the dependent fetch. Fetches are
tagged with the selection they were issued for plus a monotonically
increasing sequence number; a response whose tag no longer matches the
current one is dropped, so a slow answer to an old selection can never
overwrite a newer one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from repodesk.controller.notify import log_notify
from repodesk.core.models import (
    WORKING_SET_HASH,
    Commit,
    FileVersionPair,
    MobileStep,
    working_set_commit,
)
from repodesk.errors import SelectionFetchError
from repodesk.messages import (
    ChangeListLoaded,
    CommitSelected,
    CommitsLoaded,
    FileSelected,
    FileVersionsLoaded,
    MobileStepChanged,
    SelectionCleared,
    SelectionRestored,
)
from repodesk.utils.background_tasks import BackgroundTasks

if TYPE_CHECKING:
    from collections.abc import Callable

    from repodesk.adapters.repository import RemoteRepositoryService
    from repodesk.controller.notify import Notify
    from repodesk.controller.persistence import SessionSnapshot
    from repodesk.messages import StoreChanged

log = logging.getLogger(__name__)

Subscriber: TypeAlias = "Callable[[StoreChanged], None]"


@dataclass(frozen=True)
class FetchTag:
    """Identity of the selection a fetch was issued for."""

    commit_hash: str | None
    path: str | None
    seq: int


@dataclass(frozen=True)
class Selection:
    """Read-only view of the store state."""

    selected_commit: Commit | None
    selected_file: str | None
    change_list: tuple[str, ...]
    file_versions: FileVersionPair


class SelectionStore:
    """Owns the current selection and its derived data."""

    def __init__(
        self,
        service: RemoteRepositoryService,
        *,
        notify: Notify | None = None,
        tasks: BackgroundTasks | None = None,
    ) -> None:
        self._service = service
        self._notify = notify or log_notify
        self._tasks = tasks or BackgroundTasks()
        self._subscribers: list[Subscriber] = []

        self._commits: list[Commit] = []
        self._selected_commit: Commit | None = None
        self._selected_file: str | None = None
        self._change_list: list[str] = []
        self._file_versions = FileVersionPair()
        self._mobile_step = MobileStep.COMMITS

        self._commits_seq = 0
        self._change_seq = 0
        self._file_seq = 0

    # -- state -----------------------------------------------------------

    @property
    def commits(self) -> list[Commit]:
        return list(self._commits)

    @property
    def selected_commit(self) -> Commit | None:
        return self._selected_commit

    @property
    def selected_file(self) -> str | None:
        return self._selected_file

    @property
    def change_list(self) -> list[str]:
        return list(self._change_list)

    @property
    def file_versions(self) -> FileVersionPair:
        return self._file_versions

    @property
    def mobile_step(self) -> MobileStep:
        return self._mobile_step

    @property
    def selection(self) -> Selection:
        return Selection(
            selected_commit=self._selected_commit,
            selected_file=self._selected_file,
            change_list=tuple(self._change_list),
            file_versions=self._file_versions,
        )

    @property
    def working_set(self) -> Commit:
        """The working-set pseudo-commit, synthesized when commits are not loaded yet."""
        if self._commits and self._commits[0].is_working_set:
            return self._commits[0]
        return working_set_commit()

    @property
    def working_set_files(self) -> list[str]:
        return list(self.working_set.files or ())

    # -- subscriptions ---------------------------------------------------

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def _publish(self, message: StoreChanged) -> None:
        for subscriber in list(self._subscribers):
            subscriber(message)

    # -- transitions -----------------------------------------------------

    def select_commit(self, commit: Commit) -> asyncio.Task[None]:
        """Select a commit, clear the file selection and reload its change list.

        The change list of a different commit is dropped right away; only
        reselecting the same commit keeps its list visible while it reloads.
        """
        self._change_seq += 1
        self._file_seq += 1
        previous = self._selected_commit
        if previous is None or previous.hash != commit.hash:
            self._change_list = []
        self._selected_commit = commit
        self._selected_file = None
        self._file_versions = FileVersionPair()
        self._publish(CommitSelected(commit))

        tag = FetchTag(commit.hash, None, self._change_seq)
        return self._tasks.spawn(self._load_change_list(tag), name=f"changes:{commit.short_hash}")

    def select_file(self, path: str | None) -> asyncio.Task[None] | None:
        """Select a changed file of the current commit and load its versions."""
        if path is None:
            self.clear_file()
            return None
        commit = self._selected_commit
        if commit is None:
            self._notify("Select a commit first", severity="warning")
            return None

        self._file_seq += 1
        self._selected_file = path
        self._publish(FileSelected(commit.hash, path))

        tag = FetchTag(commit.hash, path, self._file_seq)
        return self._tasks.spawn(self._load_file_versions(tag), name=f"versions:{path}")

    def clear_file(self) -> None:
        self._file_seq += 1
        self._selected_file = None
        self._file_versions = FileVersionPair()
        commit_hash = self._selected_commit.hash if self._selected_commit else WORKING_SET_HASH
        self._publish(FileSelected(commit_hash, None))

    def clear_selection(self) -> None:
        self._change_seq += 1
        self._file_seq += 1
        self._selected_commit = None
        self._selected_file = None
        self._change_list = []
        self._file_versions = FileVersionPair()
        self._publish(SelectionCleared())

    def reset(self) -> None:
        """Return to the empty session state (logout)."""
        self._commits_seq += 1
        self._commits = []
        self._mobile_step = MobileStep.COMMITS
        self.clear_selection()

    def set_mobile_step(self, step: MobileStep) -> None:
        if step == self._mobile_step:
            return
        self._mobile_step = step
        self._publish(MobileStepChanged(step))

    def reflect_write(self, path: str, content: str) -> None:
        """Show persisted content in the modified pane if ``path`` is still selected.

        Only the working set is editable; a historical commit's diff is left alone.
        """
        commit = self._selected_commit
        if self._selected_file != path or commit is None or not commit.is_working_set:
            return
        if self._file_versions.modified == content:
            return
        self._file_versions = self._file_versions.model_copy(update={"modified": content})
        self._publish(FileVersionsLoaded(self._selected_commit.hash, path, self._file_versions))

    def restore(self, snapshot: SessionSnapshot) -> None:
        """Hydrate from a persisted snapshot without touching the backend."""
        self._commits_seq += 1
        self._change_seq += 1
        self._file_seq += 1
        self._commits = list(snapshot.commits)
        self._selected_commit = snapshot.selected_commit
        self._selected_file = snapshot.selected_file if snapshot.selected_commit else None
        self._change_list = list(snapshot.change_list)
        self._file_versions = snapshot.file_versions
        self._mobile_step = snapshot.mobile_step
        self._publish(SelectionRestored())

    # -- fetches ---------------------------------------------------------

    def _change_list_current(self, tag: FetchTag) -> bool:
        commit = self._selected_commit
        return (
            commit is not None and commit.hash == tag.commit_hash and self._change_seq == tag.seq
        )

    def _file_versions_current(self, tag: FetchTag) -> bool:
        commit = self._selected_commit
        return (
            commit is not None
            and commit.hash == tag.commit_hash
            and self._selected_file == tag.path
            and self._file_seq == tag.seq
        )

    def _report(self, error: SelectionFetchError) -> None:
        log.warning(str(error), exc_info=error.cause)
        self._notify(str(error), severity="error")

    async def _load_change_list(self, tag: FetchTag) -> None:
        assert tag.commit_hash is not None
        try:
            if tag.commit_hash == WORKING_SET_HASH:
                files = await self._service.list_uncommitted_changes()
            else:
                files = await self._service.list_changed_files(tag.commit_hash)
        except Exception as exc:  # noqa: BLE001 - backend failures are reported, not raised
            if self._change_list_current(tag):
                self._report(SelectionFetchError(f"changed files of {tag.commit_hash}", exc))
            return

        if not self._change_list_current(tag):
            log.debug("Dropping stale change list", extra={"commit": tag.commit_hash})
            return
        self._change_list = list(files)
        self._publish(ChangeListLoaded(tag.commit_hash, list(files)))

    async def _load_file_versions(self, tag: FetchTag) -> None:
        assert tag.commit_hash is not None and tag.path is not None
        try:
            versions = await self._service.get_file_versions(tag.commit_hash, tag.path)
        except Exception as exc:  # noqa: BLE001 - backend failures are reported, not raised
            if self._file_versions_current(tag):
                self._report(SelectionFetchError(f"versions of {tag.path}", exc))
            return

        if not self._file_versions_current(tag):
            log.debug("Dropping stale file versions", extra={"path": tag.path})
            return
        self._file_versions = versions
        self._publish(FileVersionsLoaded(tag.commit_hash, tag.path, versions))

    async def refresh_commits(self) -> bool:
        """Reload the commit sequence with the working-set pseudo-commit first."""
        self._commits_seq += 1
        seq = self._commits_seq
        try:
            history, uncommitted = await asyncio.gather(
                self._service.list_commits(),
                self._service.list_uncommitted_changes(),
            )
        except Exception as exc:  # noqa: BLE001 - backend failures are reported, not raised
            if seq == self._commits_seq:
                self._report(SelectionFetchError("commit history", exc))
            return False

        if seq != self._commits_seq:
            log.debug("Dropping stale commit history")
            return False
        commits = [working_set_commit(uncommitted)]
        commits.extend(commit for commit in history if not commit.is_working_set)
        self._commits = commits
        self._publish(CommitsLoaded(list(commits)))
        return True

    async def refresh_after_mutation(self) -> None:
        """Resync with the backend after a commit/rollback and show the working set."""
        await self.refresh_commits()
        await self.select_commit(self.working_set)

    async def revalidate(self) -> None:
        """Re-check hydrated state against fresh backend data.

        Fresh data wins: a selected commit that no longer exists is dropped,
        and a selected file that is no longer in the change list is cleared.
        """
        if not await self.refresh_commits():
            return
        current = self._selected_commit
        if current is None:
            return
        fresh = next((commit for commit in self._commits if commit.hash == current.hash), None)
        if fresh is None:
            log.info("Persisted commit no longer exists", extra={"commit": current.hash})
            self.clear_selection()
            return

        self._selected_commit = fresh
        self._change_seq += 1
        tag = FetchTag(fresh.hash, None, self._change_seq)
        await self._load_change_list(tag)
        if not self._change_list_current(tag) or self._selected_file is None:
            return
        if self._selected_file not in self._change_list:
            self.clear_file()
            return
        task = self.select_file(self._selected_file)
        if task is not None:
            await task
