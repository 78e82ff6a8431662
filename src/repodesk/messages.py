"""Store change messages.

Every transition of the selection store is announced as one of these
messages. They are Textual messages so a Textual view can forward them to
its widgets with ``post_message``; none of them bubble.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from textual.message import Message

if TYPE_CHECKING:
    from repodesk.core.models import Commit, FileVersionPair, MobileStep


class StoreChanged(Message):
    """Base class for selection store notifications."""

    bubble = False


@dataclass
class CommitSelected(StoreChanged):
    """A commit was selected; file selection and versions were cleared.

    The change list is cleared too unless the same commit was reselected.
    """

    commit: Commit


@dataclass
class FileSelected(StoreChanged):
    """A file was selected (or cleared, when ``path`` is None)."""

    commit_hash: str
    path: str | None


@dataclass
class SelectionCleared(StoreChanged):
    """Commit and file selection were dropped."""


@dataclass
class CommitsLoaded(StoreChanged):
    """The commit sequence was replaced from the backend."""

    commits: list[Commit]


@dataclass
class ChangeListLoaded(StoreChanged):
    """The changed-file list for the selected commit arrived."""

    commit_hash: str
    files: list[str]


@dataclass
class FileVersionsLoaded(StoreChanged):
    """File versions for the selected file changed."""

    commit_hash: str
    path: str
    versions: FileVersionPair


@dataclass
class MobileStepChanged(StoreChanged):
    """The narrow-layout navigation step changed."""

    step: MobileStep


@dataclass
class SelectionRestored(StoreChanged):
    """Store state was hydrated from a persisted snapshot."""
