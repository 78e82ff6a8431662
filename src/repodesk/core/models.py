"""Domain models shared by the controller and the repository adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from repodesk.errors import ValidationError

WORKING_SET_HASH = "unstaged"
WORKING_SET_MESSAGE = "Uncommitted changes"


class Commit(BaseModel):
    """Immutable commit snapshot as reported by the repository service."""

    model_config = ConfigDict(frozen=True)

    hash: str
    message: str = ""
    timestamp: datetime | None = None
    files: tuple[str, ...] | None = None

    @property
    def is_working_set(self) -> bool:
        return self.hash == WORKING_SET_HASH

    @property
    def short_hash(self) -> str:
        if self.is_working_set:
            return self.hash
        return self.hash[:8]


class FileVersionPair(BaseModel):
    """Two sides of a diff for one (commit, file) pair."""

    model_config = ConfigDict(frozen=True)

    original: str = ""
    modified: str = ""


def working_set_commit(files: list[str] | tuple[str, ...] | None = None) -> Commit:
    """Build the pseudo-commit that stands for uncommitted local changes."""
    return Commit(
        hash=WORKING_SET_HASH,
        message=WORKING_SET_MESSAGE,
        files=tuple(files) if files is not None else None,
    )


class MobileStep(StrEnum):
    """Navigation step of the narrow-screen layout."""

    COMMITS = "commits"
    FILES = "files"
    EDITOR = "editor"


class MutationKind(StrEnum):
    """Bulk mutation workflows."""

    COMMIT = "commit"
    ROLLBACK = "rollback"


@dataclass(frozen=True)
class MutationRequest:
    """Payload built when a commit or rollback dialog is confirmed."""

    kind: MutationKind
    target_files: frozenset[str]
    message: str | None = None
    commit_hash: str | None = None

    def __post_init__(self) -> None:
        if not self.target_files:
            raise ValidationError(f"No files selected for {self.kind.value}")
        if self.kind == MutationKind.COMMIT and not (self.message or "").strip():
            raise ValidationError("Commit message is required")

    @property
    def ordered_files(self) -> list[str]:
        return sorted(self.target_files)


@dataclass(frozen=True)
class FileNode:
    """Entry of the repository tree."""

    name: str
    path: str
    is_directory: bool
    children: list[FileNode] = field(default_factory=list)

    def walk(self):
        """Yield this node and all descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()
