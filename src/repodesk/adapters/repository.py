"""Repository service contract used by the session controller."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from repodesk.core.models import Commit, FileNode, FileVersionPair


@runtime_checkable
class RemoteRepositoryService(Protocol):
    """Backend operations the controller depends on.

    Every operation either returns a complete result or raises; partial
    results are never returned.
    """

    async def list_commits(self) -> list[Commit]:
        """Return commit history, newest first."""
        ...

    async def list_uncommitted_changes(self) -> list[str]:
        """Return paths with uncommitted changes."""
        ...

    async def list_changed_files(self, commit_hash: str) -> list[str]:
        """Return paths touched by a commit."""
        ...

    async def get_file_versions(self, commit_hash: str, path: str) -> FileVersionPair:
        """Return the before/after content of a file for a commit."""
        ...

    async def get_file_content(self, ref: str, path: str) -> str:
        """Return raw file content at a ref ("HEAD" reads the work tree)."""
        ...

    async def update_file_content(self, path: str, content: str) -> None:
        """Overwrite a work-tree file."""
        ...

    async def create_commit(self, paths: list[str], message: str) -> str:
        """Commit the given paths and return the new commit hash."""
        ...

    async def rollback_files(self, paths: list[str], commit_hash: str | None = None) -> str:
        """Restore paths to a commit (HEAD when omitted) and return a status message."""
        ...

    async def get_repository_tree(self) -> list[FileNode]:
        """Return the work-tree file hierarchy."""
        ...
