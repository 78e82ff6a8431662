"""Pytest fixtures for repodesk tests."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any

import pytest

from repodesk.config import EditorConfig, GeneralConfig, RepoDeskConfig
from repodesk.core.models import WORKING_SET_HASH, Commit, FileNode, FileVersionPair
from repodesk.database.repository import SessionSlotRepository


class FakeRepositoryService:
    """In-memory repository service.

    Every call is recorded in ``calls``. ``hold(...)`` returns a gate that
    blocks the matching call until it is set, which lets tests decide the
    order in which responses arrive. ``fail(...)`` makes matching calls raise.
    """

    def __init__(
        self,
        *,
        commits: list[Commit] | None = None,
        uncommitted: list[str] | None = None,
        changes: dict[str, list[str]] | None = None,
        versions: dict[tuple[str, str], FileVersionPair] | None = None,
        tree: list[FileNode] | None = None,
        contents: dict[str, str] | None = None,
    ) -> None:
        self.commits = commits or []
        self.uncommitted = uncommitted or []
        self.changes = changes or {}
        self.versions = versions or {}
        self.tree = tree or []
        self.contents = contents or {}
        self.calls: list[tuple[Any, ...]] = []
        self.writes: list[tuple[str, str]] = []
        self._gates: dict[tuple[Any, ...], list[asyncio.Event]] = defaultdict(list)
        self._failures: dict[tuple[Any, ...], Exception] = {}

    def hold(self, *key: Any) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[key].append(gate)
        return gate

    def fail(self, *key: Any, error: Exception | None = None) -> None:
        self._failures[key] = error or RuntimeError("backend unavailable")

    def recover(self, *key: Any) -> None:
        self._failures.pop(key, None)

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def _enter(self, *key: Any) -> None:
        self.calls.append(key)
        for candidate in (key, key[:1]):
            gates = self._gates.get(candidate)
            if gates:
                await gates.pop(0).wait()
                break
        for candidate in (key, key[:1]):
            if candidate in self._failures:
                raise self._failures[candidate]

    async def list_commits(self) -> list[Commit]:
        await self._enter("list_commits")
        return list(self.commits)

    async def list_uncommitted_changes(self) -> list[str]:
        await self._enter("list_uncommitted_changes")
        return list(self.uncommitted)

    async def list_changed_files(self, commit_hash: str) -> list[str]:
        await self._enter("list_changed_files", commit_hash)
        if commit_hash == WORKING_SET_HASH:
            return list(self.uncommitted)
        return list(self.changes.get(commit_hash, []))

    async def get_file_versions(self, commit_hash: str, path: str) -> FileVersionPair:
        await self._enter("get_file_versions", commit_hash, path)
        return self.versions.get((commit_hash, path), FileVersionPair())

    async def get_file_content(self, ref: str, path: str) -> str:
        await self._enter("get_file_content", ref, path)
        return self.contents.get(path, "")

    async def update_file_content(self, path: str, content: str) -> None:
        await self._enter("update_file_content", path)
        self.writes.append((path, content))
        self.contents[path] = content

    async def create_commit(self, paths: list[str], message: str) -> str:
        await self._enter("create_commit", tuple(paths), message)
        new_hash = f"c{len(self.commits) + 1}" + "0" * 38
        self.commits.insert(0, Commit(hash=new_hash, message=message, files=tuple(paths)))
        self.uncommitted = [path for path in self.uncommitted if path not in paths]
        return new_hash

    async def rollback_files(self, paths: list[str], commit_hash: str | None = None) -> str:
        await self._enter("rollback_files", tuple(paths), commit_hash)
        self.uncommitted = [path for path in self.uncommitted if path not in paths]
        return "Rollback successful"

    async def get_repository_tree(self) -> list[FileNode]:
        await self._enter("get_repository_tree")
        return list(self.tree)


@pytest.fixture
def service() -> FakeRepositoryService:
    """Two-commit history plus one uncommitted file."""
    return FakeRepositoryService(
        commits=[
            Commit(hash="c1", message="Second", files=("b.txt",)),
            Commit(hash="c0", message="First", files=("a.txt", "b.txt")),
        ],
        uncommitted=["a.txt"],
        changes={"c1": ["b.txt"], "c0": ["a.txt", "b.txt"]},
        versions={
            ("c1", "b.txt"): FileVersionPair(original="b1", modified="b2"),
            ("c0", "a.txt"): FileVersionPair(original="", modified="a1"),
            (WORKING_SET_HASH, "a.txt"): FileVersionPair(original="a1", modified="a2"),
        },
        contents={"a.txt": "a2", "b.txt": "b2"},
    )


@pytest.fixture
def notifications() -> list[tuple[str, str]]:
    return []


@pytest.fixture
def notify(notifications: list[tuple[str, str]]):
    def _notify(message: str, *, severity: str = "information") -> None:
        notifications.append((severity, message))

    return _notify


@pytest.fixture
def config() -> RepoDeskConfig:
    return RepoDeskConfig(
        general=GeneralConfig(session_key="test"),
        editor=EditorConfig(debounce_ms=20),
    )


@pytest.fixture
async def slots(tmp_path):
    """Session slot repository backed by a temporary SQLite file."""
    repository = SessionSlotRepository(tmp_path / "state.db")
    await repository.initialize()
    yield repository
    await repository.close()
