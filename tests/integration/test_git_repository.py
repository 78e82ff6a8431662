"""Tests for GitRepositoryService against real repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from repodesk.adapters.git import GitRepositoryService
from repodesk.adapters.repository import RemoteRepositoryService
from repodesk.core.models import WORKING_SET_HASH, FileVersionPair
from repodesk.errors import GitCommandError
from tests.helpers.git import commit_files, init_repo, run_git

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.integration


@pytest.fixture
async def repo(tmp_path: Path) -> Path:
    repo_path = tmp_path / "repo"
    repo_path.mkdir()
    await init_repo(repo_path)
    return repo_path


@pytest.fixture
async def history(repo: Path) -> tuple[str, str]:
    """Two commits: a.txt first, then b.txt plus a change to a.txt."""
    first = await commit_files(repo, "First", {"a.txt": "a1\n"})
    second = await commit_files(repo, "Second\n\nBody", {"a.txt": "a2\n", "b.txt": "b1\n"})
    return first, second


def test_satisfies_protocol(tmp_path: Path):
    assert isinstance(GitRepositoryService(tmp_path), RemoteRepositoryService)


class TestHistory:
    async def test_unborn_repository_has_no_commits(self, repo: Path):
        service = GitRepositoryService(repo)

        assert await service.list_commits() == []
        assert await service.list_uncommitted_changes() == []

    async def test_lists_commits_newest_first(self, repo: Path, history: tuple[str, str]):
        first, second = history

        commits = await GitRepositoryService(repo).list_commits()

        assert [commit.hash for commit in commits] == [second, first]
        assert commits[0].message == "Second\n\nBody"
        assert commits[0].timestamp is not None

    async def test_changed_files_of_root_and_child(self, repo: Path, history: tuple[str, str]):
        first, second = history
        service = GitRepositoryService(repo)

        assert await service.list_changed_files(first) == ["a.txt"]
        assert await service.list_changed_files(second) == ["a.txt", "b.txt"]

    async def test_unknown_commit_raises(self, repo: Path, history: tuple[str, str]):
        with pytest.raises(GitCommandError):
            await GitRepositoryService(repo).list_changed_files("f" * 40)


class TestVersions:
    async def test_commit_versions_compare_with_parent(
        self, repo: Path, history: tuple[str, str]
    ):
        first, second = history
        service = GitRepositoryService(repo)

        assert await service.get_file_versions(second, "a.txt") == FileVersionPair(
            original="a1\n", modified="a2\n"
        )
        assert await service.get_file_versions(second, "b.txt") == FileVersionPair(
            original="", modified="b1\n"
        )
        assert await service.get_file_versions(first, "a.txt") == FileVersionPair(
            original="", modified="a1\n"
        )

    async def test_working_set_compares_head_with_work_tree(
        self, repo: Path, history: tuple[str, str]
    ):
        (repo / "a.txt").write_text("a3\n")
        service = GitRepositoryService(repo)

        assert await service.list_uncommitted_changes() == ["a.txt"]
        assert await service.list_changed_files(WORKING_SET_HASH) == ["a.txt"]
        assert await service.get_file_versions(WORKING_SET_HASH, "a.txt") == FileVersionPair(
            original="a2\n", modified="a3\n"
        )

    async def test_deleted_file_has_empty_modified_side(
        self, repo: Path, history: tuple[str, str]
    ):
        (repo / "b.txt").unlink()

        versions = await GitRepositoryService(repo).get_file_versions(WORKING_SET_HASH, "b.txt")

        assert versions == FileVersionPair(original="b1\n", modified="")

    async def test_file_content_by_ref(self, repo: Path, history: tuple[str, str]):
        first, _second = history
        (repo / "a.txt").write_text("draft\n")
        service = GitRepositoryService(repo)

        assert await service.get_file_content("HEAD", "a.txt") == "draft\n"
        assert await service.get_file_content(first, "a.txt") == "a1\n"
        assert await service.get_file_content(first, "b.txt") == ""


class TestMutations:
    async def test_update_file_content_writes_work_tree(
        self, repo: Path, history: tuple[str, str]
    ):
        service = GitRepositoryService(repo)

        await service.update_file_content("nested/c.txt", "c1\n")

        assert (repo / "nested" / "c.txt").read_text() == "c1\n"

    async def test_update_outside_repository_is_rejected(self, repo: Path):
        with pytest.raises(ValueError):
            await GitRepositoryService(repo).update_file_content("../evil.txt", "x")

    async def test_create_commit_only_includes_targets(
        self, repo: Path, history: tuple[str, str]
    ):
        (repo / "a.txt").write_text("a3\n")
        (repo / "b.txt").write_text("b2\n")
        service = GitRepositoryService(repo)

        new_hash = await service.create_commit(["a.txt"], "Update a")

        assert (await run_git(repo, "rev-parse", "HEAD")).strip() == new_hash
        assert await service.list_changed_files(new_hash) == ["a.txt"]
        assert await service.list_uncommitted_changes() == ["b.txt"]

    async def test_rollback_restores_head(self, repo: Path, history: tuple[str, str]):
        (repo / "a.txt").write_text("oops\n")
        (repo / "b.txt").write_text("keep\n")
        service = GitRepositoryService(repo)

        result = await service.rollback_files(["a.txt"])

        assert result == "Rolled back 1 file(s)"
        assert (repo / "a.txt").read_text() == "a2\n"
        assert (repo / "b.txt").read_text() == "keep\n"

    async def test_rollback_from_historical_commit(self, repo: Path, history: tuple[str, str]):
        first, _second = history
        service = GitRepositoryService(repo)

        result = await service.rollback_files(["a.txt"], first)

        assert result == f"Restored 1 file(s) from {first[:8]}"
        assert (repo / "a.txt").read_text() == "a1\n"
        assert await service.list_uncommitted_changes() == ["a.txt"]


async def test_repository_tree(repo: Path, history: tuple[str, str]):
    (repo / "src").mkdir()
    (repo / "src" / "main.py").write_text("print()\n")

    tree = await GitRepositoryService(repo).get_repository_tree()

    assert [node.name for node in tree] == ["src", "a.txt", "b.txt"]
    assert tree[0].is_directory
    assert [child.path for child in tree[0].children] == ["src/main.py"]
    assert all(node.name != ".git" for root in tree for node in root.walk())
