"""Tests for git output parsing and the commands the git adapter issues."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from repodesk.adapters.git import (
    GitCommandResult,
    GitCommandRunner,
    GitRepositoryService,
    parse_log_output,
    parse_status_output,
)


class TestParseLogOutput:
    def test_parses_records(self):
        output = (
            "aaa111\x1f2024-05-01T10:00:00+02:00\x1fSecond commit\n\nWith body\n\x1e\n"
            "bbb222\x1f2024-04-30T09:30:00+00:00\x1fFirst\n\x1e\n"
        )

        commits = parse_log_output(output)

        assert [commit.hash for commit in commits] == ["aaa111", "bbb222"]
        assert commits[0].message == "Second commit\n\nWith body"
        assert commits[0].timestamp == datetime(
            2024, 5, 1, 10, 0, tzinfo=timezone(timedelta(hours=2))
        )
        assert commits[1].files is None

    def test_empty_output(self):
        assert parse_log_output("") == []
        assert parse_log_output("\n") == []

    def test_message_may_contain_field_separator_free_text(self):
        output = "ccc333\x1f2024-01-01T00:00:00+00:00\x1fsubject: with colon\x1e"

        assert parse_log_output(output)[0].message == "subject: with colon"


class TestParseStatusOutput:
    @pytest.mark.parametrize(
        ("output", "expected"),
        [
            (" M a.txt\n", ["a.txt"]),
            ("M  staged.txt\n?? new.txt\n", ["staged.txt"]),
            ("R  old.txt -> new.txt\n", ["new.txt"]),
            (' M "with space.txt"\n', ["with space.txt"]),
            ("MM both.txt\nMM both.txt\n", ["both.txt"]),
            ("!! ignored.txt\n D gone.txt\n", ["gone.txt"]),
            ("", []),
        ],
    )
    def test_paths(self, output: str, expected: list[str]):
        assert parse_status_output(output) == expected


class TestWorktreePath:
    def test_rejects_paths_outside_repository(self, tmp_path):
        service = GitRepositoryService(tmp_path)

        with pytest.raises(ValueError, match="escapes"):
            service._worktree_path("../outside.txt")
        with pytest.raises(ValueError):
            service._worktree_path(".")

    def test_accepts_nested_paths(self, tmp_path):
        service = GitRepositoryService(tmp_path)

        assert service._worktree_path("dir/file.txt") == tmp_path.resolve() / "dir" / "file.txt"


def _result(stdout: str = "", returncode: int = 0) -> GitCommandResult:
    return GitCommandResult(returncode=returncode, stdout=stdout, stderr="")


class TestCommandSequences:
    """Git invocations issued by the service, checked against a mocked runner."""

    async def test_root_commit_lists_files_with_diff_tree(self, tmp_path):
        runner = AsyncMock(spec=GitCommandRunner)
        runner.run.side_effect = [_result("abc123\n"), _result("a.txt\nb.txt\n")]
        service = GitRepositoryService(tmp_path, runner)

        assert await service.list_changed_files("abc123") == ["a.txt", "b.txt"]

        args = [call.args[1] for call in runner.run.await_args_list]
        assert args == [
            ("rev-list", "--parents", "-n", "1", "abc123"),
            ("diff-tree", "--root", "--no-commit-id", "--name-only", "-r", "abc123"),
        ]

    async def test_child_commit_diffs_against_first_parent(self, tmp_path):
        runner = AsyncMock(spec=GitCommandRunner)
        runner.run.side_effect = [_result("def456 abc123 999999\n"), _result("c.txt\n")]
        service = GitRepositoryService(tmp_path, runner)

        assert await service.list_changed_files("def456") == ["c.txt"]
        assert runner.run.await_args_list[1].args[1] == ("diff", "--name-only", "abc123", "def456")

    async def test_create_commit_stages_and_commits_only_targets(self, tmp_path):
        runner = AsyncMock(spec=GitCommandRunner)
        runner.run.side_effect = [_result(), _result(), _result("fedcba\n")]
        service = GitRepositoryService(tmp_path, runner)

        assert await service.create_commit(["a.txt", "b.txt"], "msg") == "fedcba"

        args = [call.args[1] for call in runner.run.await_args_list]
        assert args == [
            ("add", "-A", "--", "a.txt", "b.txt"),
            ("commit", "-m", "msg", "--", "a.txt", "b.txt"),
            ("rev-parse", "HEAD"),
        ]

    async def test_unborn_head_skips_log(self, tmp_path):
        runner = AsyncMock(spec=GitCommandRunner)
        runner.run.return_value = _result(returncode=1)
        service = GitRepositoryService(tmp_path, runner)

        assert await service.list_commits() == []
        assert runner.run.await_count == 1
