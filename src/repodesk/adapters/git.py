"""Repository service backed by a local git work tree."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles

from repodesk.core.models import WORKING_SET_HASH, Commit, FileNode, FileVersionPair
from repodesk.errors import GitCommandError

if TYPE_CHECKING:
    from collections.abc import Sequence

log = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"%H{_FIELD_SEP}%aI{_FIELD_SEP}%B{_RECORD_SEP}"


@dataclass(frozen=True)
class GitCommandResult:
    """Result of a git command invocation."""

    returncode: int
    stdout: str
    stderr: str


class GitCommandRunner:
    """Run git commands in subprocesses."""

    async def run(self, cwd: Path, args: Sequence[str], *, check: bool = True) -> GitCommandResult:
        try:
            proc = await asyncio.create_subprocess_exec(
                "git",
                "-c",
                "core.quotepath=off",
                *args,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:  # pragma: no cover - environment dependent
            raise RuntimeError("git executable not found") from exc

        stdout_bytes, stderr_bytes = await proc.communicate()
        returncode = proc.returncode if proc.returncode is not None else 1
        stdout = stdout_bytes.decode(errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode(errors="replace") if stderr_bytes else ""

        if check and returncode != 0:
            raise GitCommandError(list(args), returncode, stderr.strip() or stdout.strip())

        return GitCommandResult(returncode=returncode, stdout=stdout, stderr=stderr)


class GitRepositoryService:
    """RemoteRepositoryService implementation for a local repository."""

    def __init__(self, repo_root: Path | str, runner: GitCommandRunner | None = None) -> None:
        self.repo_root = Path(repo_root).resolve()
        self._runner = runner or GitCommandRunner()

    async def _git(self, *args: str, check: bool = True) -> GitCommandResult:
        return await self._runner.run(self.repo_root, args, check=check)

    async def _has_head(self) -> bool:
        result = await self._git("rev-parse", "--verify", "--quiet", "HEAD", check=False)
        return result.returncode == 0

    async def _first_parent(self, commit_hash: str) -> str | None:
        result = await self._git("rev-list", "--parents", "-n", "1", commit_hash)
        parts = result.stdout.split()
        return parts[1] if len(parts) > 1 else None

    async def _show(self, ref: str, path: str) -> str:
        result = await self._git("show", f"{ref}:{path}", check=False)
        return result.stdout if result.returncode == 0 else ""

    def _worktree_path(self, path: str) -> Path:
        full = (self.repo_root / path).resolve()
        if not full.is_relative_to(self.repo_root) or full == self.repo_root:
            raise ValueError(f"Path escapes repository: {path}")
        return full

    async def _read_worktree(self, path: str) -> str:
        full = self._worktree_path(path)
        if not full.is_file():
            return ""
        async with aiofiles.open(full, encoding="utf-8", errors="replace") as handle:
            return await handle.read()

    async def list_commits(self) -> list[Commit]:
        if not await self._has_head():
            return []
        result = await self._git("log", f"--format={_LOG_FORMAT}")
        return parse_log_output(result.stdout)

    async def list_uncommitted_changes(self) -> list[str]:
        result = await self._git("status", "--porcelain")
        return parse_status_output(result.stdout)

    async def list_changed_files(self, commit_hash: str) -> list[str]:
        if commit_hash == WORKING_SET_HASH:
            return await self.list_uncommitted_changes()
        parent = await self._first_parent(commit_hash)
        if parent is None:
            result = await self._git(
                "diff-tree", "--root", "--no-commit-id", "--name-only", "-r", commit_hash
            )
        else:
            result = await self._git("diff", "--name-only", parent, commit_hash)
        return [line for line in result.stdout.splitlines() if line.strip()]

    async def get_file_versions(self, commit_hash: str, path: str) -> FileVersionPair:
        if commit_hash == WORKING_SET_HASH:
            original = await self._show("HEAD", path) if await self._has_head() else ""
            return FileVersionPair(original=original, modified=await self._read_worktree(path))

        parent = await self._first_parent(commit_hash)
        original = await self._show(parent, path) if parent else ""
        return FileVersionPair(original=original, modified=await self._show(commit_hash, path))

    async def get_file_content(self, ref: str, path: str) -> str:
        if not ref or ref == "HEAD":
            return await self._read_worktree(path)
        return await self._show(ref, path)

    async def update_file_content(self, path: str, content: str) -> None:
        full = self._worktree_path(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(full, "w", encoding="utf-8") as handle:
            await handle.write(content)
        log.debug("Wrote work-tree file", extra={"path": path, "chars": len(content)})

    async def create_commit(self, paths: list[str], message: str) -> str:
        await self._git("add", "-A", "--", *paths)
        await self._git("commit", "-m", message, "--", *paths)
        result = await self._git("rev-parse", "HEAD")
        commit_hash = result.stdout.strip()
        log.info("Created commit", extra={"commit": commit_hash, "files": len(paths)})
        return commit_hash

    async def rollback_files(self, paths: list[str], commit_hash: str | None = None) -> str:
        source = commit_hash or "HEAD"
        await self._git("checkout", source, "--", *paths)
        log.info("Rolled back files", extra={"source": source, "files": len(paths)})
        if commit_hash:
            return f"Restored {len(paths)} file(s) from {commit_hash[:8]}"
        return f"Rolled back {len(paths)} file(s)"

    async def get_repository_tree(self) -> list[FileNode]:
        return await asyncio.to_thread(_list_directory, self.repo_root, "")


def parse_log_output(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with the record/field separators."""
    commits: list[Commit] = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        commit_hash, date, message = record.split(_FIELD_SEP, 2)
        commits.append(
            Commit(
                hash=commit_hash.strip(),
                message=message.strip(),
                timestamp=datetime.fromisoformat(date.strip()),
            )
        )
    return commits


def parse_status_output(status_output: str) -> list[str]:
    """Extract tracked changed paths from ``git status --porcelain`` output.

    Untracked entries are skipped and renames report the destination path.
    """
    paths: list[str] = []
    for raw_line in status_output.splitlines():
        line = raw_line.rstrip()
        if len(line) < 4 or line[:2] == "??" or line[:2] == "!!":
            continue
        segment = line[3:]
        if " -> " in segment:
            segment = segment.split(" -> ", 1)[1]
        path = _normalize_status_path(segment)
        if path and path not in paths:
            paths.append(path)
    return paths


def _normalize_status_path(path: str) -> str:
    normalized = path.strip()
    if len(normalized) >= 2 and normalized[0] == normalized[-1] == '"':
        return normalized[1:-1]
    return normalized


def _list_directory(directory: Path, relative: str) -> list[FileNode]:
    try:
        entries = list(directory.iterdir())
    except OSError:
        log.warning("Directory not readable", extra={"path": str(directory)})
        return []

    nodes: list[FileNode] = []
    for entry in sorted(entries, key=lambda item: (not item.is_dir(), item.name)):
        if entry.name == ".git":
            continue
        path = f"{relative}/{entry.name}" if relative else entry.name
        if entry.is_dir():
            nodes.append(
                FileNode(
                    name=entry.name,
                    path=path,
                    is_directory=True,
                    children=_list_directory(entry, path),
                )
            )
        else:
            nodes.append(FileNode(name=entry.name, path=path, is_directory=False))
    return nodes
