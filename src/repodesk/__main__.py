"""CLI entry point for repodesk."""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import click

from repodesk import __version__
from repodesk.config import DEFAULT_CONFIG_PATH, RepoDeskConfig
from repodesk.errors import RepoDeskError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Coroutine
    from typing import Any

    from repodesk.controller.session import EditorSession
    from repodesk.core.models import Commit, FileNode


class _CliNotifier:
    """Print notifications to stderr and remember whether any was an error."""

    def __init__(self) -> None:
        self.failed = False

    def __call__(self, message: str, *, severity: str = "information") -> None:
        if severity == "error":
            self.failed = True
        prefix = {"error": "error: ", "warning": "warning: "}.get(severity, "")
        click.echo(f"{prefix}{message}", err=True)


def _run(ctx: click.Context, coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except RepoDeskError as exc:
        raise click.ClickException(str(exc)) from exc
    if ctx.obj["notifier"].failed:
        ctx.exit(1)


@asynccontextmanager
async def _session(
    ctx: click.Context, *, persistent: bool = False
) -> AsyncIterator[EditorSession]:
    from repodesk.adapters.git import GitRepositoryService
    from repodesk.controller.session import EditorSession
    from repodesk.database.repository import SessionSlotRepository

    config: RepoDeskConfig = ctx.obj["config"]
    slots = SessionSlotRepository(config.general.db_path) if persistent else None
    if slots is not None:
        await slots.initialize()
    session = EditorSession(
        GitRepositoryService(config.general.repo_path),
        config,
        slots=slots,
        notify=ctx.obj["notifier"],
    )
    try:
        yield session
    finally:
        await session.close()
        if slots is not None:
            await slots.close()


def _find_commit(session: EditorSession, commit_hash: str) -> Commit:
    """Resolve a (possibly abbreviated) hash against the loaded history."""
    from repodesk.core.models import Commit

    for commit in session.store.commits:
        if commit.hash == commit_hash or (
            len(commit_hash) >= 4 and commit.hash.startswith(commit_hash)
        ):
            return commit
    return Commit(hash=commit_hash)


@click.group(invoke_without_command=True)
@click.option("--config", "config_path", default=DEFAULT_CONFIG_PATH, help="Path to config file")
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option("-v", "--verbose", is_flag=True, help="Log controller activity to stderr")
@click.pass_context
def cli(ctx: click.Context, config_path: str, version: bool, verbose: bool) -> None:
    """Browse commits, edit files and commit or roll back changes in a git repository."""
    if version:
        click.echo(f"repodesk {__version__}")
        ctx.exit(0)

    from repodesk.debug_log import setup_debug_logging

    setup_debug_logging(logging.DEBUG if verbose else logging.INFO)
    if verbose:
        logging.basicConfig(stream=sys.stderr, level=logging.DEBUG)

    try:
        config = RepoDeskConfig.load(config_path)
    except RepoDeskError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj = {"config": config, "notifier": _CliNotifier()}

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("log")
@click.pass_context
def log_cmd(ctx: click.Context) -> None:
    """List commits, uncommitted changes first."""

    async def run() -> None:
        async with _session(ctx) as session:
            if not await session.store.refresh_commits():
                return
            for commit in session.store.commits:
                if commit.is_working_set:
                    count = len(commit.files or ())
                    click.echo(f"{commit.hash:<8}  {count} uncommitted file(s)")
                    continue
                date = commit.timestamp.strftime("%Y-%m-%d %H:%M") if commit.timestamp else ""
                subject = commit.message.splitlines()[0] if commit.message else ""
                click.echo(f"{commit.short_hash}  {date}  {subject}")

    _run(ctx, run())


@cli.command()
@click.argument("commit_hash")
@click.pass_context
def changes(ctx: click.Context, commit_hash: str) -> None:
    """List files changed by COMMIT_HASH ("unstaged" for the working set)."""
    from repodesk.core.models import MobileStep

    async def run() -> None:
        async with _session(ctx, persistent=True) as session:
            await session.start()
            await session.store.select_commit(_find_commit(session, commit_hash))
            session.store.set_mobile_step(MobileStep.FILES)
            for path in session.store.change_list:
                click.echo(path)

    _run(ctx, run())


@cli.command()
@click.argument("commit_hash")
@click.argument("path")
@click.pass_context
def show(ctx: click.Context, commit_hash: str, path: str) -> None:
    """Print both sides of PATH for COMMIT_HASH."""
    from repodesk.core.models import MobileStep

    async def run() -> None:
        async with _session(ctx, persistent=True) as session:
            await session.start()
            store = session.store
            await store.select_commit(_find_commit(session, commit_hash))
            task = store.select_file(path)
            if task is not None:
                await task
            store.set_mobile_step(MobileStep.EDITOR)
            click.echo(f"--- original: {path}")
            click.echo(store.file_versions.original)
            click.echo(f"+++ modified: {path}")
            click.echo(store.file_versions.modified)

    _run(ctx, run())


def _echo_tree(nodes: list[FileNode], depth: int = 0) -> None:
    for node in nodes:
        suffix = "/" if node.is_directory else ""
        click.echo(f"{'  ' * depth}{node.name}{suffix}")
        _echo_tree(node.children, depth + 1)


@cli.command()
@click.pass_context
def tree(ctx: click.Context) -> None:
    """Print the work-tree file hierarchy."""

    async def run() -> None:
        async with _session(ctx) as session:
            if await session.tree.load_tree():
                _echo_tree(session.tree.tree)

    _run(ctx, run())


@cli.command()
@click.argument("path")
@click.option("--ref", default="HEAD", show_default=True, help="Revision to read from")
@click.pass_context
def cat(ctx: click.Context, path: str, ref: str) -> None:
    """Print the content of PATH."""

    async def run() -> None:
        async with _session(ctx) as session:
            if ref == "HEAD":
                await session.tree.open_file(path)
                click.echo(session.tree.content, nl=False)
            else:
                click.echo(await session.service.get_file_content(ref, path), nl=False)

    _run(ctx, run())


@cli.command()
@click.argument("path")
@click.pass_context
def write(ctx: click.Context, path: str) -> None:
    """Replace PATH with the content read from stdin."""
    content = click.get_text_stream("stdin").read()

    async def run() -> None:
        async with _session(ctx) as session:
            session.writer.on_content_change(path, content)
            await session.writer.flush_all()

    _run(ctx, run())


@cli.command()
@click.option("-m", "--message", required=True, help="Commit message")
@click.argument("paths", nargs=-1)
@click.pass_context
def commit(ctx: click.Context, message: str, paths: tuple[str, ...]) -> None:
    """Commit PATHS (default: every uncommitted file)."""
    from repodesk.core.models import MutationKind

    async def run() -> None:
        async with _session(ctx) as session:
            await session.store.refresh_commits()
            coordinator = session.mutations
            coordinator.open(MutationKind.COMMIT, list(paths) if paths else None)
            coordinator.set_message(MutationKind.COMMIT, message)
            await coordinator.submit(MutationKind.COMMIT)

    _run(ctx, run())


@cli.command()
@click.option("--commit", "commit_hash", default=None, help="Restore from this commit")
@click.argument("paths", nargs=-1)
@click.pass_context
def rollback(ctx: click.Context, commit_hash: str | None, paths: tuple[str, ...]) -> None:
    """Discard changes to PATHS (default: every uncommitted file)."""
    from repodesk.core.models import MutationKind

    async def run() -> None:
        async with _session(ctx) as session:
            store = session.store
            await store.refresh_commits()
            target = _find_commit(session, commit_hash) if commit_hash else store.working_set
            await store.select_commit(target)
            coordinator = session.mutations
            coordinator.open(MutationKind.ROLLBACK, list(paths) if paths else None)
            await coordinator.submit(MutationKind.ROLLBACK)

    _run(ctx, run())


@cli.command("session")
@click.pass_context
def session_cmd(ctx: click.Context) -> None:
    """Print the persisted session snapshot."""

    async def run() -> None:
        async with _session(ctx, persistent=True) as session:
            assert session.persistence is not None
            snapshot = await session.persistence.load()
            if snapshot is None:
                click.echo("No saved session")
                return
            click.echo(snapshot.model_dump_json(indent=2))

    _run(ctx, run())


@cli.command()
@click.pass_context
def forget(ctx: click.Context) -> None:
    """Delete the persisted session snapshot."""

    async def run() -> None:
        async with _session(ctx, persistent=True) as session:
            assert session.persistence is not None
            await session.persistence.clear()
            click.echo(f"Forgot session {session.persistence.session_key!r}")

    _run(ctx, run())


if __name__ == "__main__":
    cli()
