"""Exception hierarchy for repodesk."""

from __future__ import annotations


class RepoDeskError(Exception):
    """Base class for all repodesk errors."""


class SelectionFetchError(RepoDeskError):
    """A listing or file-version fetch for the current selection failed."""

    def __init__(self, what: str, cause: BaseException | None = None) -> None:
        self.what = what
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to load {what}{detail}")


class WriteError(RepoDeskError):
    """A debounced content flush failed."""

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to save {path}{detail}")


class MutationError(RepoDeskError):
    """A commit or rollback submission failed."""

    def __init__(self, kind: str, cause: BaseException | None = None) -> None:
        self.kind = kind
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{kind.capitalize()} failed{detail}")


class ValidationError(RepoDeskError):
    """Request rejected before any network call."""


class WorkflowBusyError(RepoDeskError):
    """Another mutation workflow is already submitting."""


class ConfigError(RepoDeskError):
    """Configuration file could not be loaded."""


class GitCommandError(RepoDeskError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, stderr: str) -> None:
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr
        cmd = " ".join(args)
        super().__init__(f"git {cmd} failed (rc={returncode}): {stderr or 'unknown git error'}")
