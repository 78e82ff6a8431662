"""repodesk: commit browsing, file editing and bulk commit/rollback for git repositories."""

__version__ = "0.1.0"
