"""Core domain types."""

from repodesk.core.models import (
    WORKING_SET_HASH,
    Commit,
    FileNode,
    FileVersionPair,
    MobileStep,
    MutationKind,
    MutationRequest,
    working_set_commit,
)

__all__ = [
    "WORKING_SET_HASH",
    "Commit",
    "FileNode",
    "FileVersionPair",
    "MobileStep",
    "MutationKind",
    "MutationRequest",
    "working_set_commit",
]
