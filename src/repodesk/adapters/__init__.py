"""Repository service adapters."""

from repodesk.adapters.git import GitCommandRunner, GitRepositoryService
from repodesk.adapters.repository import RemoteRepositoryService

__all__ = [
    "GitCommandRunner",
    "GitRepositoryService",
    "RemoteRepositoryService",
]
