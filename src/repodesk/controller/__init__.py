"""Selection, write and mutation controllers."""

from repodesk.controller.mutations import BulkMutationCoordinator, Workflow, WorkflowState
from repodesk.controller.persistence import SessionPersistence, SessionSnapshot
from repodesk.controller.selection import FetchTag, Selection, SelectionStore
from repodesk.controller.session import EditorSession
from repodesk.controller.tree import RepositoryTreeBrowser
from repodesk.controller.writer import DebouncedWriter

__all__ = [
    "BulkMutationCoordinator",
    "DebouncedWriter",
    "EditorSession",
    "FetchTag",
    "RepositoryTreeBrowser",
    "Selection",
    "SelectionStore",
    "SessionPersistence",
    "SessionSnapshot",
    "Workflow",
    "WorkflowState",
]
