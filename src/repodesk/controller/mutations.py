"""Commit and rollback workflows over a subset of changed files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from repodesk.controller.notify import log_notify
from repodesk.core.models import MutationKind, MutationRequest
from repodesk.errors import MutationError, ValidationError, WorkflowBusyError

if TYPE_CHECKING:
    from repodesk.adapters.repository import RemoteRepositoryService
    from repodesk.controller.notify import Notify
    from repodesk.controller.selection import SelectionStore

log = logging.getLogger(__name__)


class WorkflowState(StrEnum):
    IDLE = "idle"
    OPEN = "open"
    SUBMITTING = "submitting"


@dataclass
class Workflow:
    """Dialog state of one mutation workflow."""

    kind: MutationKind
    state: WorkflowState = WorkflowState.IDLE
    candidates: list[str] = field(default_factory=list)
    targets: set[str] = field(default_factory=set)
    message: str = ""
    commit_hash: str | None = None
    error: MutationError | None = None

    def clear(self) -> None:
        self.state = WorkflowState.IDLE
        self.candidates = []
        self.targets = set()
        self.message = ""
        self.commit_hash = None
        self.error = None


class BulkMutationCoordinator:
    """Drive commit/rollback dialogs from open to submission.

    Each workflow moves IDLE -> OPEN -> SUBMITTING and back to IDLE on
    success or OPEN on failure. Only one workflow may be submitting at a
    time. After a successful submission the selection store is resynced
    from the backend instead of being patched locally.
    """

    def __init__(
        self,
        service: RemoteRepositoryService,
        store: SelectionStore,
        *,
        notify: Notify | None = None,
    ) -> None:
        self._service = service
        self._store = store
        self._notify = notify or log_notify
        self._workflows = {kind: Workflow(kind) for kind in MutationKind}

    def workflow(self, kind: MutationKind) -> Workflow:
        return self._workflows[kind]

    @property
    def submitting(self) -> MutationKind | None:
        for workflow in self._workflows.values():
            if workflow.state == WorkflowState.SUBMITTING:
                return workflow.kind
        return None

    def _ensure_not_submitting(self) -> None:
        busy = self.submitting
        if busy is not None:
            raise WorkflowBusyError(f"A {busy.value} is already in progress")

    def _require_open(self, kind: MutationKind) -> Workflow:
        workflow = self._workflows[kind]
        if workflow.state != WorkflowState.OPEN:
            raise ValidationError(f"The {kind.value} dialog is not open")
        return workflow

    def open(self, kind: MutationKind, candidates: list[str] | None = None) -> Workflow:
        """Open a dialog with every candidate file pre-selected."""
        self._ensure_not_submitting()
        workflow = self._workflows[kind]
        if workflow.state == WorkflowState.OPEN:
            return workflow

        selected = self._store.selected_commit
        if candidates is None:
            if kind == MutationKind.ROLLBACK and selected is not None:
                candidates = self._store.change_list
            else:
                candidates = self._store.working_set_files

        workflow.clear()
        workflow.state = WorkflowState.OPEN
        workflow.candidates = list(dict.fromkeys(candidates))
        workflow.targets = set(workflow.candidates)
        if kind == MutationKind.ROLLBACK and selected is not None and not selected.is_working_set:
            workflow.commit_hash = selected.hash
        log.debug(
            "Opened mutation dialog",
            extra={"kind": kind.value, "candidates": len(workflow.candidates)},
        )
        return workflow

    def cancel(self, kind: MutationKind) -> None:
        workflow = self._workflows[kind]
        if workflow.state == WorkflowState.SUBMITTING:
            raise WorkflowBusyError(f"The {kind.value} is being submitted")
        workflow.clear()

    def toggle(self, kind: MutationKind, path: str) -> bool:
        """Flip selection of one candidate; returns whether it is now selected."""
        workflow = self._require_open(kind)
        if path not in workflow.candidates:
            return False
        if path in workflow.targets:
            workflow.targets.discard(path)
            return False
        workflow.targets.add(path)
        return True

    def select_all(self, kind: MutationKind) -> None:
        workflow = self._require_open(kind)
        workflow.targets = set(workflow.candidates)

    def clear_targets(self, kind: MutationKind) -> None:
        self._require_open(kind).targets = set()

    def set_message(self, kind: MutationKind, message: str) -> None:
        self._require_open(kind).message = message

    def build_request(self, kind: MutationKind) -> MutationRequest:
        """Validate the open dialog and build its request (raises ValidationError)."""
        workflow = self._require_open(kind)
        return MutationRequest(
            kind=kind,
            target_files=frozenset(workflow.targets),
            message=workflow.message.strip() or None,
            commit_hash=workflow.commit_hash,
        )

    async def submit(self, kind: MutationKind) -> bool:
        """Submit the open dialog.

        Validation problems raise before the backend is contacted. Backend
        failures keep the dialog open with the error and the chosen files.
        """
        self._ensure_not_submitting()
        request = self.build_request(kind)
        workflow = self._workflows[kind]
        workflow.state = WorkflowState.SUBMITTING
        workflow.error = None

        try:
            if kind == MutationKind.COMMIT:
                assert request.message is not None
                commit_hash = await self._service.create_commit(
                    request.ordered_files, request.message
                )
                result = f"Committed {len(request.target_files)} file(s) as {commit_hash[:8]}"
            else:
                result = await self._service.rollback_files(
                    request.ordered_files, request.commit_hash
                )
        except Exception as exc:  # noqa: BLE001 - surfaced in the dialog for retry
            error = MutationError(kind.value, exc)
            workflow.state = WorkflowState.OPEN
            workflow.error = error
            log.warning(str(error), exc_info=exc)
            self._notify(str(error), severity="error")
            return False

        workflow.clear()
        self._notify(result, severity="information")
        await self._store.refresh_after_mutation()
        return True
