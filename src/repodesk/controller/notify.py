"""User-facing notification hook."""

from __future__ import annotations

import logging
from typing import Literal, Protocol, TypeAlias

log = logging.getLogger(__name__)

Severity: TypeAlias = Literal["information", "warning", "error"]

_LEVELS = {"information": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


class Notify(Protocol):
    """Same call shape as ``textual.app.App.notify``."""

    def __call__(self, message: str, *, severity: Severity = "information") -> None: ...


def log_notify(message: str, *, severity: Severity = "information") -> None:
    """Fallback notifier used when no view is attached."""
    log.log(_LEVELS.get(severity, logging.INFO), message)
