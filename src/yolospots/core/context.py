"""RunContext — the sinks and cancellation flag shared by one detection run."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger("yolospots")


def _log_status(message: str) -> None:
    logger.info("%s", message)


def _log_line(message: str) -> None:
    logger.info("%s", message.rstrip("\n"))


def _log_error(message: str) -> None:
    logger.warning("%s", message.rstrip("\n"))


def _ignore_progress(fraction: float) -> None:
    return None


@dataclass
class RunContext:
    """Everything a component may report to, passed explicitly into each call.

    Attributes:
        progress: Receives a completion fraction in [0, 1].
        status: Receives short one-line status updates.
        log: Receives free-form log text, including lines from the tool.
        error: Receives non-fatal diagnostics.
        cancel_event: Set by the caller to abort a running external process.
    """

    progress: Callable[[float], None] = _ignore_progress
    status: Callable[[str], None] = _log_status
    log: Callable[[str], None] = _log_line
    error: Callable[[str], None] = _log_error
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Request the running process to stop."""
        self.cancel_event.set()
