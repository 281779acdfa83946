"""Abstract global-detector interface and run result."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from yolospots.core.models import DetectionCollection


@dataclass(frozen=True)
class DetectionRunResult:
    """Outcome of one detection run.

    Attributes:
        success: Whether the run reached the end without a fatal error.
        detections: Frame index -> detections. Empty when the run failed.
        error_message: Human-readable reason for failure, None on success.
        elapsed_seconds: Wall-clock time of the run, recorded on every path.
        warnings: Non-fatal diagnostics (malformed result lines, etc.).
        exit_code: Exit code of the external process, None if it never ran.
    """

    success: bool
    detections: DetectionCollection
    error_message: str | None = None
    elapsed_seconds: float = 0.0
    warnings: list[str] = field(default_factory=list)
    exit_code: int | None = None


class GlobalDetector(ABC):
    """A detector that processes all frames of an image in a single call.

    Concrete implementations (e.g., YoloDetector) implement ``process()``
    and expose the outcome through ``result``, ``error_message`` and
    ``processing_time``.
    """

    @abstractmethod
    def process(self) -> bool:
        """Run detection on every frame.

        Returns:
            True on success. On failure ``error_message`` says why.
        """

    @property
    @abstractmethod
    def result(self) -> DetectionCollection | None:
        """Detections of the last run, None before the first run."""

    @property
    @abstractmethod
    def error_message(self) -> str | None:
        """Reason the last run failed, None if it succeeded."""

    @property
    @abstractmethod
    def processing_time(self) -> float:
        """Wall-clock duration of the last run, in seconds."""
