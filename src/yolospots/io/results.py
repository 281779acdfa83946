"""Import YOLO ``save_txt`` result files as calibrated detections.

Each result file holds one detection per line::

    class_id center_x center_y width height [confidence]

Center, width and height are normalized to [0, 1] relative to the image
that was given to the detector, i.e. the crop interval. The confidence is
only present when the tool was run with ``save_conf``.
"""

from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple, Sequence

from yolospots.core.context import RunContext
from yolospots.core.exceptions import IngestionError
from yolospots.core.models import CropInterval, DetectionCollection, DetectionRecord

logger = logging.getLogger(__name__)

RESULT_SUFFIX = ".txt"

# Last run of digits right before the file extension.
FRAME_INDEX_PATTERN = re.compile(r"(\d+)(?=\.[^.]+$)")

DEFAULT_MAX_WORKERS = 4


class LabelLine(NamedTuple):
    """One parsed result line. ``confidence`` is None for 5-field lines."""

    class_id: int
    center_x: float
    center_y: float
    width: float
    height: float
    confidence: float | None = None


@dataclass
class IngestionReport:
    """Detections recovered from a results folder plus non-fatal diagnostics."""

    detections: DetectionCollection
    files_read: int = 0
    warnings: list[str] = field(default_factory=list)


def parse_label_line(line: str) -> LabelLine:
    """Parse one result line.

    Raises:
        ValueError: If the line has fewer than 5 fields or a field is not
            a number.
    """
    values = line.split()
    if len(values) < 5:
        raise ValueError(
            f"unexpected number of values. Should be at least 5, but was {len(values)}."
        )
    try:
        class_id = int(float(values[0]))
    except OverflowError:
        raise ValueError(f"class id is not a finite number: {values[0]!r}") from None
    center_x, center_y, width, height = (float(v) for v in values[1:5])
    confidence = float(values[5]) if len(values) > 5 else None
    return LabelLine(class_id, center_x, center_y, width, height, confidence)


def to_detection(
    label: LabelLine,
    interval: CropInterval,
    calibration: Sequence[float],
) -> DetectionRecord:
    """Convert a normalized box to a detection in physical coordinates.

    The radius is ``0.5 * (w + h) / 2`` with ``w`` and ``h`` the calibrated
    box width and height.
    """
    width = interval.width
    height = interval.height
    x = calibration[0] * (interval.x_min + label.center_x * width)
    y = calibration[1] * (interval.y_min + label.center_y * height)
    w = calibration[0] * label.width * width
    h = calibration[1] * label.height * height
    r = 0.5 * (w + h) / 2.0
    quality = label.confidence if label.confidence is not None else 1.0
    return DetectionRecord(x=x, y=y, z=0.0, radius=r, quality=quality, class_id=label.class_id)


def frame_index_from_name(name: str, frame_offset: int = 0) -> int | None:
    """Time index encoded in a result file name, or None if there is none.

    ``frame_offset`` is subtracted from the parsed number; staged frames are
    named by their zero-based index, so the default is 0.
    """
    match = FRAME_INDEX_PATTERN.search(name)
    if match is None:
        return None
    return int(match.group(1)) - frame_offset


def import_result_file(
    path: Path,
    interval: CropInterval,
    calibration: Sequence[float],
    context: RunContext | None = None,
    warnings: list[str] | None = None,
) -> list[DetectionRecord]:
    """Read one result file into a list of detections.

    Malformed lines are reported and skipped. Blank lines are ignored.

    Raises:
        OSError: If the file cannot be read.
    """
    context = context or RunContext()
    detections: list[DetectionRecord] = []
    with open(path, encoding="utf-8") as fh:
        for ln, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                label = parse_label_line(line)
            except ValueError as exc:
                msg = f"Line {ln} in file {path}: {exc}"
                context.error(msg)
                if warnings is not None:
                    warnings.append(msg)
                continue
            detections.append(to_detection(label, interval, calibration))
    return detections


def list_result_files(folder: Path) -> list[Path]:
    """Regular files in ``folder`` with the result suffix.

    Raises:
        IngestionError: If the folder cannot be listed.
    """
    folder = Path(folder)
    try:
        return sorted(
            p for p in folder.iterdir()
            if p.is_file() and p.name.endswith(RESULT_SUFFIX)
        )
    except OSError as exc:
        raise IngestionError(str(folder), str(exc)) from exc


def ingest_results(
    folder: Path,
    interval: CropInterval,
    calibration: Sequence[float],
    context: RunContext | None = None,
    frame_offset: int = 0,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> IngestionReport:
    """Import every result file of ``folder`` into a DetectionCollection.

    Files are parsed concurrently; frames may be inserted in any order.
    Files without a frame index, files whose index is negative after
    applying ``frame_offset`` and files that cannot be read are reported
    and skipped.

    Args:
        folder: The ``labels`` folder written by the detector.
        interval: Crop interval that was passed to the detector.
        calibration: Physical pixel size along (x, y, z).
        context: Receives diagnostics.
        frame_offset: Subtracted from the index found in each file name.
        max_workers: Upper bound on parallel file reads.

    Returns:
        IngestionReport with the collection and all diagnostics.

    Raises:
        IngestionError: If the folder itself cannot be listed.
    """
    context = context or RunContext()
    report = IngestionReport(detections=DetectionCollection())
    files = list_result_files(folder)

    lock = threading.Lock()
    jobs: list[tuple[int, Path]] = []
    for path in files:
        t = frame_index_from_name(path.name, frame_offset)
        if t is None:
            _warn(
                report, context,
                f"Could not find the time-point indication in the filename of file: {path}. Skipping.",
            )
            continue
        if t < 0:
            _warn(
                report, context,
                f"Frame index {t} of file {path} is negative with offset {frame_offset}. Skipping.",
            )
            continue
        jobs.append((t, path))

    def _ingest(job: tuple[int, Path]) -> None:
        t, path = job
        file_warnings: list[str] = []
        try:
            detections = import_result_file(path, interval, calibration, context, file_warnings)
        except (OSError, ValueError, OverflowError) as exc:
            file_warnings.append(f"Error reading the file {path}: {exc}")
            context.error(file_warnings[-1])
            detections = None
        if detections is not None:
            report.detections.put(t, detections)
        with lock:
            report.warnings.extend(file_warnings)
            if detections is not None:
                report.files_read += 1

    if jobs:
        workers = max(1, min(max_workers, len(jobs)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="yolospots-ingest") as pool:
            list(pool.map(_ingest, jobs))

    logger.info(
        "Imported %d detection(s) over %d frame(s) from %s",
        report.detections.n_detections, len(report.detections), folder,
    )
    return report


def _warn(report: IngestionReport, context: RunContext, message: str) -> None:
    report.warnings.append(message)
    context.error(message)
