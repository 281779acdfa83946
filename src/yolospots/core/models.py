"""Data models for images, detections and run progress."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Iterator

import numpy as np

VALID_AXES = frozenset("TCZYX")


@dataclass(frozen=True)
class CropInterval:
    """Inclusive pixel/frame bounds of the region passed to the detector.

    Z and T bounds are optional and only meaningful when the image carries
    the corresponding axis.
    """

    x_min: int
    x_max: int
    y_min: int
    y_max: int
    z_min: int | None = None
    z_max: int | None = None
    t_min: int | None = None
    t_max: int | None = None

    def __post_init__(self) -> None:
        """Validate that every range is well ordered and non-negative."""
        for axis in ("x", "y", "z", "t"):
            lo = getattr(self, f"{axis}_min")
            hi = getattr(self, f"{axis}_max")
            if (lo is None) != (hi is None):
                raise ValueError(f"{axis}_min and {axis}_max must be given together")
            if lo is None:
                continue
            if lo < 0:
                raise ValueError(f"{axis}_min must be >= 0, got {lo}")
            if hi < lo:
                raise ValueError(f"{axis}_max ({hi}) must be >= {axis}_min ({lo})")

    @property
    def width(self) -> int:
        return self.x_max - self.x_min + 1

    @property
    def height(self) -> int:
        return self.y_max - self.y_min + 1

    @property
    def has_z(self) -> bool:
        return self.z_min is not None

    @property
    def has_time(self) -> bool:
        return self.t_min is not None

    @property
    def n_frames(self) -> int:
        """Number of time points covered, 1 when there is no time range."""
        if self.t_min is None or self.t_max is None:
            return 1
        return self.t_max - self.t_min + 1

    def frame_indices(self) -> range:
        """Absolute time indices covered by this interval."""
        if self.t_min is None or self.t_max is None:
            return range(0, 1)
        return range(self.t_min, self.t_max + 1)


@dataclass(frozen=True, eq=False)
class ImageRegion:
    """An axis-labelled array, a crop interval and a spatial calibration.

    Attributes:
        data: Pixel data, one dimension per letter in ``axes``.
        axes: Axis letters among ``T``, ``C``, ``Z``, ``Y``, ``X`` in data
            order, e.g. ``"TYX"`` or ``"TZCYX"``. Y and X are mandatory.
        calibration: Physical pixel size along (x, y, z).
        interval: Region to process. Defaults to the full image extent.
    """

    data: np.ndarray
    axes: str
    calibration: tuple[float, float, float] = (1.0, 1.0, 1.0)
    interval: CropInterval | None = None

    def __post_init__(self) -> None:
        """Validate axes against the data and fill in the default interval."""
        axes = self.axes.upper()
        if len(axes) != self.data.ndim:
            raise ValueError(
                f"axes {self.axes!r} do not match data with {self.data.ndim} dimensions"
            )
        if len(set(axes)) != len(axes):
            raise ValueError(f"axes must not repeat, got {self.axes!r}")
        unknown = set(axes) - VALID_AXES
        if unknown:
            raise ValueError(f"Unknown axes {sorted(unknown)}; allowed: {sorted(VALID_AXES)}")
        if "X" not in axes or "Y" not in axes:
            raise ValueError(f"axes must include X and Y, got {self.axes!r}")
        if len(self.calibration) != 3:
            raise ValueError(f"calibration must have 3 values (x, y, z), got {self.calibration!r}")
        object.__setattr__(self, "axes", axes)
        object.__setattr__(self, "calibration", tuple(float(c) for c in self.calibration))

        interval = self.interval or full_interval(self.data, axes)
        self._check_interval(interval, axes)
        object.__setattr__(self, "interval", interval)

    def _check_interval(self, interval: CropInterval, axes: str) -> None:
        bounds = {"X": (interval.x_min, interval.x_max), "Y": (interval.y_min, interval.y_max)}
        if "Z" in axes:
            if not interval.has_z:
                raise ValueError("image has a Z axis but the interval has no Z range")
            bounds["Z"] = (interval.z_min, interval.z_max)
        elif interval.has_z:
            raise ValueError("interval has a Z range but the image has no Z axis")
        if "T" in axes:
            if not interval.has_time:
                raise ValueError("image has a T axis but the interval has no T range")
            bounds["T"] = (interval.t_min, interval.t_max)
        elif interval.has_time:
            raise ValueError("interval has a T range but the image has no T axis")

        for axis, (_, hi) in bounds.items():
            size = self.data.shape[axes.index(axis)]
            if hi >= size:
                raise ValueError(f"interval exceeds image along {axis}: {hi} >= {size}")

    @property
    def has_time(self) -> bool:
        return "T" in self.axes

    @property
    def has_channel(self) -> bool:
        return "C" in self.axes

    @property
    def has_z(self) -> bool:
        return "Z" in self.axes

    @property
    def n_frames(self) -> int:
        assert self.interval is not None
        return self.interval.n_frames

    def with_interval(self, interval: CropInterval) -> ImageRegion:
        """Return a copy of this region restricted to another interval."""
        return replace(self, interval=interval)


def full_interval(data: np.ndarray, axes: str) -> CropInterval:
    """Build the interval spanning the whole extent of ``data``."""
    axes = axes.upper()

    def _range(axis: str) -> tuple[int | None, int | None]:
        if axis not in axes:
            return None, None
        return 0, data.shape[axes.index(axis)] - 1

    x_min, x_max = _range("X")
    y_min, y_max = _range("Y")
    z_min, z_max = _range("Z")
    t_min, t_max = _range("T")
    if x_min is None or y_min is None:
        raise ValueError(f"axes must include X and Y, got {axes!r}")
    return CropInterval(
        x_min=x_min, x_max=x_max, y_min=y_min, y_max=y_max,  # type: ignore[arg-type]
        z_min=z_min, z_max=z_max, t_min=t_min, t_max=t_max,
    )


@dataclass(frozen=True)
class DetectionRecord:
    """One detection converted to calibrated physical coordinates."""

    x: float
    y: float
    z: float
    radius: float
    quality: float = 1.0
    class_id: int = 0


@dataclass(frozen=True)
class FrameCompleted:
    """The external tool reported one more processed frame."""

    done: int
    total: int

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return self.done / self.total


@dataclass(frozen=True)
class LogLine:
    """A raw line of the external tool's log, forwarded for display."""

    text: str


ProgressEvent = FrameCompleted | LogLine


class DetectionCollection:
    """Frame index -> list of detections, safe for concurrent inserts.

    All mutations go through a single lock. Iteration and ``frames()`` are
    in ascending frame order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frames: dict[int, list[DetectionRecord]] = {}

    def put(self, frame: int, detections: list[DetectionRecord]) -> None:
        """Store the detections of one frame, replacing any previous list."""
        with self._lock:
            self._frames[frame] = list(detections)

    def get(self, frame: int) -> list[DetectionRecord]:
        with self._lock:
            return list(self._frames.get(frame, []))

    def frames(self) -> list[int]:
        with self._lock:
            return sorted(self._frames)

    def items(self) -> list[tuple[int, list[DetectionRecord]]]:
        with self._lock:
            return [(t, list(self._frames[t])) for t in sorted(self._frames)]

    @property
    def n_detections(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._frames.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)

    def __contains__(self, frame: object) -> bool:
        with self._lock:
            return frame in self._frames

    def __iter__(self) -> Iterator[int]:
        return iter(self.frames())

    def __repr__(self) -> str:
        return f"DetectionCollection(frames={len(self)}, detections={self.n_detections})"

    def to_dataframe(self):  # type: ignore[no-untyped-def]
        """Flatten the collection into a pandas DataFrame, one row per detection."""
        import pandas as pd

        rows = [
            {
                "frame": frame,
                "x": d.x,
                "y": d.y,
                "z": d.z,
                "radius": d.radius,
                "quality": d.quality,
                "class_id": d.class_id,
            }
            for frame, detections in self.items()
            for d in detections
        ]
        columns = ["frame", "x", "y", "z", "radius", "quality", "class_id"]
        return pd.DataFrame(rows, columns=columns)

