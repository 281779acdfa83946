"""Frame export — resave an image region as one RGB TIFF per time point."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from skimage.color import gray2rgb
from skimage.exposure import rescale_intensity
from skimage.util import img_as_ubyte

from yolospots.core.context import RunContext
from yolospots.core.exceptions import StagingError
from yolospots.core.models import ImageRegion
from yolospots.io.tiff import write_tiff

logger = logging.getLogger(__name__)

FRAME_SUFFIX = ".tif"


def frame_name(t: int) -> str:
    """File stem of the staged frame for time index ``t``."""
    return f"{t:d}"


def export_frames(
    region: ImageRegion,
    folder: Path,
    context: RunContext | None = None,
) -> list[Path]:
    """Resave ``region`` one time point per file so the detector can read it.

    Files are named after their zero-based time index (``0.tif``,
    ``20.tif``). Images without a time axis produce a single ``0.tif``.
    Each frame is cropped to the region interval (all channels kept),
    reordered to ``(Z,) Y, X, C`` and converted to 8-bit RGB.

    Args:
        region: Image, crop interval and calibration to export.
        folder: Existing destination folder.
        context: Receives progress after each written frame.

    Returns:
        Paths of the written files, in time order.

    Raises:
        StagingError: On the first frame that cannot be written. Frames
            already written are left in place.
    """
    context = context or RunContext()
    interval = region.interval
    assert interval is not None
    folder = Path(folder)

    indices = list(interval.frame_indices())
    total = len(indices)
    written: list[Path] = []
    for i, t in enumerate(indices):
        frame = extract_frame(region, t)
        path = folder / f"{frame_name(t)}{FRAME_SUFFIX}"
        try:
            write_tiff(path, to_rgb(frame, has_channel=region.has_channel), rgb=True)
        except (OSError, ValueError) as exc:
            raise StagingError(str(folder), f"{path.name}: {exc}") from exc
        written.append(path)
        context.progress((i + 1) / total)

    logger.info("Exported %d frame(s) to %s", len(written), folder)
    return written


def extract_frame(region: ImageRegion, t: int) -> np.ndarray:
    """Cropped pixel data of one time point, ordered ``(Z,) Y, X(, C)``.

    Args:
        region: Source region.
        t: Absolute time index. Ignored if the image has no time axis.

    Returns:
        Array with the channel axis, when present, moved last.
    """
    interval = region.interval
    assert interval is not None
    data = region.data
    axes = region.axes

    if "T" in axes:
        data = np.take(data, t, axis=axes.index("T"))
        axes = axes.replace("T", "")

    order = [a for a in "ZYXC" if a in axes]
    data = np.transpose(data, [axes.index(a) for a in order])

    crop: list[slice] = []
    for axis in order:
        if axis == "Z":
            crop.append(slice(interval.z_min, interval.z_max + 1))  # type: ignore[operator]
        elif axis == "Y":
            crop.append(slice(interval.y_min, interval.y_max + 1))
        elif axis == "X":
            crop.append(slice(interval.x_min, interval.x_max + 1))
        else:
            crop.append(slice(None))
    return data[tuple(crop)]


def to_rgb(frame: np.ndarray, has_channel: bool) -> np.ndarray:
    """Convert a frame to 8-bit RGB, channel last.

    A frame that already holds 3 uint8 channels is returned unchanged.
    Otherwise each channel is stretched to 0-255 over its own range;
    a single channel is replicated, two channels get an empty blue
    channel, and channels beyond the third are dropped.
    """
    if has_channel and frame.shape[-1] == 3 and frame.dtype == np.uint8:
        return frame

    if not has_channel:
        return gray2rgb(_rescale_to_uint8(frame))

    n_channels = frame.shape[-1]
    if n_channels > 3:
        logger.warning("Frame has %d channels; only the first 3 are exported", n_channels)
    channels = [_rescale_to_uint8(frame[..., c]) for c in range(min(n_channels, 3))]
    if len(channels) == 1:
        return gray2rgb(channels[0])
    while len(channels) < 3:
        channels.append(np.zeros_like(channels[0]))
    return np.stack(channels, axis=-1)


def _rescale_to_uint8(channel: np.ndarray) -> np.ndarray:
    """Stretch one channel to the full uint8 range; constant input maps to 0."""
    values = channel.astype(np.float64)
    lo = float(values.min()) if values.size else 0.0
    hi = float(values.max()) if values.size else 0.0
    if hi <= lo:
        return np.zeros(channel.shape, dtype=np.uint8)
    scaled = rescale_intensity(values, in_range=(lo, hi), out_range=(0.0, 1.0))
    return img_as_ubyte(scaled)
