"""yolospots core — data models, run context, exceptions."""

from yolospots.core.context import RunContext
from yolospots.core.exceptions import (
    ConfigurationError,
    DetectionRunError,
    IngestionError,
    LaunchError,
    RunCancelledError,
    StagingError,
)
from yolospots.core.models import (
    CropInterval,
    DetectionCollection,
    DetectionRecord,
    FrameCompleted,
    ImageRegion,
    LogLine,
    ProgressEvent,
    full_interval,
)

__all__ = [
    "ConfigurationError",
    "CropInterval",
    "DetectionCollection",
    "DetectionRecord",
    "DetectionRunError",
    "FrameCompleted",
    "ImageRegion",
    "IngestionError",
    "LaunchError",
    "LogLine",
    "ProgressEvent",
    "RunCancelledError",
    "RunContext",
    "StagingError",
    "full_interval",
]
