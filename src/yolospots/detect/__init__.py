"""yolospots Detect — run configuration, process launcher and YOLO detector."""

from yolospots.detect.base_detector import DetectionRunResult, GlobalDetector
from yolospots.detect.launcher import LogTailer, YoloLogListener, run_process
from yolospots.detect.serialization import config_from_yaml, config_to_yaml
from yolospots.detect.yolo_config import RunConfiguration, YoloPredictConfig
from yolospots.detect.yolo_detector import RunState, YoloDetector

__all__ = [
    "DetectionRunResult",
    "GlobalDetector",
    "LogTailer",
    "RunConfiguration",
    "RunState",
    "YoloDetector",
    "YoloLogListener",
    "YoloPredictConfig",
    "config_from_yaml",
    "config_to_yaml",
    "run_process",
]
