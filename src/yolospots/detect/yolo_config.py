"""Run configuration for ``yolo detect predict`` and the protocol the runner needs."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Protocol, runtime_checkable

from yolospots.core.exceptions import ConfigurationError

# Settings keys, shared with saved tracking settings.
KEY_YOLO_MODEL_FILEPATH = "YOLO_MODEL_FILEPATH"
KEY_YOLO_CONF = "YOLO_CONF_THRESHOLD"
KEY_YOLO_IOU = "YOLO_IOU_THRESHOLD"
KEY_USE_GPU = "USE_GPU"

DEFAULT_YOLO_MODEL_FILEPATH = ""
DEFAULT_YOLO_CONF = 0.25
DEFAULT_YOLO_IOU = 0.7
DEFAULT_USE_GPU = True
DEFAULT_EXECUTABLE = "yolo"


@runtime_checkable
class RunConfiguration(Protocol):
    """What a detection run needs from its command-line configuration."""

    @property
    def command_name(self) -> str:
        """Name of the command, for messages."""

    def set_input_folder(self, path: str | Path) -> None:
        """Folder holding the staged frames."""

    def set_output_folder(self, path: str | Path) -> None:
        """Folder the tool writes its results into."""

    def validate(self) -> str | None:
        """Return None when ready to run, an error message otherwise."""

    def build_command(self) -> list[str]:
        """Ordered command tokens, executable first."""


@dataclass
class YoloPredictConfig:
    """Arguments of ``yolo detect predict``.

    Attributes:
        model_path: Path to a trained YOLO model file (``.pt``).
        conf: Minimum confidence threshold for detections. Objects detected
            with confidence below this threshold are disregarded.
        iou: Intersection Over Union threshold for Non-Maximum Suppression.
            Lower values eliminate more overlapping boxes.
        use_gpu: Run inference on the GPU (``cuda``, or ``mps`` on macOS)
            instead of the CPU. A new config runs on the CPU, while
            ``from_settings`` falls back to ``DEFAULT_USE_GPU`` (True) when
            the settings do not say.
        executable: The ``yolo`` executable, a name on PATH or a full path.
        conda_env: Optional conda environment to run the executable in.
        image_folder: Folder of ``.tif`` frames. Set by the runner.
        output_folder: Folder the text results go to. Set by the runner.
    """

    model_path: str = DEFAULT_YOLO_MODEL_FILEPATH
    conf: float = DEFAULT_YOLO_CONF
    iou: float = DEFAULT_YOLO_IOU
    use_gpu: bool = False
    executable: str = DEFAULT_EXECUTABLE
    conda_env: str | None = None
    image_folder: str | None = None
    output_folder: str | None = None

    # Fixed flags: text results with confidence, no overlay images.
    save_txt: bool = True
    save_conf: bool = True
    save: bool = False

    @property
    def command_name(self) -> str:
        return f"{self.executable} detect predict"

    def set_input_folder(self, path: str | Path) -> None:
        self.image_folder = str(path)

    def set_output_folder(self, path: str | Path) -> None:
        self.output_folder = str(path)

    @property
    def device(self) -> str:
        """Device token for the ``device=`` argument."""
        if not self.use_gpu:
            return "cpu"
        if sys.platform == "darwin":
            return "mps"
        return "cuda"

    def validate(self) -> str | None:
        """Check every argument, returning the first problem found."""
        if not self.executable:
            return "The executable name is empty."
        if not self.model_path:
            return "Path to a YOLO model is not set."
        if not Path(self.model_path).is_file():
            return f"Path to a YOLO model does not point to an existing file: {self.model_path}"
        if not (0.0 <= self.conf <= 1.0):
            return f"Confidence threshold must be between 0 and 1, got {self.conf}"
        if not (0.0 <= self.iou <= 1.0):
            return f"IoU threshold must be between 0 and 1, got {self.iou}"
        if not self.image_folder:
            return "Input image folder path is not set."
        if not Path(self.image_folder).is_dir():
            return f"Input image folder does not exist: {self.image_folder}"
        if not self.output_folder:
            return "Output folder is not set."
        if self.conda_env is not None and not self.conda_env.strip():
            return "The conda environment name is empty."
        return None

    def build_command(self) -> list[str]:
        """Tokens of the full command line, in order."""
        cmd: list[str] = []
        if self.conda_env:
            cmd += ["conda", "run", "--no-capture-output", "-n", self.conda_env]
        cmd += [self.executable, "detect", "predict"]
        cmd += [
            f"model={self.model_path}",
            f"conf={self.conf}",
            f"iou={self.iou}",
            f"source={self.image_folder}",
            f"project={self.output_folder}",
            f"device={self.device}",
            f"save_txt={self.save_txt}",
            f"save_conf={self.save_conf}",
            f"save={self.save}",
        ]
        return cmd

    def to_settings(self) -> dict[str, Any]:
        """Convert to a settings dict keyed by the ``KEY_*`` constants."""
        return {
            KEY_YOLO_MODEL_FILEPATH: self.model_path,
            KEY_YOLO_CONF: self.conf,
            KEY_YOLO_IOU: self.iou,
            KEY_USE_GPU: self.use_gpu,
        }

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], **kwargs: Any) -> YoloPredictConfig:
        """Build a config from a settings dict; missing keys take defaults.

        Unlike the constructor, a missing ``USE_GPU`` means the GPU is used.

        Raises:
            ConfigurationError: If a value has the wrong type.
        """
        model_path = settings.get(KEY_YOLO_MODEL_FILEPATH, DEFAULT_YOLO_MODEL_FILEPATH)
        conf = settings.get(KEY_YOLO_CONF, DEFAULT_YOLO_CONF)
        iou = settings.get(KEY_YOLO_IOU, DEFAULT_YOLO_IOU)
        use_gpu = settings.get(KEY_USE_GPU, DEFAULT_USE_GPU)
        if not isinstance(model_path, str):
            raise ConfigurationError(f"{KEY_YOLO_MODEL_FILEPATH} must be a string, got {model_path!r}")
        for key, value in ((KEY_YOLO_CONF, conf), (KEY_YOLO_IOU, iou)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{key} must be a number, got {value!r}")
        if not isinstance(use_gpu, bool):
            raise ConfigurationError(f"{KEY_USE_GPU} must be a boolean, got {use_gpu!r}")
        return cls(
            model_path=model_path,
            conf=float(conf),
            iou=float(iou),
            use_gpu=use_gpu,
            **kwargs,
        )
