"""YoloDetector — stage frames, run ``yolo detect predict``, import its results."""

from __future__ import annotations

import enum
import logging
import subprocess
import time
from pathlib import Path

from yolospots.core.context import RunContext
from yolospots.core.exceptions import (
    ConfigurationError,
    IngestionError,
    LaunchError,
    RunCancelledError,
    StagingError,
)
from yolospots.core.models import DetectionCollection, ImageRegion
from yolospots.detect._workspace import Workspace
from yolospots.detect.base_detector import DetectionRunResult, GlobalDetector
from yolospots.detect.launcher import run_process
from yolospots.detect.yolo_config import RunConfiguration
from yolospots.io.frames import export_frames
from yolospots.io.results import DEFAULT_MAX_WORKERS, ingest_results

logger = logging.getLogger(__name__)

BASE_ERROR_MESSAGE = "[YOLO] "

OUTPUT_FOLDER_NAME = "output"

YOLO_LOG_FILENAME = "yolo-predict.log"

LABELS_SUBFOLDER = Path("predict") / "labels"


class RunState(enum.Enum):
    """Where a detection run currently is."""

    IDLE = "idle"
    STAGING = "staging"
    CONFIGURING = "configuring"
    LAUNCHING = "launching"
    RUNNING = "running"
    INGESTING = "ingesting"
    DONE = "done"
    FAILED = "failed"


class YoloDetector(GlobalDetector):
    """Run an external YOLO installation on every frame of an image region.

    One call to ``process()`` goes through these steps:

    1. Resave the region, one RGB TIFF per time point, in a fresh
       temporary workspace.
    2. Point the run configuration at that folder and validate it.
    3. Launch the tool with its output appended to a log file, tailing the
       log to report per-frame progress, and wait for it to exit.
    4. Import the text result files as calibrated detections.

    The exit code of the tool is not checked: the result files are what
    count. Problems while importing results are reported but do not fail
    the run.

    Args:
        region: Image, crop interval and calibration to process.
        config: Command-line configuration of the tool.
        context: Progress, status, log and error sinks; cancellation flag.
        keep_workspace: Leave the temporary workspace on disk after the run.
        frame_offset: Subtracted from the index found in each result file
            name. Staged frames are named by their zero-based index.
        max_workers: Upper bound on parallel result-file reads.
    """

    def __init__(
        self,
        region: ImageRegion,
        config: RunConfiguration,
        context: RunContext | None = None,
        keep_workspace: bool = False,
        frame_offset: int = 0,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.region = region
        self.config = config
        self.context = context or RunContext()
        self.keep_workspace = keep_workspace
        self.frame_offset = frame_offset
        self.max_workers = max_workers

        self.state = RunState.IDLE
        self.workspace_path: Path | None = None
        self.exit_code: int | None = None
        self.warnings: list[str] = []
        self._result: DetectionCollection | None = None
        self._error_message: str | None = None
        self._processing_time = 0.0

    @property
    def result(self) -> DetectionCollection | None:
        return self._result

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def processing_time(self) -> float:
        return self._processing_time

    def run(self) -> DetectionRunResult:
        """Like ``process()``, returning everything in one result object."""
        ok = self.process()
        return DetectionRunResult(
            success=ok,
            detections=self._result if self._result is not None else DetectionCollection(),
            error_message=self._error_message,
            elapsed_seconds=round(self._processing_time, 3),
            warnings=list(self.warnings),
            exit_code=self.exit_code,
        )

    def process(self) -> bool:
        self._error_message = None
        self._result = DetectionCollection()
        self.warnings = []
        self.exit_code = None
        self.workspace_path = None
        start = time.monotonic()

        workspace = Workspace(keep=self.keep_workspace)
        try:
            return self._process(workspace)
        finally:
            self._processing_time = time.monotonic() - start
            workspace.cleanup()

    def _process(self, workspace: Workspace) -> bool:
        ctx = self.context
        region = self.region
        interval = region.interval
        assert interval is not None

        # Resave input image.
        self._set_state(RunState.STAGING)
        try:
            img_folder = workspace.create()
        except OSError as exc:
            return self._fail(f"Could not create temp folder to save input image:\n{exc}")
        self.workspace_path = img_folder
        ctx.status("Resaving source image")
        ctx.log(f"Saving source image to {img_folder}\n")
        try:
            export_frames(region, img_folder, ctx)
        except StagingError as exc:
            logger.warning("Staging failed: %s", exc, exc_info=True)
            return self._fail(f"Problem saving image frames to {img_folder}\n{exc.reason or ''}")
        output_folder = img_folder / OUTPUT_FOLDER_NAME

        # Check validity of the configuration.
        self._set_state(RunState.CONFIGURING)
        self.config.set_input_folder(img_folder)
        self.config.set_output_folder(output_folder)
        try:
            self._validate_config()
        except ConfigurationError as exc:
            return self._fail(str(exc))

        command_name = self.config.command_name
        log_path = img_folder / YOLO_LOG_FILENAME
        if ctx.cancelled:
            return self._fail(str(RunCancelledError(command_name)))

        # Run the tool.
        self._set_state(RunState.LAUNCHING)
        try:
            cmd = self.config.build_command()
            ctx.status(f"Running {command_name}")
            ctx.log(f"Running {command_name} with args:\n{' '.join(cmd)}\n")
            self.exit_code = run_process(
                cmd,
                log_path,
                region.n_frames,
                ctx,
                command_name=command_name,
                on_start=lambda _process: self._set_state(RunState.RUNNING),
            )
        except (LaunchError, RunCancelledError) as exc:
            logger.warning("%s", exc)
            return self._fail(str(exc) + self._log_contents(log_path))
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            logger.warning("Problem running %s: %s", command_name, exc, exc_info=True)
            return self._fail(
                f"Problem running {command_name}:\n{exc}" + self._log_contents(log_path)
            )

        if self.exit_code != 0:
            logger.info("%s returned exit code %d", command_name, self.exit_code)

        # Get results back.
        self._set_state(RunState.INGESTING)
        ctx.status("Importing detections")
        labels_folder = output_folder / LABELS_SUBFOLDER
        try:
            report = ingest_results(
                labels_folder,
                interval,
                region.calibration,
                ctx,
                frame_offset=self.frame_offset,
                max_workers=self.max_workers,
            )
        except IngestionError as exc:
            msg = BASE_ERROR_MESSAGE + str(exc)
            logger.warning("%s", msg)
            ctx.error(msg + "\n")
            self.warnings.append(msg)
        else:
            self._result = report.detections
            self.warnings.extend(report.warnings)

        self._set_state(RunState.DONE)
        ctx.log(
            f"Found {self._result.n_detections} detection(s) "
            f"in {len(self._result)} frame(s).\n"
        )
        return True

    def _validate_config(self) -> None:
        error = self.config.validate()
        if error is not None:
            raise ConfigurationError(error)

    def _set_state(self, state: RunState) -> None:
        logger.debug("Run state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self, message: str) -> bool:
        self._error_message = BASE_ERROR_MESSAGE + message
        self._result = DetectionCollection()
        self._set_state(RunState.FAILED)
        return False

    @staticmethod
    def _log_contents(log_path: Path) -> str:
        """The tool's log, prefixed with a newline, or '' if unreadable."""
        try:
            return "\n" + log_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return ""
