"""Launch the external detector and follow its log while it runs."""

from __future__ import annotations

import errno
import logging
import re
import subprocess
import threading
from pathlib import Path
from typing import Callable, Sequence

from yolospots.core.context import RunContext
from yolospots.core.exceptions import LaunchError, RunCancelledError
from yolospots.core.models import FrameCompleted, LogLine, ProgressEvent

logger = logging.getLogger(__name__)

TAIL_DELAY_SECONDS = 0.2
TERMINATE_TIMEOUT_SECONDS = 5.0

# One line per processed frame, e.g. "image 3/20 /tmp/.../2.tif: 640x640 4 cells, 12.1ms"
IMAGE_NUMBER_PATTERN = re.compile(r"^image \d+/\d+.*")

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class YoloLogListener:
    """Turn log lines into progress events.

    Lines announcing a processed image increase the done-counter and report
    ``done / total`` as progress. Any other non-blank line is forwarded to
    the context log. The counter never exceeds ``total``.
    """

    def __init__(self, context: RunContext, total: int) -> None:
        self._context = context
        self.total = max(total, 1)
        self.done = 0

    def classify(self, line: str) -> ProgressEvent | None:
        """Event for one log line, None for blank lines. Updates the counter."""
        if IMAGE_NUMBER_PATTERN.match(line):
            if self.done < self.total:
                self.done += 1
            return FrameCompleted(self.done, self.total)
        if not line.strip():
            return None
        return LogLine(line)

    def handle(self, line: str) -> None:
        event = self.classify(line)
        if isinstance(event, FrameCompleted):
            self._context.progress(event.fraction)
        elif isinstance(event, LogLine):
            self._context.log(" - " + event.text + "\n")


class LogTailer:
    """Follow a growing text file from its start on a background thread.

    The file may not exist yet when tailing starts. Every ``delay`` seconds
    the new content is read and each complete line is passed to ``handler``.
    On ``stop()`` the remaining content, including an unterminated last
    line, is handed over before the thread exits.

    Use as a context manager so the thread is stopped on every exit path::

        with LogTailer(path, listener.handle):
            ...
    """

    def __init__(
        self,
        path: Path,
        handler: Callable[[str], None],
        delay: float = TAIL_DELAY_SECONDS,
    ) -> None:
        self.path = Path(path)
        self._handler = handler
        self._delay = delay
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._buffer = ""
        self._fh = None

    def start(self) -> LogTailer:
        if self._thread is not None:
            raise RuntimeError("LogTailer already started")
        self._thread = threading.Thread(
            target=self._run, name=f"tail-{self.path.name}", daemon=True,
        )
        self._thread.start()
        return self

    def stop(self) -> None:
        """Stop tailing and wait for the last lines to be handled."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> LogTailer:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                self._poll()
                self._stop.wait(self._delay)
            self._poll(final=True)
        finally:
            if self._fh is not None:
                self._fh.close()
                self._fh = None

    def _poll(self, final: bool = False) -> None:
        if self._fh is None:
            try:
                self._fh = open(self.path, encoding="utf-8", errors="replace", newline="")
            except FileNotFoundError:
                return
        try:
            chunk = self._fh.read()
        except OSError as exc:
            logger.warning("Could not read log file %s: %s", self.path, exc)
            return
        if chunk:
            self._buffer += chunk
        *lines, self._buffer = _LINE_BREAK.split(self._buffer)
        if final and self._buffer:
            lines.append(self._buffer)
            self._buffer = ""
        for line in lines:
            self._dispatch(line)

    def _dispatch(self, line: str) -> None:
        try:
            self._handler(line)
        except Exception:
            logger.warning("Log handler failed on line %r", line, exc_info=True)


def run_process(
    command: Sequence[str],
    log_path: Path,
    n_frames: int,
    context: RunContext | None = None,
    command_name: str | None = None,
    poll_interval: float = TAIL_DELAY_SECONDS,
    on_start: Callable[[subprocess.Popen], None] | None = None,
) -> int:
    """Run ``command`` to completion, appending its output to ``log_path``.

    Standard output and standard error both go to the log file, which is
    tailed concurrently to report per-frame progress to ``context``. The
    tailer is started before the process and stopped on every exit path.

    Args:
        command: Full command line, executable first.
        log_path: Log file; created if missing, appended to otherwise.
        n_frames: Number of frames the tool will report.
        context: Progress, log and cancellation.
        command_name: Name used in error messages. Defaults to ``command[0]``.
        poll_interval: How often to check for exit and cancellation.
        on_start: Called with the process handle once it is running.

    Returns:
        The process exit code. It is not interpreted here.

    Raises:
        LaunchError: If the executable cannot be started.
        RunCancelledError: If ``context.cancel_event`` was set while running.
    """
    context = context or RunContext()
    log_path = Path(log_path)
    name = command_name or command[0]
    listener = YoloLogListener(context, n_frames)

    with LogTailer(log_path, listener.handle), open(log_path, "ab") as log_file:
        try:
            process = subprocess.Popen(
                list(command),
                stdout=log_file,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                cwd=str(log_path.parent),
            )  # noqa: S603
        except OSError as exc:
            raise LaunchError(
                name, str(exc), permission_denied=exc.errno == errno.EACCES,
            ) from exc

        try:
            if on_start is not None:
                on_start(process)
            return _wait(process, context, name, poll_interval)
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()


def _wait(
    process: subprocess.Popen,
    context: RunContext,
    name: str,
    poll_interval: float,
) -> int:
    while True:
        try:
            return_code = process.wait(timeout=poll_interval)
        except subprocess.TimeoutExpired:
            if context.cancelled:
                logger.info("Cancelling %s (pid %d)", name, process.pid)
                process.terminate()
                try:
                    process.wait(timeout=TERMINATE_TIMEOUT_SECONDS)
                except subprocess.TimeoutExpired:
                    process.kill()
                    process.wait()
                raise RunCancelledError(name) from None
            continue
        logger.info("%s exited with code %d", name, return_code)
        return return_code
