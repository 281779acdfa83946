"""Tests for yolospots.detect.launcher."""

from __future__ import annotations

import sys

import pytest

from yolospots.core.exceptions import LaunchError, RunCancelledError
from yolospots.core.models import FrameCompleted, LogLine
from yolospots.detect.launcher import LogTailer, YoloLogListener, run_process


class TestYoloLogListener:
    def test_image_lines_count_frames(self, recorder):
        listener = YoloLogListener(recorder.context, total=4)
        event = listener.classify("image 1/4 /tmp/0.tif: 640x640 2 cells, 8.0ms")
        assert event == FrameCompleted(1, 4)
        assert listener.done == 1

    def test_other_lines_are_log(self, recorder):
        listener = YoloLogListener(recorder.context, total=4)
        assert listener.classify("Ultralytics 8.3.0") == LogLine("Ultralytics 8.3.0")
        assert listener.done == 0

    def test_blank_lines_ignored(self, recorder):
        listener = YoloLogListener(recorder.context, total=4)
        assert listener.classify("   ") is None

    def test_pattern_anchored_at_line_start(self, recorder):
        listener = YoloLogListener(recorder.context, total=4)
        assert isinstance(listener.classify("  image 1/4 x"), LogLine)

    def test_progress_never_exceeds_one(self, recorder):
        listener = YoloLogListener(recorder.context, total=2)
        for i in range(5):
            listener.handle(f"image {i + 1}/5 x.tif")
        assert listener.done == 2
        assert recorder.progress == [0.5, 1.0, 1.0, 1.0, 1.0]

    def test_handle_forwards_log_lines(self, recorder):
        listener = YoloLogListener(recorder.context, total=1)
        listener.handle("Speed: 1.0ms preprocess")
        listener.handle("")
        assert recorder.log == [" - Speed: 1.0ms preprocess\n"]

    def test_zero_total(self, recorder):
        listener = YoloLogListener(recorder.context, total=0)
        listener.handle("image 1/1 x")
        assert recorder.progress == [1.0]


class TestLogTailer:
    def test_reads_existing_lines(self, tmp_path):
        p = tmp_path / "run.log"
        p.write_text("first\nsecond\r\nthird")
        lines: list[str] = []
        with LogTailer(p, lines.append, delay=0.01):
            pass
        assert lines == ["first", "second", "third"]

    def test_file_created_after_start(self, tmp_path):
        p = tmp_path / "late.log"
        lines: list[str] = []
        tailer = LogTailer(p, lines.append, delay=0.01).start()
        p.write_text("a\nb\n")
        tailer.stop()
        assert lines == ["a", "b"]
        assert not tailer.running

    def test_carriage_return_progress_lines(self, tmp_path):
        p = tmp_path / "cr.log"
        p.write_text("10%\r50%\r100%\n")
        lines: list[str] = []
        with LogTailer(p, lines.append, delay=0.01):
            pass
        assert lines == ["10%", "50%", "100%"]

    def test_missing_file_gives_nothing(self, tmp_path):
        lines: list[str] = []
        with LogTailer(tmp_path / "never.log", lines.append, delay=0.01):
            pass
        assert lines == []

    def test_failing_handler_does_not_stop_tailing(self, tmp_path):
        p = tmp_path / "run.log"
        p.write_text("bad\ngood\n")
        lines: list[str] = []

        def handler(line: str) -> None:
            if line == "bad":
                raise RuntimeError("boom")
            lines.append(line)

        with LogTailer(p, handler, delay=0.01):
            pass
        assert lines == ["good"]

    def test_start_twice(self, tmp_path):
        tailer = LogTailer(tmp_path / "x.log", lambda line: None, delay=0.01)
        with tailer:
            with pytest.raises(RuntimeError):
                tailer.start()


@pytest.mark.slow
class TestRunProcess:
    def test_output_reaches_log_and_progress(self, tmp_path, recorder):
        script = "print('image 1/2 a'); print('Loading model'); print('image 2/2 b')"
        log = tmp_path / "run.log"
        code = run_process([sys.executable, "-c", script], log, 2, recorder.context)

        assert code == 0
        assert recorder.progress == [0.5, 1.0]
        assert recorder.log == [" - Loading model\n"]
        assert "image 2/2 b" in log.read_text()

    def test_stderr_captured(self, tmp_path, recorder):
        script = "import sys; sys.stderr.write('CUDA not available\\n')"
        log = tmp_path / "run.log"
        run_process([sys.executable, "-c", script], log, 1, recorder.context)
        assert "CUDA not available" in log.read_text()

    def test_exit_code_returned(self, tmp_path):
        code = run_process([sys.executable, "-c", "raise SystemExit(3)"], tmp_path / "run.log", 1)
        assert code == 3

    def test_log_appended(self, tmp_path):
        log = tmp_path / "run.log"
        log.write_text("earlier run\n")
        run_process([sys.executable, "-c", "print('later run')"], log, 1)
        assert log.read_text().splitlines() == ["earlier run", "later run"]

    def test_on_start_receives_process(self, tmp_path):
        seen = []
        run_process([sys.executable, "-c", "pass"], tmp_path / "run.log", 1, on_start=seen.append)
        assert len(seen) == 1
        assert seen[0].pid > 0

    def test_missing_executable(self, tmp_path):
        with pytest.raises(LaunchError) as excinfo:
            run_process(
                [str(tmp_path / "no-such-yolo"), "detect", "predict"],
                tmp_path / "run.log", 1, command_name="yolo detect predict",
            )
        assert not excinfo.value.permission_denied
        assert excinfo.value.command == "yolo detect predict"

    def test_permission_denied(self, tmp_path, make_fake_yolo):
        exe = make_fake_yolo(executable=False)
        with pytest.raises(LaunchError) as excinfo:
            run_process([str(exe)], tmp_path / "run.log", 1)
        assert excinfo.value.permission_denied
        assert "file permission" in str(excinfo.value)

    def test_cancel_terminates(self, tmp_path, recorder):
        recorder.context.cancel()
        with pytest.raises(RunCancelledError):
            run_process(
                [sys.executable, "-c", "import time; time.sleep(30)"],
                tmp_path / "run.log", 1, recorder.context, poll_interval=0.05,
            )

    def test_cancel_while_running(self, tmp_path, recorder):
        with pytest.raises(RunCancelledError):
            run_process(
                [sys.executable, "-c", "import time; time.sleep(30)"],
                tmp_path / "run.log", 1, recorder.context,
                poll_interval=0.05,
                on_start=lambda process: recorder.context.cancel(),
            )
