"""Tests for yolospots.core.exceptions."""

import pytest

from yolospots.core.exceptions import (
    ConfigurationError,
    DetectionRunError,
    IngestionError,
    LaunchError,
    RunCancelledError,
    StagingError,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_detection_run_error(self):
        for exc_cls in (StagingError, ConfigurationError, LaunchError,
                        RunCancelledError, IngestionError):
            assert issubclass(exc_cls, DetectionRunError)

    def test_catch_all_with_base(self):
        with pytest.raises(DetectionRunError):
            raise LaunchError("yolo")

    def test_staging_error_message(self):
        exc = StagingError("/tmp/ws", "disk full")
        assert "/tmp/ws" in str(exc)
        assert "disk full" in str(exc)
        assert exc.path == "/tmp/ws"

    def test_launch_error_reason(self):
        exc = LaunchError("yolo detect predict", "No such file or directory")
        assert str(exc) == "Problem running yolo detect predict:\nNo such file or directory"
        assert not exc.permission_denied

    def test_launch_error_permission(self):
        exc = LaunchError("yolo", "[Errno 13] Permission denied", permission_denied=True)
        assert "does not have the file permission to run" in str(exc)
        assert exc.permission_denied

    def test_cancelled_message(self):
        assert "yolo" in str(RunCancelledError("yolo"))

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            raise ConfigurationError("Path to a YOLO model is not set.")

    def test_ingestion_error_message(self):
        exc = IngestionError("/out/labels", "not found")
        assert "/out/labels" in str(exc)
        assert exc.reason == "not found"
