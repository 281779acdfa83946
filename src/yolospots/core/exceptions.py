"""Exception classes for detection runs."""


class DetectionRunError(Exception):
    """Base exception for all detection-run errors."""


class StagingError(DetectionRunError):
    """Raised when the input image cannot be staged into the workspace."""

    def __init__(self, path: str | None = None, reason: str | None = None) -> None:
        msg = f"Problem saving image frames to {path}" if path else "Problem saving image frames"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.path = path
        self.reason = reason


class ConfigurationError(DetectionRunError, ValueError):
    """Raised when detector settings are invalid or do not validate."""


class LaunchError(DetectionRunError):
    """Raised when the external executable cannot be started."""

    def __init__(
        self,
        command: str | None = None,
        reason: str | None = None,
        permission_denied: bool = False,
    ) -> None:
        msg = f"Problem running {command}" if command else "Problem running external command"
        if permission_denied:
            msg = f"{msg}:\nThe executable does not have the file permission to run."
        elif reason:
            msg = f"{msg}:\n{reason}"
        super().__init__(msg)
        self.command = command
        self.reason = reason
        self.permission_denied = permission_denied


class RunCancelledError(DetectionRunError):
    """Raised when the caller aborts a run while the external process is alive."""

    def __init__(self, command: str | None = None) -> None:
        msg = f"Run of {command} was cancelled" if command else "Run was cancelled"
        super().__init__(msg)
        self.command = command


class IngestionError(DetectionRunError):
    """Raised when the results folder cannot be enumerated."""

    def __init__(self, path: str | None = None, reason: str | None = None) -> None:
        msg = f"Cannot read results folder: {path}" if path else "Cannot read results folder"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.path = path
        self.reason = reason
