"""Per-run temporary workspace, removed at the end of the run or at exit."""

from __future__ import annotations

import atexit
import logging
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "yolospots-imgs_"


class Workspace:
    """A fresh temporary folder owned by exactly one run.

    The folder is created with ``tempfile.mkdtemp`` so concurrent runs never
    share it, and registered with ``atexit`` so it is removed even when the
    run does not get to clean up after itself.
    """

    def __init__(self, keep: bool = False, prefix: str = WORKSPACE_PREFIX) -> None:
        self.keep = keep
        self._prefix = prefix
        self.path: Path | None = None

    def create(self) -> Path:
        """Create the folder.

        Raises:
            OSError: If the temporary folder cannot be created.
        """
        self.path = Path(tempfile.mkdtemp(prefix=self._prefix))
        if not self.keep:
            atexit.register(self._remove)
        return self.path

    def cleanup(self) -> None:
        """Remove the folder unless asked to keep it."""
        if self.path is None:
            return
        if self.keep:
            logger.info("Keeping workspace %s", self.path)
            return
        atexit.unregister(self._remove)
        self._remove()

    def _remove(self) -> None:
        if self.path is not None and self.path.exists():
            shutil.rmtree(self.path, ignore_errors=True)

    def __enter__(self) -> Path:
        return self.create()

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()

