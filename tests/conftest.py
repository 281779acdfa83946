"""Shared test fixtures for yolospots."""

from __future__ import annotations

import stat
import sys
from pathlib import Path
from typing import Callable

import numpy as np
import pytest

from yolospots.core.context import RunContext

# A stand-in for `yolo detect predict`: prints one "image i/n" line per
# staged frame and writes one label file per frame.
_FAKE_YOLO = '''#!{python}
import sys
from pathlib import Path

args = dict(a.split("=", 1) for a in sys.argv[1:] if "=" in a)
source = Path(args["source"])
labels = Path(args["project"]) / "predict" / "labels"
labels.mkdir(parents=True, exist_ok=True)
frames = sorted(source.glob("*.tif"), key=lambda p: int(p.stem))
print("Ultralytics fake predictor", flush=True)
print({stderr!r}, file=sys.stderr, flush=True)
for i, frame in enumerate(frames, start=1):
    print(f"image {{i}}/{{len(frames)}} {{frame}}: 640x640 1 cell, 1.0ms", flush=True)
    if {write_labels!r}:
        (labels / f"{{frame.stem}}.txt").write_text({label_text!r})
sys.exit({exit_code!r})
'''


@pytest.fixture
def make_fake_yolo(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing an executable fake `yolo` script into tmp_path."""

    def _make(
        name: str = "yolo",
        label_text: str = "0 0.5 0.5 0.2 0.2 0.9\n",
        exit_code: int = 0,
        stderr: str = "",
        write_labels: bool = True,
        executable: bool = True,
    ) -> Path:
        script = tmp_path / "bin" / name
        script.parent.mkdir(exist_ok=True)
        script.write_text(_FAKE_YOLO.format(
            python=sys.executable,
            label_text=label_text,
            exit_code=exit_code,
            stderr=stderr,
            write_labels=write_labels,
        ))
        mode = stat.S_IRUSR | stat.S_IWUSR
        if executable:
            mode |= stat.S_IXUSR
        script.chmod(mode)
        return script

    return _make


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    """An empty file standing in for a trained model."""
    p = tmp_path / "model.pt"
    p.write_bytes(b"")
    return p


class RecordingContext:
    """Collects everything a RunContext receives."""

    def __init__(self) -> None:
        self.progress: list[float] = []
        self.status: list[str] = []
        self.log: list[str] = []
        self.errors: list[str] = []
        self.context = RunContext(
            progress=self.progress.append,
            status=self.status.append,
            log=self.log.append,
            error=self.errors.append,
        )


@pytest.fixture
def recorder() -> RecordingContext:
    """A RunContext that records every event."""
    return RecordingContext()


@pytest.fixture
def time_lapse() -> np.ndarray:
    """A 3-frame 2D uint16 time-lapse, axes TYX."""
    rng = np.random.default_rng(0)
    return rng.integers(0, 4096, size=(3, 32, 48), dtype=np.uint16)
