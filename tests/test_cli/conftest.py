"""Shared fixtures for CLI module tests."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import tifffile
from click.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def movie_path(tmp_path: Path) -> Path:
    """A 3-frame ImageJ time-lapse with 0.5 um pixels."""
    data = np.random.default_rng(0).integers(0, 4096, size=(3, 32, 48), dtype=np.uint16)
    p = tmp_path / "movie.tif"
    tifffile.imwrite(
        str(p), data, imagej=True,
        resolution=(2.0, 2.0),
        metadata={"axes": "TYX", "unit": "um"},
    )
    return p


@pytest.fixture
def fake_yolo_args(make_fake_yolo, model_file) -> list[str]:
    """Options pointing ``detect`` at a fake yolo executable and model."""
    return ["--model", str(model_file), "--executable", str(make_fake_yolo())]
