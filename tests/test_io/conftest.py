"""Shared fixtures for IO module tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from yolospots.core.models import CropInterval


@pytest.fixture
def labels_dir(tmp_path: Path) -> Path:
    """An empty ``labels`` folder as the detector would create it."""
    d = tmp_path / "output" / "predict" / "labels"
    d.mkdir(parents=True)
    return d


@pytest.fixture
def square_interval() -> CropInterval:
    """A 100x100 single-frame interval at the origin."""
    return CropInterval(x_min=0, x_max=99, y_min=0, y_max=99)
