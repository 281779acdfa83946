"""Tests for yolospots.io.frames."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import tifffile

from yolospots.core.exceptions import StagingError
from yolospots.core.models import CropInterval, ImageRegion
from yolospots.io.frames import export_frames, extract_frame, frame_name, to_rgb


class TestFrameName:
    def test_zero_based_index(self):
        assert frame_name(0) == "0"
        assert frame_name(20) == "20"


class TestExportFrames:
    def test_one_file_per_time_point(self, tmp_path, time_lapse, recorder):
        region = ImageRegion(time_lapse, "TYX")
        paths = export_frames(region, tmp_path, recorder.context)
        assert [p.name for p in paths] == ["0.tif", "1.tif", "2.tif"]
        for p in paths:
            data = tifffile.imread(str(p))
            assert data.shape == (32, 48, 3)
            assert data.dtype == np.uint8

    def test_progress_reported_per_frame(self, tmp_path, time_lapse, recorder):
        export_frames(ImageRegion(time_lapse, "TYX"), tmp_path, recorder.context)
        assert recorder.progress == pytest.approx([1 / 3, 2 / 3, 1.0])

    def test_frames_named_by_absolute_index(self, tmp_path):
        data = np.zeros((25, 8, 8), dtype=np.uint8)
        region = ImageRegion(data, "TYX", interval=CropInterval(0, 7, 0, 7, t_min=20, t_max=22))
        paths = export_frames(region, tmp_path)
        assert [p.name for p in paths] == ["20.tif", "21.tif", "22.tif"]

    def test_no_time_axis_writes_single_frame(self, tmp_path):
        region = ImageRegion(np.ones((16, 16), dtype=np.uint16), "YX")
        paths = export_frames(region, tmp_path)
        assert [p.name for p in paths] == ["0.tif"]

    def test_crop_applied(self, tmp_path, time_lapse):
        region = ImageRegion(
            time_lapse, "TYX",
            interval=CropInterval(x_min=10, x_max=19, y_min=4, y_max=8, t_min=0, t_max=0),
        )
        (path,) = export_frames(region, tmp_path)
        assert tifffile.imread(str(path)).shape == (5, 10, 3)

    def test_unwritable_folder_raises(self, tmp_path, time_lapse):
        missing = tmp_path / "does-not-exist"
        with pytest.raises(StagingError) as excinfo:
            export_frames(ImageRegion(time_lapse, "TYX"), missing)
        assert excinfo.value.path == str(missing)
        assert "0.tif" in excinfo.value.reason


class TestExtractFrame:
    def test_channel_moved_last(self):
        data = np.arange(2 * 3 * 4 * 5).reshape(2, 3, 4, 5)
        region = ImageRegion(data, "TCYX")
        frame = extract_frame(region, 1)
        assert frame.shape == (4, 5, 3)
        np.testing.assert_array_equal(frame[..., 2], data[1, 2])

    def test_z_kept_first(self):
        region = ImageRegion(np.zeros((3, 6, 7)), "ZYX")
        assert extract_frame(region, 0).shape == (3, 6, 7)


class TestToRgb:
    def test_grayscale_stretched_and_replicated(self):
        frame = np.array([[0, 100], [200, 400]], dtype=np.uint16)
        rgb = to_rgb(frame, has_channel=False)
        assert rgb.shape == (2, 2, 3)
        assert rgb.dtype == np.uint8
        assert rgb[0, 0, 0] == 0
        assert rgb[1, 1, 0] == 255
        np.testing.assert_array_equal(rgb[..., 0], rgb[..., 2])

    def test_rgb_uint8_unchanged(self):
        frame = np.random.default_rng(1).integers(0, 255, (4, 4, 3), dtype=np.uint8)
        assert to_rgb(frame, has_channel=True) is frame

    def test_two_channels_get_empty_blue(self):
        frame = np.stack([np.eye(3), np.eye(3) * 2], axis=-1)
        rgb = to_rgb(frame, has_channel=True)
        assert rgb.shape == (3, 3, 3)
        assert not rgb[..., 2].any()

    def test_extra_channels_dropped(self):
        frame = np.ones((3, 3, 5), dtype=np.uint16)
        assert to_rgb(frame, has_channel=True).shape == (3, 3, 3)

    def test_constant_frame_is_black(self):
        rgb = to_rgb(np.full((3, 3), 7, dtype=np.uint16), has_channel=False)
        assert not rgb.any()
