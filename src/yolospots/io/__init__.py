"""yolospots IO — TIFF access, frame export, result import."""

from yolospots.io.frames import export_frames, extract_frame, to_rgb
from yolospots.io.results import (
    IngestionReport,
    LabelLine,
    frame_index_from_name,
    import_result_file,
    ingest_results,
    parse_label_line,
    to_detection,
)
from yolospots.io.tiff import read_calibration, read_image_region, write_tiff

__all__ = [
    "IngestionReport",
    "LabelLine",
    "export_frames",
    "extract_frame",
    "frame_index_from_name",
    "import_result_file",
    "ingest_results",
    "parse_label_line",
    "read_calibration",
    "read_image_region",
    "to_detection",
    "to_rgb",
    "write_tiff",
]
