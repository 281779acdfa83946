"""yolospots — run an external YOLO predictor and import its detections as spots."""

__version__ = "0.1.0"
