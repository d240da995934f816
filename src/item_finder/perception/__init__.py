"""Boundary to the external camera / detection pipeline."""

from .detection_source import (
    DetectionSource,
    FrameThrottle,
    PerceptionError,
    detections_from_dicts,
)

__all__ = [
    "DetectionSource",
    "FrameThrottle",
    "PerceptionError",
    "detections_from_dicts",
]
