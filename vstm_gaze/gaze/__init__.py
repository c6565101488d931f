"""Gaze ray acquisition and AOI resolution."""

from .aoi import AoiRegion, BoxAoiResolver, intersect_box
from .base import IAoiResolver, IEyeTrackingDevice, IGazeRaySource
from .camera import PinholeCamera, default_camera
from .sources import (
    CameraForwardRaySource,
    EyeSensorRaySource,
    PointerRaySource,
    ScriptedScanRaySource,
)

__all__ = [
    "AoiRegion",
    "BoxAoiResolver",
    "CameraForwardRaySource",
    "EyeSensorRaySource",
    "IAoiResolver",
    "IEyeTrackingDevice",
    "IGazeRaySource",
    "PinholeCamera",
    "PointerRaySource",
    "ScriptedScanRaySource",
    "default_camera",
    "intersect_box",
]
