"""Capability interfaces consumed by the gaze pipeline.

Consumers (recorder, controller, reticle-like glue) depend only on these
interfaces, never on the concrete device that produced a ray.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from ..domain.geometry import Ray
from ..domain.samples import AoiHit


class IGazeRaySource(ABC):
    """Produces one gaze ray per query."""

    @abstractmethod
    def try_get_ray(self) -> Tuple[Ray, bool]:
        """Return ``(ray, is_real)``; ``is_real`` is False for synthesized fallback rays."""
        raise NotImplementedError


class IAoiResolver(ABC):
    """Maps a ray to the AOI it currently intersects."""

    @abstractmethod
    def resolve(self, ray: Ray) -> Optional[AoiHit]:
        """Return the nearest hit, or None when no active region is hit."""
        raise NotImplementedError


class IEyeTrackingDevice(ABC):
    """Minimal view of an eye-tracking headset."""

    @abstractmethod
    def is_valid(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def fixation_point(self) -> Optional[np.ndarray]:
        """Binocular fixation point in world space, when the device reports one."""
        raise NotImplementedError

    @abstractmethod
    def center_eye_pose(self) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """``(position, forward)`` of the centre eye, when tracked."""
        raise NotImplementedError
