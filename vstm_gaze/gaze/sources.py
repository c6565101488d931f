"""Concrete gaze ray sources.

Three ways of obtaining a ray exist: the real eye tracker, a simulated
pointer (mouse) ray and the camera-forward fallback. A fourth, scripted
viewer drives headless runs. All of them implement
:class:`~vstm_gaze.gaze.base.IGazeRaySource`.
"""
from __future__ import annotations

from typing import Callable, Optional, Tuple

import numpy as np

from .aoi import BoxAoiResolver
from .base import IEyeTrackingDevice, IGazeRaySource
from .camera import PinholeCamera
from ..config.constants import GazeConstants
from ..domain.geometry import Ray


class CameraForwardRaySource(IGazeRaySource):
    """Head/camera forward ray. Never real gaze."""

    def __init__(self, camera: Optional[PinholeCamera] = None) -> None:
        self.camera = camera

    def try_get_ray(self) -> Tuple[Ray, bool]:
        if self.camera is None:
            return Ray.neutral(), False
        return self.camera.forward_ray(), False


class PointerRaySource(IGazeRaySource):
    """Simulated gaze following a pointer given in viewport coordinates."""

    def __init__(
        self,
        camera: PinholeCamera,
        pointer: Callable[[], Tuple[float, float]],
        depth_m: float = GazeConstants.DEFAULT_POINTER_DEPTH_M,
    ) -> None:
        self.camera = camera
        self.pointer = pointer
        self.depth_m = float(
            np.clip(depth_m, GazeConstants.MIN_POINTER_DEPTH_M, GazeConstants.MAX_POINTER_DEPTH_M)
        )

    def try_get_ray(self) -> Tuple[Ray, bool]:
        vx, vy = self.pointer()
        world = self.camera.viewport_to_world(vx, vy, self.depth_m)
        return Ray(self.camera.position, world - self.camera.position), False


class EyeSensorRaySource(IGazeRaySource):
    """Eye tracker ray with a simulated fallback when no device data is available.

    Preference order:
      1. fixation point reported by the device (ray from the camera towards it)
      2. centre-eye pose of the headset
      3. the fallback source, always flagged as not real
    """

    def __init__(
        self,
        device: Optional[IEyeTrackingDevice],
        camera: Optional[PinholeCamera],
        fallback: Optional[IGazeRaySource] = None,
    ) -> None:
        self.device = device
        self.camera = camera
        self.fallback = fallback or CameraForwardRaySource(camera)

    def try_get_ray(self) -> Tuple[Ray, bool]:
        device = self.device
        if device is not None and device.is_valid():
            fixation = device.fixation_point()
            if fixation is not None and self.camera is not None:
                origin = self.camera.position
                return Ray(origin, np.asarray(fixation, dtype=float) - origin), True

            pose = device.center_eye_pose()
            if pose is not None:
                position, forward = pose
                return Ray(position, forward), True

        ray, _ = self.fallback.try_get_ray()
        return ray, False


class ScriptedScanRaySource(IGazeRaySource):
    """Deterministic simulated viewer for headless sessions.

    Every ``dwell_ms`` the viewer picks a new target: the centre of one of
    the currently visible items, or (with ``blank_probability``) a random
    point in view. The choice sequence depends only on ``seed``.
    """

    def __init__(
        self,
        camera: PinholeCamera,
        resolver: BoxAoiResolver,
        now_ms: Callable[[], int],
        dwell_ms: int = 250,
        blank_probability: float = 0.15,
        seed: int = 0,
    ) -> None:
        if dwell_ms <= 0:
            raise ValueError(f"dwell_ms must be > 0, got {dwell_ms}")
        self.camera = camera
        self.resolver = resolver
        self.now_ms = now_ms
        self.dwell_ms = dwell_ms
        self.blank_probability = blank_probability
        self._rng = np.random.default_rng(seed)
        self._target: Optional[np.ndarray] = None
        self._target_since = 0

    def _pick_target(self) -> np.ndarray:
        regions = self.resolver.active_regions()
        if not regions or self._rng.random() < self.blank_probability:
            vx, vy = self._rng.uniform(0.05, 0.95, size=2)
            return self.camera.viewport_to_world(float(vx), float(vy), GazeConstants.DEFAULT_POINTER_DEPTH_M)
        region = regions[int(self._rng.integers(len(regions)))]
        return region.center.copy()

    def try_get_ray(self) -> Tuple[Ray, bool]:
        now = self.now_ms()
        if self._target is None or now - self._target_since >= self.dwell_ms:
            self._target = self._pick_target()
            self._target_since = now
        return Ray(self.camera.position, self._target - self.camera.position), False
