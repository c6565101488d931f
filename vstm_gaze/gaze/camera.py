"""Pinhole camera used to build simulated rays and viewport coordinates."""
from __future__ import annotations

import math
from typing import Iterable, Tuple

import numpy as np

from ..domain.geometry import UP, Ray, as_vec3, normalize


class PinholeCamera:
    """Viewer camera with viewport coordinates in ``[0, 1]^2``.

    ``(0, 0)`` is the bottom-left and ``(1, 1)`` the top-right corner of the
    view, ``(0.5, 0.5)`` lies on the optical axis.
    """

    def __init__(
        self,
        position: Iterable[float] = (0.0, 1.2, -0.45),
        forward: Iterable[float] = (0.0, -1.0, 1.0),
        up: Iterable[float] = UP,
        vertical_fov_deg: float = 60.0,
        aspect: float = 16.0 / 9.0,
    ) -> None:
        if not 0.0 < vertical_fov_deg < 180.0:
            raise ValueError(f"vertical_fov_deg must be in (0, 180), got {vertical_fov_deg}")
        if aspect <= 0:
            raise ValueError(f"aspect must be > 0, got {aspect}")
        self.position = as_vec3(position)
        self.forward = normalize(as_vec3(forward))
        right = np.cross(as_vec3(up), self.forward)
        self.right = normalize(right, fallback=np.array([1.0, 0.0, 0.0]))
        self.up = np.cross(self.forward, self.right)
        self.vertical_fov_deg = vertical_fov_deg
        self.aspect = aspect
        self._tan_half = math.tan(math.radians(vertical_fov_deg) / 2.0)

    def forward_ray(self) -> Ray:
        return Ray(self.position, self.forward)

    def viewport_direction(self, vx: float, vy: float) -> np.ndarray:
        """Unnormalised direction through a viewport point (unit depth along forward)."""
        ndc_x = (vx - 0.5) * 2.0
        ndc_y = (vy - 0.5) * 2.0
        return (
            self.forward
            + self.right * ndc_x * self._tan_half * self.aspect
            + self.up * ndc_y * self._tan_half
        )

    def viewport_to_world(self, vx: float, vy: float, depth: float) -> np.ndarray:
        """World point at ``depth`` metres in front of the camera."""
        return self.position + self.viewport_direction(vx, vy) * depth

    def viewport_to_ray(self, vx: float, vy: float) -> Ray:
        return Ray(self.position, self.viewport_direction(vx, vy))

    def world_to_viewport(self, point: Iterable[float]) -> Tuple[float, float]:
        """Project a world point; points behind the camera mirror like Unity does."""
        rel = as_vec3(point) - self.position
        depth = float(rel @ self.forward)
        if abs(depth) < 1e-9:
            depth = 1e-9
        x_cam = float(rel @ self.right)
        y_cam = float(rel @ self.up)
        vx = 0.5 + 0.5 * x_cam / (depth * self._tan_half * self.aspect)
        vy = 0.5 + 0.5 * y_cam / (depth * self._tan_half)
        return vx, vy


def default_camera() -> PinholeCamera:
    """Seated viewer looking down at a table 0.45 m in front of them."""
    return PinholeCamera()
