"""Ray and vector helpers shared by gaze sources, resolver and camera."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

FORWARD = np.array([0.0, 0.0, 1.0])
UP = np.array([0.0, 1.0, 0.0])

Vec3 = Tuple[float, float, float]


def as_vec3(value: Iterable[float]) -> np.ndarray:
    """Return a float64 3-vector copy of ``value``."""
    vec = np.asarray(list(value), dtype=float)
    if vec.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {vec.shape}")
    return vec


def normalize(vec: np.ndarray, fallback: np.ndarray = FORWARD) -> np.ndarray:
    """Unit-length copy of ``vec``; zero or non-finite vectors map to ``fallback``."""
    norm = float(np.linalg.norm(vec))
    if norm == 0.0 or not np.isfinite(norm):
        return fallback.copy()
    return vec / norm


@dataclass(frozen=True)
class Ray:
    """Gaze ray in world space. The direction is always unit-length."""

    origin: np.ndarray
    direction: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "origin", as_vec3(self.origin))
        object.__setattr__(self, "direction", normalize(as_vec3(self.direction)))

    @classmethod
    def neutral(cls) -> Ray:
        """Forward-facing ray from the world origin."""
        return cls(np.zeros(3), FORWARD)

    def point_at(self, distance: float) -> np.ndarray:
        return self.origin + self.direction * distance

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ray):
            return NotImplemented
        return bool(np.allclose(self.origin, other.origin) and np.allclose(self.direction, other.direction))
