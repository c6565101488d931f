"""Per-tick gaze observations.

One :class:`GazeSample` is written per scheduler tick. It carries the trial
context that was current when the tick was processed, the ray that was used
and the AOI it resolved to.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .events import Phase
from .geometry import Ray


@dataclass(frozen=True)
class AoiHit:
    """Result of a hit test against the active AOI regions."""

    aoi_id: str
    slot_index: int
    label: Optional[str]
    point: np.ndarray
    distance: float


@dataclass(frozen=True)
class GazeSample:
    """Single tick of the gaze stream. Immutable once written."""

    timestamp_ms: int
    trial_id: int
    phase: Phase
    set_size: int
    retention_s: float
    ray: Ray
    is_real_gaze: bool
    viewport: Tuple[float, float]
    aoi_id: Optional[str] = None
    slot_index: Optional[int] = None
    label: Optional[str] = None
    hit_point: Optional[np.ndarray] = None
    distance: Optional[float] = None

    @property
    def reference_point(self) -> np.ndarray:
        """Hit point, or a point one metre along the ray when nothing was hit."""
        if self.hit_point is not None:
            return self.hit_point
        return self.ray.point_at(1.0)
