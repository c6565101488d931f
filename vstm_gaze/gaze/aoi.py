"""Hit testing of gaze rays against the currently displayed items."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .base import IAoiResolver
from ..config.constants import GazeConstants
from ..domain.geometry import Ray, as_vec3
from ..domain.samples import AoiHit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AoiRegion:
    """Axis-aligned cube around one displayed item."""

    aoi_id: str
    slot_index: int
    label: Optional[str]
    center: np.ndarray
    half_extent: float

    @property
    def lower(self) -> np.ndarray:
        return self.center - self.half_extent

    @property
    def upper(self) -> np.ndarray:
        return self.center + self.half_extent


def intersect_box(ray: Ray, lower: np.ndarray, upper: np.ndarray) -> Optional[float]:
    """Slab test; distance to the entry point (0 if the origin is inside) or None."""
    t_near = -np.inf
    t_far = np.inf
    for axis in range(3):
        o = ray.origin[axis]
        d = ray.direction[axis]
        if d == 0.0:
            if o < lower[axis] or o > upper[axis]:
                return None
            continue
        t1 = (lower[axis] - o) / d
        t2 = (upper[axis] - o) / d
        if t1 > t2:
            t1, t2 = t2, t1
        t_near = max(t_near, t1)
        t_far = min(t_far, t2)
        if t_near > t_far:
            return None
    if t_far < 0.0:
        return None
    return float(max(t_near, 0.0))


class BoxAoiResolver(IAoiResolver):
    """Resolves rays against a registry of active item regions.

    The display surface registers a region when it shows an item and
    unregisters it when the item disappears, so only visible items can be
    hit.
    """

    def __init__(self, max_distance_m: float = GazeConstants.DEFAULT_MAX_RAY_DISTANCE_M) -> None:
        self.max_distance_m = max_distance_m
        self._regions: Dict[int, AoiRegion] = {}

    def register(self, region: AoiRegion) -> None:
        if region.slot_index in self._regions:
            logger.debug("Replacing AOI region in slot %s", region.slot_index)
        self._regions[region.slot_index] = AoiRegion(
            aoi_id=region.aoi_id,
            slot_index=region.slot_index,
            label=region.label,
            center=as_vec3(region.center),
            half_extent=float(region.half_extent),
        )

    def unregister(self, slot_index: int) -> None:
        self._regions.pop(slot_index, None)

    def clear(self) -> None:
        self._regions.clear()

    def active_regions(self) -> List[AoiRegion]:
        return [self._regions[key] for key in sorted(self._regions)]

    def resolve(self, ray: Ray) -> Optional[AoiHit]:
        best: Optional[AoiHit] = None
        for region in self.active_regions():
            distance = intersect_box(ray, region.lower, region.upper)
            if distance is None or distance > self.max_distance_m:
                continue
            if best is None or distance < best.distance:
                best = AoiHit(
                    aoi_id=region.aoi_id,
                    slot_index=region.slot_index,
                    label=region.label,
                    point=ray.point_at(distance),
                    distance=distance,
                )
        return best
