# vstm_gaze/task/display.py
"""
Stimulus display surface.

The controller only tells the display *what* to show (the cells of a trial
and their labels); the display decides *where* the items go and keeps the
AOI resolver in sync with what is visible. Rendering itself is someone
else's job.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import numpy as np

from ..config import GridConfig
from ..config.constants import TaskConstants, ValidationMessages
from ..domain.geometry import as_vec3
from ..domain.trials import TrialSpec, cell_aoi_id
from ..errors import ConfigurationError
from ..gaze.aoi import AoiRegion, BoxAoiResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableSurface:
    """Table the items rest on; ``position`` is the centre of the table slab."""

    position: tuple = (0.0, 0.72, 0.0)
    thickness: float = 0.04

    @property
    def top_y(self) -> float:
        return float(self.position[1]) + self.thickness / 2.0


@dataclass(frozen=True)
class ItemTemplate:
    """Shape and edge length of a stimulus item."""

    scale_m: float = TaskConstants.DEFAULT_OBJECT_SCALE_M
    shape: str = "cube"


@dataclass(frozen=True)
class DisplayItem:
    """One visible item. ``index`` is its slot (study order; added item last)."""

    index: int
    cell: int
    aoi_id: str
    label: Optional[str]
    position: np.ndarray


class StimulusDisplay(ABC):
    """What the trial controller needs from a display surface."""

    @abstractmethod
    def show_layout(self, spec: TrialSpec) -> List[DisplayItem]:
        """Show every study item of ``spec``; returns them in slot order."""
        raise NotImplementedError

    @abstractmethod
    def remove_item(self, cell: int) -> Optional[DisplayItem]:
        raise NotImplementedError

    @abstractmethod
    def add_item(self, cell: int, label: Optional[str]) -> DisplayItem:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def visible_items(self) -> List[DisplayItem]:
        raise NotImplementedError


class TableGridDisplay(StimulusDisplay):
    """gridSize x gridSize cells centred on the table top.

    Row 0 is the far row; column 0 is on the viewer's left. Every visible
    item owns one cube-shaped AOI region in the resolver.
    """

    def __init__(
        self,
        table: Optional[TableSurface],
        template: Optional[ItemTemplate],
        resolver: BoxAoiResolver,
        grid: Optional[GridConfig] = None,
    ) -> None:
        if table is None:
            raise ConfigurationError(ValidationMessages.MISSING_TABLE)
        if template is None:
            raise ConfigurationError(ValidationMessages.MISSING_TEMPLATE)
        self.table = table
        self.template = template
        self.resolver = resolver
        self.grid = grid or GridConfig(object_scale_m=template.scale_m)
        self._items: Dict[int, DisplayItem] = {}
        self._next_index = 0

    def cell_to_world(self, cell: int) -> np.ndarray:
        """Centre of an item standing in ``cell``."""
        n = self.grid.grid_size
        if not 0 <= cell < n * n:
            raise ValueError(f"cell {cell} outside grid (0..{n * n - 1})")
        row, col = divmod(cell, n)
        half = (n - 1) / 2.0
        center = as_vec3(self.table.position)
        x = center[0] + (col - half) * self.grid.grid_spacing_m
        z = center[2] + (half - row) * self.grid.grid_spacing_m
        y = self.table.top_y + self.template.scale_m / 2.0 + TaskConstants.TABLE_CLEARANCE_M
        return np.array([x, y, z])

    def _place(self, index: int, cell: int, label: Optional[str]) -> DisplayItem:
        previous = self._items.pop(cell, None)
        if previous is not None:
            self.resolver.unregister(previous.index)
        item = DisplayItem(
            index=index,
            cell=cell,
            aoi_id=cell_aoi_id(cell, self.grid.grid_size),
            label=label,
            position=self.cell_to_world(cell),
        )
        self._items[cell] = item
        self.resolver.register(
            AoiRegion(
                aoi_id=item.aoi_id,
                slot_index=item.index,
                label=label,
                center=item.position,
                half_extent=self.template.scale_m / 2.0,
            )
        )
        return item

    def show_layout(self, spec: TrialSpec) -> List[DisplayItem]:
        self.clear()
        items = [
            self._place(index, cell, spec.cell_labels[cell]) for index, cell in enumerate(spec.occupied_cells)
        ]
        self._next_index = len(items)
        return items

    def remove_item(self, cell: int) -> Optional[DisplayItem]:
        item = self._items.pop(cell, None)
        if item is None:
            logger.warning("No visible item in cell %s to remove", cell)
            return None
        self.resolver.unregister(item.index)
        return item

    def add_item(self, cell: int, label: Optional[str]) -> DisplayItem:
        item = self._place(self._next_index, cell, label)
        self._next_index += 1
        return item

    def clear(self) -> None:
        for item in self._items.values():
            self.resolver.unregister(item.index)
        self._items.clear()
        self._next_index = 0

    def visible_items(self) -> List[DisplayItem]:
        return sorted(self._items.values(), key=lambda item: item.index)


def describe_items(items: Iterable[DisplayItem]) -> List[str]:
    """``aoi_id;slot=..;label=..;pos=(x y z)`` strings for the AOI map events."""
    rows = []
    for item in items:
        x, y, z = item.position
        rows.append(f"{item.aoi_id};slot={item.index};label={item.label or ''};pos=({x:.3f} {y:.3f} {z:.3f})")
    return rows
