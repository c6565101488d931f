"""Trial specifications as read from the trial plan.

A trial plan fixes the whole stimulus sequence in advance so every
participant sees the same trials in the same order. Each row names the
label (colour) of every grid cell shown at study, whether one item
disappears at test, and the distractor item that is added at test.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

import pandas as pd


def cell_aoi_id(cell: int, grid_size: int) -> str:
    """Row/column AOI identifier of a grid cell, e.g. ``r1_c2``."""
    return f"r{cell // grid_size}_c{cell % grid_size}"


@dataclass(frozen=True)
class TrialSpec:
    """Immutable description of one trial."""

    trial_id: int
    change: bool
    missing_cell: Optional[int]
    added_cell: Optional[int]
    added_label: Optional[str]
    cell_labels: Tuple[Optional[str], ...]
    retention_s: Optional[float] = None

    @property
    def grid_size(self) -> int:
        return int(round(len(self.cell_labels) ** 0.5))

    @property
    def occupied_cells(self) -> List[int]:
        """Cells holding an item at study, in cell order."""
        return [cell for cell, label in enumerate(self.cell_labels) if label]

    @property
    def set_size(self) -> int:
        return len(self.occupied_cells)

    @property
    def missing_index(self) -> int:
        """Position of the removed item within the study items; -1 if none."""
        if not self.change or self.missing_cell is None:
            return -1
        cells = self.occupied_cells
        return cells.index(self.missing_cell) if self.missing_cell in cells else -1

    def aoi_id_for_cell(self, cell: int) -> str:
        return cell_aoi_id(cell, self.grid_size)


class TrialPlan(Sequence[TrialSpec]):
    """Ordered, validated, read-only list of trials for one session."""

    def __init__(self, trials: Sequence[TrialSpec], source: Optional[str] = None) -> None:
        self._trials: Tuple[TrialSpec, ...] = tuple(trials)
        self.source = source

    def __len__(self) -> int:
        return len(self._trials)

    def __getitem__(self, index):  # type: ignore[override]
        return self._trials[index]

    def __iter__(self) -> Iterator[TrialSpec]:
        return iter(self._trials)

    def __repr__(self) -> str:
        return f"TrialPlan({len(self._trials)} trials, source={self.source!r})"

    @property
    def trial_ids(self) -> List[int]:
        return [spec.trial_id for spec in self._trials]

    def to_frame(self) -> pd.DataFrame:
        """One row per trial, for inspection on the command line."""
        rows = [
            {
                "trial_id": spec.trial_id,
                "set_size": spec.set_size,
                "change": int(spec.change),
                "missing_cell": spec.missing_cell if spec.missing_cell is not None else -1,
                "missing_index": spec.missing_index,
                "added_cell": spec.added_cell if spec.added_cell is not None else -1,
                "added_label": spec.added_label or "",
                "retention_s": spec.retention_s,
            }
            for spec in self._trials
        ]
        return pd.DataFrame(
            rows,
            columns=[
                "trial_id",
                "set_size",
                "change",
                "missing_cell",
                "missing_index",
                "added_cell",
                "added_label",
                "retention_s",
            ],
        )
