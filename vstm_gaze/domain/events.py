"""Events derived from the per-tick gaze stream and the trial loop."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Phase(Enum):
    """Stage of a trial; the value is what the CSV streams carry."""

    IDLE = "IDLE"
    STUDY = "STUDY"
    RETENTION = "RETENTION"
    TEST = "TEST"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FixationRecord:
    """Dwell on one AOI that reached the minimum fixation duration."""

    trial_id: int
    phase: Phase
    aoi_id: str
    start_ms: int
    end_ms: int

    @property
    def duration_ms(self) -> int:
        return max(0, self.end_ms - self.start_ms)


@dataclass(frozen=True)
class SequenceSegment:
    """One visit to a non-empty AOI inside a (trial, phase).

    ``gap_ms`` is time inside ``[start_ms, end_ms]`` spent off the AOI before
    gaze came back to it; it does not count as dwell.
    """

    aoi_id: str
    start_ms: int
    end_ms: int
    gap_ms: int = 0

    @property
    def duration_ms(self) -> int:
        return max(0, self.end_ms - self.start_ms - self.gap_ms)


@dataclass(frozen=True)
class SummaryRow:
    """Ordered AOI visits of one (trial, phase), rendered compactly.

    ``path`` lists the AOIs in visiting order (``A>B>C``), ``durations``
    pairs each visit with its length (``A:120;B:340;C:75``).
    """

    trial_id: int
    phase: Phase
    segments: Tuple[SequenceSegment, ...]

    @property
    def path(self) -> str:
        return ">".join(seg.aoi_id for seg in self.segments)

    @property
    def durations(self) -> str:
        return ";".join(f"{seg.aoi_id}:{seg.duration_ms}" for seg in self.segments)


@dataclass(frozen=True)
class TrialResult:
    """Outcome of one trial as written to the trials stream."""

    trial_id: int
    set_size: int
    retention_s: float
    change: bool
    missing_index: int
    said_missing: bool
    correct: bool
    rt_ms: float
    timed_out: bool = False

    @property
    def response_label(self) -> str:
        return "YES" if self.said_missing else "NO"


def optional_aoi(aoi_id: Optional[str]) -> Optional[str]:
    """Normalise the "not looking at any AOI" marker to ``None``."""
    return aoi_id if aoi_id else None
