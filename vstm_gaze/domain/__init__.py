"""Domain models for the gaze stream, trial plan and derived events."""

from .events import FixationRecord, Phase, SequenceSegment, SummaryRow, TrialResult
from .geometry import Ray
from .samples import AoiHit, GazeSample
from .trials import TrialPlan, TrialSpec, cell_aoi_id

__all__ = [
    "AoiHit",
    "FixationRecord",
    "GazeSample",
    "Phase",
    "Ray",
    "SequenceSegment",
    "SummaryRow",
    "TrialPlan",
    "TrialResult",
    "TrialSpec",
    "cell_aoi_id",
]
