"""Online processing of the resolved AOI stream."""

from .fixation import FixationDetector
from .sequence import SequenceAggregator

__all__ = ["FixationDetector", "SequenceAggregator"]
