# vstm_gaze/processing/sequence.py
"""
Collapse the per-tick AOI stream into ordered AOI visits per (trial, phase).

Ticks on the same AOI merge into one segment. Ticks without an AOI produce
no segment; gaps stay implicit. Coming back to the AOI of the last segment
after a gap continues that segment, and the gap is left out of its duration.
A flush renders the segments of the current (trial, phase) as a
:class:`SummaryRow` and clears the buffers.

Example:
    >>> agg = SequenceAggregator()
    >>> for aoi, t in [("A", 0), ("B", 120), (None, 460), ("C", 500)]:
    ...     _ = agg.update(aoi, t, Phase.STUDY, trial_id=1)
    >>> row = agg.force_flush(575)
    >>> row.path, row.durations
    ('A>B>C', 'A:120;B:340;C:75')
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..domain.events import Phase, SequenceSegment, SummaryRow, optional_aoi

logger = logging.getLogger(__name__)


class SequenceAggregator:
    """Online AOI visit aggregator with explicit and implicit flush points."""

    def __init__(self) -> None:
        self._segments: List[SequenceSegment] = []
        self.current_aoi: Optional[str] = None
        self.current_start_ms: Optional[int] = None
        self._current_gap_ms = 0

        # (trial, phase) the buffered segments belong to
        self.trial_id = -1
        self.phase = Phase.IDLE

    @property
    def segments(self) -> List[SequenceSegment]:
        """Closed segments of the current (trial, phase)."""
        return list(self._segments)

    def update(
        self,
        aoi_id: Optional[str],
        now_ms: int,
        phase: Phase,
        trial_id: Optional[int] = None,
    ) -> Optional[SummaryRow]:
        """Feed one tick. Returns the previous phase's row if the phase changed underneath."""
        row: Optional[SummaryRow] = None
        tid = self.trial_id if trial_id is None else trial_id

        if phase != self.phase or tid != self.trial_id:
            row = self.force_flush(now_ms)
            if row is not None:
                logger.debug("Implicit sequence flush for trial %s %s", row.trial_id, row.phase)
            self.phase = phase
            self.trial_id = tid

        aoi = optional_aoi(aoi_id)
        if aoi != self.current_aoi:
            self._close_current(now_ms)

            if aoi is not None and self._segments and self._segments[-1].aoi_id == aoi:
                # back on the same AOI after a gap: continue that visit, the gap is not dwell
                previous = self._segments.pop()
                self.current_start_ms = previous.start_ms
                self._current_gap_ms = previous.gap_ms + (now_ms - previous.end_ms)
            else:
                self.current_start_ms = now_ms if aoi is not None else None
                self._current_gap_ms = 0
            self.current_aoi = aoi

        return row

    def force_flush(self, now_ms: int) -> Optional[SummaryRow]:
        """Close the open segment and emit the (trial, phase) row, if anything was seen."""
        self._close_current(now_ms)

        row = None
        if self._segments:
            row = SummaryRow(trial_id=self.trial_id, phase=self.phase, segments=tuple(self._segments))

        self._segments.clear()
        self.current_aoi = None
        self.current_start_ms = None
        self._current_gap_ms = 0
        return row

    def _close_current(self, now_ms: int) -> None:
        if self.current_aoi is not None and self.current_start_ms is not None:
            self._segments.append(
                SequenceSegment(self.current_aoi, self.current_start_ms, now_ms, gap_ms=self._current_gap_ms)
            )
