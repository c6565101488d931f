# vstm_gaze/processing/fixation.py
"""
Dwell-based fixation detection on the resolved AOI stream.

A fixation is a run of consecutive ticks on the same non-empty AOI whose
length reaches ``min_fixation_ms`` (inclusive). The detector works strictly
online with O(1) state:

  - ``last_aoi`` / ``last_aoi_start_ms``: the current dwell run
  - ``fixation_active`` / ``fixation_aoi`` / ``fixation_start_ms``: the one
    fixation that may be open

Onset is backdated to the start of the dwell run, not to the tick at which
the threshold was crossed. A fixation is emitted only when the AOI changes
or when it is force-closed at a phase/session boundary.

Example:
    >>> det = FixationDetector(min_fixation_ms=100)
    >>> for aoi, t in [("A", 0), ("A", 50), ("A", 120), ("B", 121), ("B", 200)]:
    ...     rec = det.update(aoi, t)
    ...     if rec:
    ...         print(rec.aoi_id, rec.start_ms, rec.end_ms)
    A 0 121
"""
from __future__ import annotations

import logging
from typing import Optional

from ..config import FixationConfig
from ..domain.events import FixationRecord, Phase, optional_aoi

logger = logging.getLogger(__name__)


class FixationDetector:
    """Online dwell-threshold fixation detector."""

    def __init__(self, min_fixation_ms: Optional[int] = None, config: Optional[FixationConfig] = None) -> None:
        cfg = config or FixationConfig()
        self.min_fixation_ms = cfg.min_fixation_ms if min_fixation_ms is None else min_fixation_ms
        if self.min_fixation_ms < 0:
            raise ValueError(f"min_fixation_ms must be >= 0, got {self.min_fixation_ms}")

        self.last_aoi: Optional[str] = None
        self.last_aoi_start_ms: Optional[int] = None
        self.fixation_active = False
        self.fixation_aoi: Optional[str] = None
        self.fixation_start_ms: Optional[int] = None

        # labels stamped on emitted records
        self.trial_id = -1
        self.phase = Phase.IDLE

    def _labels_differ(self, trial_id: Optional[int], phase: Optional[Phase]) -> bool:
        return (trial_id is not None and trial_id != self.trial_id) or (
            phase is not None and phase != self.phase
        )

    def _emit(self, end_ms: int) -> FixationRecord:
        record = FixationRecord(
            trial_id=self.trial_id,
            phase=self.phase,
            aoi_id=self.fixation_aoi or "",
            start_ms=int(self.fixation_start_ms),
            end_ms=int(end_ms),
        )
        self.fixation_active = False
        self.fixation_aoi = None
        self.fixation_start_ms = None
        return record

    def update(
        self,
        aoi_id: Optional[str],
        now_ms: int,
        trial_id: Optional[int] = None,
        phase: Optional[Phase] = None,
    ) -> Optional[FixationRecord]:
        """Feed the AOI of one tick; returns a fixation that ended on this tick."""
        aoi = optional_aoi(aoi_id)

        if self._labels_differ(trial_id, phase):
            # Boundary the caller did not announce: close out, then start over
            closed = self.force_close(now_ms)
            if trial_id is not None:
                self.trial_id = trial_id
            if phase is not None:
                self.phase = phase
            self.last_aoi = aoi
            self.last_aoi_start_ms = now_ms
            return closed

        emitted: Optional[FixationRecord] = None

        if aoi != self.last_aoi:
            if self.last_aoi is not None:
                dwell = now_ms - self.last_aoi_start_ms

                if not self.fixation_active and dwell >= self.min_fixation_ms:
                    self.fixation_active = True
                    self.fixation_aoi = self.last_aoi
                    self.fixation_start_ms = now_ms - dwell

                if self.fixation_active:
                    emitted = self._emit(now_ms)

            self.last_aoi = aoi
            self.last_aoi_start_ms = now_ms

        elif (
            not self.fixation_active
            and aoi is not None
            and now_ms - self.last_aoi_start_ms >= self.min_fixation_ms
        ):
            self.fixation_active = True
            self.fixation_aoi = aoi
            self.fixation_start_ms = self.last_aoi_start_ms

        return emitted

    def force_close(self, now_ms: int) -> Optional[FixationRecord]:
        """Emit the open fixation (if any) at ``now_ms``.

        The current dwell run restarts at ``now_ms`` so that gaze resting on
        the same AOI across a boundary is counted afresh.
        """
        if self.last_aoi is not None:
            self.last_aoi_start_ms = now_ms
        if not self.fixation_active:
            return None
        record = self._emit(now_ms)
        logger.debug("Force-closed fixation on %s (%s ms)", record.aoi_id, record.duration_ms)
        return record

    def reset(self) -> None:
        self.last_aoi = None
        self.last_aoi_start_ms = None
        self.fixation_active = False
        self.fixation_aoi = None
        self.fixation_start_ms = None
