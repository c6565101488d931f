# vstm_gaze/task/recorder.py
"""
One-ray-per-tick gaze pipeline.

For every tick the recorder asks the ray source for a ray, resolves it to
an AOI, projects the reference point into the viewport, writes the sample
row and feeds the fixation detector and the sequence aggregator in
lockstep. Fixation and sequence rows are written as soon as they are
emitted.

Sensor trouble never stops the tick: a failing ray source is replaced by a
neutral forward ray flagged as not real, a failing resolver by "no AOI".
The first failure of every run of failures is logged and recorded as an
event.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Tuple

from ..config import FixationConfig
from ..domain.events import FixationRecord, SummaryRow
from ..domain.geometry import Ray
from ..domain.samples import AoiHit, GazeSample
from ..gaze.base import IAoiResolver, IGazeRaySource
from ..gaze.camera import PinholeCamera
from ..io.session_log import SessionLog
from ..processing import FixationDetector, SequenceAggregator
from .context import TrialContext

logger = logging.getLogger(__name__)


class SampleRecorder:
    """Turns ticks into sample, fixation and sequence rows."""

    def __init__(
        self,
        source: IGazeRaySource,
        resolver: IAoiResolver,
        log: SessionLog,
        camera: Optional[PinholeCamera] = None,
        detector: Optional[FixationDetector] = None,
        aggregator: Optional[SequenceAggregator] = None,
        fixation_config: Optional[FixationConfig] = None,
    ) -> None:
        self.source = source
        self.resolver = resolver
        self.log = log
        self.camera = camera
        self.detector = detector or FixationDetector(config=fixation_config)
        self.aggregator = aggregator or SequenceAggregator()
        self.last_sample: Optional[GazeSample] = None
        self.samples_recorded = 0
        self._source_failing = False
        self._resolver_failing = False

    def _fallback_ray(self) -> Ray:
        if self.camera is not None:
            return self.camera.forward_ray()
        return Ray.neutral()

    def _acquire_ray(self, context: TrialContext, now_ms: int) -> Tuple[Ray, bool]:
        try:
            ray, is_real = self.source.try_get_ray()
        except Exception as exc:
            if not self._source_failing:
                logger.warning("Gaze ray source failed, using fallback ray: %s", exc)
                self.log.log_event(now_ms, context.trial_id, "GAZE_SOURCE_ERROR", f"{type(exc).__name__}: {exc}")
            self._source_failing = True
            return self._fallback_ray(), False
        self._source_failing = False
        return ray, bool(is_real)

    def _resolve(self, ray: Ray, context: TrialContext, now_ms: int) -> Optional[AoiHit]:
        try:
            hit = self.resolver.resolve(ray)
        except Exception as exc:
            if not self._resolver_failing:
                logger.warning("AOI resolution failed, treating tick as no AOI: %s", exc)
                self.log.log_event(now_ms, context.trial_id, "AOI_RESOLVE_ERROR", f"{type(exc).__name__}: {exc}")
            self._resolver_failing = True
            return None
        self._resolver_failing = False
        return hit

    def record_tick(self, context: TrialContext, now_ms: int) -> GazeSample:
        """Sample, resolve and aggregate one tick under ``context``."""
        ray, is_real = self._acquire_ray(context, now_ms)
        hit = self._resolve(ray, context, now_ms)

        sample = GazeSample(
            timestamp_ms=int(now_ms),
            trial_id=context.trial_id,
            phase=context.phase,
            set_size=context.set_size,
            retention_s=context.retention_s,
            ray=ray,
            is_real_gaze=is_real,
            viewport=(0.0, 0.0),
            aoi_id=hit.aoi_id if hit else None,
            slot_index=hit.slot_index if hit else None,
            label=hit.label if hit else None,
            hit_point=hit.point if hit else None,
            distance=hit.distance if hit else None,
        )
        if self.camera is not None:
            viewport = self.camera.world_to_viewport(sample.reference_point)
            sample = replace(sample, viewport=viewport)

        self.log.write_sample(sample)
        self.samples_recorded += 1
        self.last_sample = sample

        self._write_fixation(self.detector.update(sample.aoi_id, now_ms, context.trial_id, context.phase))
        self._write_sequence(self.aggregator.update(sample.aoi_id, now_ms, context.phase, context.trial_id))
        return sample

    def flush_phase(self, now_ms: int) -> None:
        """Close the open fixation and the open sequence of the current (trial, phase)."""
        self._write_fixation(self.detector.force_close(now_ms))
        self._write_sequence(self.aggregator.force_flush(now_ms))

    def close(self, now_ms: int) -> None:
        """Flush pending state; the caller closes the log afterwards."""
        self.flush_phase(now_ms)

    def _write_fixation(self, record: Optional[FixationRecord]) -> None:
        if record is not None:
            self.log.write_fixation(record)

    def _write_sequence(self, row: Optional[SummaryRow]) -> None:
        if row is not None:
            self.log.write_sequence(row)
