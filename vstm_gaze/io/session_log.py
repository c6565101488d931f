# vstm_gaze/io/session_log.py
"""
Append-only CSV streams of one session.

Five files share a session stem ``{prefix}_{YYYYmmdd_HHMMSS}``:

  - ``_samples.csv``   : one row per tick (ray, AOI hit, viewport point)
  - ``_events.csv``    : phase boundaries, trial meta, removal/addition,
                         responses, timeouts, session start/end
  - ``_trials.csv``    : one row per trial (condition, response, RT)
  - ``_fixations.csv`` : dwell-based fixations on AOIs
  - ``_sequences.csv`` : AOI order and visit durations per trial and phase

Samples are flushed every ``sample_flush_every`` rows; trial, fixation and
sequence rows are rare and flushed immediately. Rows go through
``csv.writer``, so labels and event values are quoted when they hold commas,
quotes or line breaks and are written unchanged.

Example:
    >>> with SessionLog("sessions", timestamp="20250101_120000") as log:
    ...     log.log_event(0, -1, "SESSION_START")
"""
from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, IO, Iterable, Optional

from ..config import LoggingConfig
from ..config.constants import LoggingConstants
from ..domain.events import FixationRecord, SummaryRow, TrialResult
from ..domain.samples import GazeSample

logger = logging.getLogger(__name__)

HEADERS: Dict[str, list] = {
    "samples": [
        "time_ms", "trial", "phase", "set_size", "retention_s", "aoi_id", "slot_index", "label",
        "gaze_ox", "gaze_oy", "gaze_oz", "gaze_dx", "gaze_dy", "gaze_dz",
        "hit_x", "hit_y", "hit_z", "dist_m", "viewport_x", "viewport_y", "real_gaze",
    ],
    "events": ["time_ms", "trial", "event", "value"],
    "trials": [
        "trial", "set_size", "retention_s", "change", "missing_index",
        "response", "correct", "rt_ms", "timed_out",
    ],
    "fixations": ["trial", "phase", "aoi_id", "start_ms", "end_ms", "duration_ms"],
    "sequences": ["trial", "phase", "seq", "segments"],
}


def _text(value: object) -> str:
    return "" if value is None else str(value)


def _f5(values: Iterable[float]) -> list:
    return [f"{float(v):.5f}" for v in values]


class SessionLog:
    """Owner of the five append-only session streams."""

    def __init__(
        self,
        output_dir: str = "sessions",
        file_prefix: str = LoggingConstants.DEFAULT_FILE_PREFIX,
        sample_flush_every: int = LoggingConstants.DEFAULT_SAMPLE_FLUSH_EVERY,
        timestamp: Optional[str] = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.sample_flush_every = max(1, sample_flush_every)
        stamp = timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.stem = f"{file_prefix}_{stamp}"
        self.paths: Dict[str, Path] = {
            name: self.output_dir / f"{self.stem}_{name}.csv" for name in LoggingConstants.STREAMS
        }
        self.rows_written: Dict[str, int] = {name: 0 for name in LoggingConstants.STREAMS}
        self._files: Dict[str, IO[str]] = {}
        self._writers: Dict[str, Any] = {}
        self._samples_since_flush = 0

    @classmethod
    def from_config(cls, config: LoggingConfig, timestamp: Optional[str] = None) -> SessionLog:
        return cls(
            output_dir=config.output_dir,
            file_prefix=config.file_prefix,
            sample_flush_every=config.sample_flush_every,
            timestamp=timestamp,
        )

    # ------------------------------------------------------------------ #
    # lifecycle
    # ------------------------------------------------------------------ #
    @property
    def is_open(self) -> bool:
        return bool(self._files)

    def open(self) -> SessionLog:
        if self.is_open:
            return self
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for name, path in self.paths.items():
            handle = open(path, "w", encoding="utf-8", newline="")
            writer = csv.writer(handle, lineterminator="\n")
            writer.writerow(HEADERS[name])
            self._files[name] = handle
            self._writers[name] = writer
        logger.info("Writing session streams to %s (stem %s)", self.output_dir, self.stem)
        return self

    def flush(self) -> None:
        for handle in self._files.values():
            handle.flush()
        self._samples_since_flush = 0

    def close(self) -> None:
        if not self.is_open:
            return
        self.flush()
        for handle in self._files.values():
            handle.close()
        self._files.clear()
        self._writers.clear()
        logger.info("Closed session streams %s (%s)", self.stem, self.rows_written)

    def __enter__(self) -> SessionLog:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # writers
    # ------------------------------------------------------------------ #
    def _write(self, name: str, row: list, flush: bool = False) -> bool:
        writer = self._writers.get(name)
        if writer is None:
            # closed or never opened: rows after the session are dropped
            return False
        writer.writerow(row)
        self.rows_written[name] += 1
        if flush:
            self._files[name].flush()
        return True

    def log_event(self, time_ms: int, trial_id: int, event: str, value: object = "") -> None:
        self._write("events", [str(int(time_ms)), str(trial_id), _text(event), _text(value)])

    def write_sample(self, sample: GazeSample) -> None:
        distance = sample.distance if sample.distance is not None else -1.0
        row = [
            str(int(sample.timestamp_ms)),
            str(sample.trial_id),
            str(sample.phase),
            str(sample.set_size),
            f"{sample.retention_s:.2f}",
            _text(sample.aoi_id),
            str(sample.slot_index if sample.slot_index is not None else -1),
            _text(sample.label),
            *_f5(sample.ray.origin),
            *_f5(sample.ray.direction),
            *_f5(sample.reference_point),
            f"{distance:.5f}",
            *_f5(sample.viewport),
            "1" if sample.is_real_gaze else "0",
        ]
        if not self._write("samples", row):
            return
        self._samples_since_flush += 1
        if self._samples_since_flush >= self.sample_flush_every:
            self._files["samples"].flush()
            self._samples_since_flush = 0

    def write_fixation(self, record: FixationRecord) -> None:
        row = [
            str(record.trial_id),
            str(record.phase),
            _text(record.aoi_id),
            str(record.start_ms),
            str(record.end_ms),
            str(record.duration_ms),
        ]
        self._write("fixations", row, flush=True)

    def write_sequence(self, summary: SummaryRow) -> None:
        row = [str(summary.trial_id), str(summary.phase), _text(summary.path), _text(summary.durations)]
        self._write("sequences", row, flush=True)

    def write_trial(self, result: TrialResult) -> None:
        row = [
            str(result.trial_id),
            str(result.set_size),
            f"{result.retention_s:.2f}",
            "1" if result.change else "0",
            str(result.missing_index),
            "1" if result.said_missing else "0",
            "1" if result.correct else "0",
            f"{result.rt_ms:.1f}",
            "1" if result.timed_out else "0",
        ]
        self._write("trials", row, flush=True)
