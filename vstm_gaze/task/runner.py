# vstm_gaze/task/runner.py
"""
Tick scheduler.

One :meth:`SessionRunner.step` is one frame:

  1. the responder (if any) may submit a response,
  2. the controller fires due transitions,
  3. the recorder samples gaze under the updated context.

Clocks hand out integer milliseconds since session start.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from ..config.constants import ValidationMessages
from ..io.session_log import SessionLog
from .controller import TrialPhaseController
from .recorder import SampleRecorder
from .responders import SimulatedResponder

logger = logging.getLogger(__name__)


class ManualClock:
    """Deterministic clock advanced by the caller (tests, headless runs)."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = int(start_ms)

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, delta_ms: int) -> int:
        if delta_ms < 0:
            raise ValueError(f"delta_ms must be >= 0, got {delta_ms}")
        self._now_ms += int(delta_ms)
        return self._now_ms

    def set(self, now_ms: int) -> int:
        if now_ms < self._now_ms:
            raise ValueError("Clock cannot go backwards")
        self._now_ms = int(now_ms)
        return self._now_ms


class MonotonicClock:
    """Wall clock based on :func:`time.perf_counter`."""

    def __init__(self) -> None:
        self._origin = time.perf_counter()

    def now_ms(self) -> int:
        return int((time.perf_counter() - self._origin) * 1000.0)

    def advance(self, delta_ms: int) -> int:
        """Sleep until ``delta_ms`` have passed since the last call."""
        time.sleep(max(0, delta_ms) / 1000.0)
        return self.now_ms()


class SessionRunner:
    """Drives controller and recorder in lockstep until the session ends."""

    def __init__(
        self,
        controller: TrialPhaseController,
        recorder: SampleRecorder,
        log: SessionLog,
        clock=None,
        tick_ms: int = 11,
        responder: Optional[SimulatedResponder] = None,
    ) -> None:
        if tick_ms <= 0:
            raise ValueError(ValidationMessages.INVALID_TICK)
        self.controller = controller
        self.recorder = recorder
        self.log = log
        self.clock = clock or ManualClock()
        self.tick_ms = tick_ms
        self.responder = responder
        self.ticks = 0
        self._started = False

    def start(self) -> None:
        if self._started:
            return
        self.log.open()
        self._started = True
        self.controller.start(self.clock.now_ms())

    def step(self) -> int:
        """Advance the clock by one tick and process it; returns the tick timestamp."""
        if not self._started:
            self.start()
        now = self.clock.advance(self.tick_ms)
        if self.responder is not None:
            self.responder.poll(self.controller, now)
        self.controller.tick(now)
        self.recorder.record_tick(self.controller.context, now)
        self.ticks += 1
        return now

    def stop(self) -> None:
        """Abort an unfinished session and close the streams."""
        if not self.controller.is_finished:
            self.controller.abort(self.clock.now_ms())
        self.log.close()

    def run(self, max_ticks: Optional[int] = None) -> int:
        """Tick until the session ends (or ``max_ticks``); returns the number of ticks."""
        try:
            self.start()
            while not self.controller.is_finished:
                if max_ticks is not None and self.ticks >= max_ticks:
                    logger.warning("Stopping after %s ticks", self.ticks)
                    break
                self.step()
        except KeyboardInterrupt:
            logger.warning("Interrupted by user")
        except Exception as exc:
            logger.error("Session failed: %s", exc)
            self.controller.notify_error(exc)
            raise
        finally:
            self.stop()
        return self.ticks
