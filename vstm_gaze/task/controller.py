# vstm_gaze/task/controller.py
"""
Trial phase state machine.

    IDLE -> STUDY -> RETENTION -> TEST -> {RESPONDED | TIMED_OUT} -> STUDY ...
                                                                  -> SESSION_ENDED

The controller is cooperative: it never blocks. Every call to :meth:`tick`
adds the elapsed wall-clock time to an accumulator for the current state and
fires at most the transitions that are due. The session runner calls
``tick`` before the recorder samples gaze, so every sample carries the
(trial, phase) that was current after all transitions of that tick.

RESPONDED and TIMED_OUT cover the inter-trial interval after a resolved
trial; the context phase is IDLE during that wait.

Example:
    >>> controller = TrialPhaseController(plan, display, log, recorder)
    >>> controller.start(clock.now_ms())
    >>> while not controller.is_finished:
    ...     now = clock.advance(11)
    ...     controller.tick(now)
    ...     recorder.record_tick(controller.context, now)
"""
from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..config import GridConfig, SessionConfig, TaskTimingConfig
from ..config.constants import ValidationMessages
from ..domain.events import Phase, TrialResult
from ..domain.trials import TrialPlan, TrialSpec
from ..errors import ConfigurationError
from ..io.observers import SessionObserver, SessionSummary
from ..io.session_log import SessionLog
from .context import TrialContext
from .display import StimulusDisplay, describe_items
from .recorder import SampleRecorder

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    IDLE = "IDLE"
    STUDY = "STUDY"
    RETENTION = "RETENTION"
    TEST = "TEST"
    RESPONDED = "RESPONDED"
    TIMED_OUT = "TIMED_OUT"
    SESSION_ENDED = "SESSION_ENDED"


def _ms(seconds: float) -> float:
    return round(seconds * 1000.0, 6)


class TrialPhaseController:
    """Runs the trials of a plan strictly in order.

    The controller is the only writer of :attr:`context`; the recorder and
    everything else only read it.
    """

    # Guard against a plan of zero-length phases spinning forever in one tick
    _MAX_TRANSITIONS_PER_TICK = 16

    def __init__(
        self,
        plan: TrialPlan,
        display: Optional[StimulusDisplay],
        log: SessionLog,
        recorder: Optional[SampleRecorder] = None,
        timing: Optional[TaskTimingConfig] = None,
        grid: Optional[GridConfig] = None,
        observers: Optional[Sequence[SessionObserver]] = None,
        plan_warnings: Optional[Sequence[str]] = None,
        config: Optional[SessionConfig] = None,
    ) -> None:
        if display is None:
            raise ConfigurationError(ValidationMessages.MISSING_DISPLAY)
        if plan is None or len(plan) == 0:
            raise ConfigurationError(ValidationMessages.EMPTY_PLAN)

        self.plan = plan
        self.display = display
        self.log = log
        self.recorder = recorder
        self.config = config
        self.timing = timing or (config.timing if config else TaskTimingConfig())
        self.grid = grid or (config.grid if config else GridConfig())
        self.observers: List[SessionObserver] = list(observers or [])
        self.plan_warnings = list(plan_warnings or [])

        self._context = TrialContext()
        self._state = ControllerState.IDLE
        self._plan_index = -1
        self._elapsed_ms = 0.0
        self._last_tick_ms: Optional[int] = None

        self._test_start_ms: Optional[int] = None
        self._awaiting_response = False
        self._response_locked = False
        self._stimulus_hidden = False
        self._pending_response: Optional[Tuple[bool, int]] = None

        self._results: List[TrialResult] = []
        self._aborted = False

    # ------------------------------------------------------------------ #
    # observers
    # ------------------------------------------------------------------ #
    def register_observer(self, observer: SessionObserver) -> None:
        self.observers.append(observer)

    def unregister_observer(self, observer: SessionObserver) -> None:
        if observer in self.observers:
            self.observers.remove(observer)

    def _notify(self, method: str, *args) -> None:
        for observer in self.observers:
            try:
                getattr(observer, method)(*args)
            except Exception as exc:
                logger.warning("Observer %s failed in %s: %s", type(observer).__name__, method, exc)

    def notify_error(self, error: Exception) -> None:
        self._notify("on_session_error", error)

    # ------------------------------------------------------------------ #
    # read-only view
    # ------------------------------------------------------------------ #
    @property
    def context(self) -> TrialContext:
        return self._context

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def current_spec(self) -> Optional[TrialSpec]:
        if 0 <= self._plan_index < len(self.plan):
            return self.plan[self._plan_index]
        return None

    @property
    def test_start_ms(self) -> Optional[int]:
        return self._test_start_ms

    @property
    def awaiting_response(self) -> bool:
        """True while a response can still be accepted for the current trial."""
        return self._awaiting_response and not self._response_locked

    @property
    def stimulus_hidden(self) -> bool:
        return self._stimulus_hidden

    @property
    def results(self) -> List[TrialResult]:
        return list(self._results)

    @property
    def is_finished(self) -> bool:
        return self._state is ControllerState.SESSION_ENDED

    # ------------------------------------------------------------------ #
    # public operations
    # ------------------------------------------------------------------ #
    def start(self, now_ms: int) -> None:
        """Log the session start and begin the first trial."""
        if self._state is not ControllerState.IDLE or self._plan_index >= 0:
            logger.warning("Session already started")
            return
        self._last_tick_ms = now_ms
        self.log.log_event(now_ms, -1, "SESSION_START", f"trials={len(self.plan)};source={self.plan.source or ''}")
        for warning in self.plan_warnings:
            self.log.log_event(now_ms, -1, "PLAN_WARNING", warning)
        self._notify("on_session_start", self.plan, self.config)
        self._begin_trial(0, now_ms)

    def tick(self, now_ms: int) -> None:
        """Advance timers to ``now_ms`` and fire every transition that is due."""
        if self._state is ControllerState.SESSION_ENDED or self._plan_index < 0:
            return

        if self._last_tick_ms is not None:
            self._elapsed_ms += max(0, now_ms - self._last_tick_ms)
        self._last_tick_ms = now_ms

        if self._pending_response is not None:
            said_missing, response_ms = self._pending_response
            self._pending_response = None
            self._resolve(said_missing, response_ms, now_ms, timed_out=False)

        for _ in range(self._MAX_TRANSITIONS_PER_TICK):
            if not self._advance(now_ms):
                break

    def submit_response(self, said_missing: bool, now_ms: int) -> bool:
        """Offer a participant response; returns whether it was accepted.

        Only the first response inside the response window counts. It is
        applied at the start of the next tick.
        """
        if not self.awaiting_response:
            logger.debug("Ignoring response at %s ms: not awaiting a response", now_ms)
            return False
        if now_ms - self._test_start_ms > _ms(self.timing.test_max_s):
            logger.debug("Ignoring response at %s ms: outside the response window", now_ms)
            return False

        self._response_locked = True
        self._pending_response = (bool(said_missing), int(now_ms))
        self.log.log_event(now_ms, self._context.trial_id, "BUTTON", "YES" if said_missing else "NO")
        return True

    def abort(self, now_ms: int) -> None:
        """End the session early; pending fixation and sequence state is written first."""
        if self._state is ControllerState.SESSION_ENDED:
            return
        if self.recorder is not None:
            self.recorder.flush_phase(now_ms)
        self.display.clear()
        self._awaiting_response = False
        self._pending_response = None
        self._aborted = True
        self.log.log_event(now_ms, self._context.trial_id, "SESSION_ABORTED", f"state={self._state.value}")
        logger.warning("Session aborted in state %s (trial %s)", self._state.value, self._context.trial_id)
        self._end_session(now_ms)

    # ------------------------------------------------------------------ #
    # transitions
    # ------------------------------------------------------------------ #
    def _enter(self, state: ControllerState) -> None:
        self._state = state
        self._elapsed_ms = 0.0

    def _set_phase(self, phase: Phase) -> None:
        self._context = replace(self._context, phase=phase)

    def _flush(self, now_ms: int) -> None:
        if self.recorder is not None:
            self.recorder.flush_phase(now_ms)

    def _advance(self, now_ms: int) -> bool:
        """Fire the transition that is due, if any."""
        state = self._state
        if state is ControllerState.STUDY and self._elapsed_ms >= _ms(self.timing.study_s):
            self._end_study(now_ms)
            return True
        if state is ControllerState.RETENTION and self._elapsed_ms >= _ms(self._context.retention_s):
            self._end_retention(now_ms)
            return True
        if state is ControllerState.TEST:
            if not self._stimulus_hidden and self._elapsed_ms >= _ms(self.timing.test_display_s):
                self._hide_stimulus(now_ms)
            if self._elapsed_ms >= _ms(self.timing.test_max_s):
                self.log.log_event(now_ms, self._context.trial_id, "TIMEOUT", f"{self.timing.test_max_s:.2f}")
                self._response_locked = True
                self._resolve(False, now_ms, now_ms, timed_out=True)
                return True
            return False
        if state in (ControllerState.RESPONDED, ControllerState.TIMED_OUT):
            if self._elapsed_ms >= _ms(self.timing.inter_trial_s):
                self._next_trial(now_ms)
                return True
        return False

    def _begin_trial(self, index: int, now_ms: int) -> None:
        spec = self.plan[index]
        self._plan_index = index
        retention_s = spec.retention_s if spec.retention_s is not None else self.timing.retention_s
        self._context = TrialContext(
            trial_id=spec.trial_id,
            phase=Phase.STUDY,
            set_size=spec.set_size,
            retention_s=retention_s,
        )
        self._test_start_ms = None
        self._awaiting_response = False
        self._response_locked = False
        self._stimulus_hidden = False
        self._pending_response = None

        tid = spec.trial_id
        self.log.log_event(
            now_ms,
            tid,
            "TRIAL_START",
            f"setSize={spec.set_size};retention={retention_s:.2f};change={int(spec.change)};"
            f"missingCell={spec.missing_cell if spec.missing_cell is not None else -1}",
        )
        self.log.log_event(
            now_ms,
            tid,
            "TRIAL_META",
            f"setSize={spec.set_size};retention={retention_s:.2f};change={int(spec.change)};"
            f"missingIndex={spec.missing_index};grid={self.grid.grid_size};spacing={self.grid.grid_spacing_m:.3f};"
            f"scale={self.grid.object_scale_m:.3f};study={self.timing.study_s:.2f};testMax={self.timing.test_max_s:.2f}",
        )
        logger.info("Trial %s (%s of %s) started", tid, index + 1, len(self.plan))

        self._enter(ControllerState.STUDY)
        self.log.log_event(now_ms, tid, "PHASE_START", Phase.STUDY.value)
        items = self.display.show_layout(spec)
        for description in describe_items(items):
            self.log.log_event(now_ms, tid, "AOI", description)

    def _end_study(self, now_ms: int) -> None:
        tid = self._context.trial_id
        self._flush(now_ms)
        self.log.log_event(now_ms, tid, "PHASE_END", Phase.STUDY.value)

        self.display.clear()
        self._set_phase(Phase.RETENTION)
        self._enter(ControllerState.RETENTION)
        self.log.log_event(now_ms, tid, "PHASE_START", Phase.RETENTION.value)

    def _end_retention(self, now_ms: int) -> None:
        tid = self._context.trial_id
        self._flush(now_ms)
        self.log.log_event(now_ms, tid, "PHASE_END", Phase.RETENTION.value)
        self._enter_test(now_ms)

    def _enter_test(self, now_ms: int) -> None:
        spec = self.current_spec
        tid = spec.trial_id
        self._set_phase(Phase.TEST)
        self._enter(ControllerState.TEST)
        self._test_start_ms = now_ms
        self.log.log_event(
            now_ms, tid, "PHASE_START", f"TEST;change={int(spec.change)};missingIndex={spec.missing_index}"
        )

        self.display.show_layout(spec)
        if spec.change and spec.missing_cell is not None:
            removed = self.display.remove_item(spec.missing_cell)
            if removed is not None:
                self.log.log_event(
                    now_ms,
                    tid,
                    "REMOVAL",
                    f"index={removed.index};cell={removed.cell};aoi={removed.aoi_id};label={removed.label or ''}",
                )
        if spec.added_cell is not None:
            added = self.display.add_item(spec.added_cell, spec.added_label)
            self.log.log_event(
                now_ms,
                tid,
                "ADD_ITEM",
                f"index={added.index};cell={added.cell};aoi={added.aoi_id};label={added.label or ''}",
            )
        else:
            logger.debug("Trial %s has no added item", tid)

        self._awaiting_response = True
        self._response_locked = False

    def _hide_stimulus(self, now_ms: int) -> None:
        self.display.clear()
        self._stimulus_hidden = True
        self.log.log_event(now_ms, self._context.trial_id, "STIMULUS_HIDDEN", f"{self.timing.test_display_s:.2f}")

    def _resolve(self, said_missing: bool, response_ms: int, now_ms: int, timed_out: bool) -> None:
        spec = self.current_spec
        tid = spec.trial_id
        correct = said_missing == spec.change
        rt_ms = float(response_ms - self._test_start_ms)
        self._awaiting_response = False

        result = TrialResult(
            trial_id=tid,
            set_size=spec.set_size,
            retention_s=self._context.retention_s,
            change=spec.change,
            missing_index=spec.missing_index,
            said_missing=said_missing,
            correct=correct,
            rt_ms=rt_ms,
            timed_out=timed_out,
        )
        self.log.write_trial(result)
        self._flush(now_ms)
        self.log.log_event(now_ms, tid, "RESPONSE", result.response_label)
        self.log.log_event(now_ms, tid, "CORRECT", "1" if correct else "0")
        self.log.log_event(now_ms, tid, "RT_MS", f"{rt_ms:.1f}")
        self.log.log_event(now_ms, tid, "PHASE_END", Phase.TEST.value)
        self.log.log_event(now_ms, tid, "TRIAL_END", "")

        self.display.clear()
        self._set_phase(Phase.IDLE)
        self._enter(ControllerState.TIMED_OUT if timed_out else ControllerState.RESPONDED)
        self._results.append(result)
        logger.info(
            "Trial %s resolved: response=%s correct=%s rt=%.1f ms%s",
            tid,
            result.response_label,
            correct,
            rt_ms,
            " (timeout)" if timed_out else "",
        )
        self._notify("on_trial_complete", result)

    def _next_trial(self, now_ms: int) -> None:
        if self._plan_index + 1 < len(self.plan):
            self._begin_trial(self._plan_index + 1, now_ms)
        else:
            self._end_session(now_ms)

    def _end_session(self, now_ms: int) -> None:
        self._set_phase(Phase.IDLE)
        self._enter(ControllerState.SESSION_ENDED)
        self.log.log_event(now_ms, self._context.trial_id, "SESSION_END", f"completed={len(self._results)}")
        summary = SessionSummary.from_results(len(self.plan), self._results, aborted=self._aborted)
        summary.stem = self.log.stem
        summary.rows_written = dict(self.log.rows_written)
        logger.info("Session ended after %s of %s trials", len(self._results), len(self.plan))
        self._notify("on_session_end", summary)
