# vstm_gaze/task/responders.py
"""Simulated participant for headless sessions."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class SimulatedResponder:
    """
    Answers each test display after a random latency.

    - ``accuracy``: probability of the correct answer
    - ``latency_ms``: uniform range of the response latency after test onset
    - ``timeout_probability``: probability of not answering at all

    All draws come from one seeded generator, so a seed fixes the whole
    response sequence.
    """

    def __init__(
        self,
        accuracy: float = 0.85,
        latency_ms: Tuple[float, float] = (450.0, 1400.0),
        timeout_probability: float = 0.1,
        seed: int = 0,
    ) -> None:
        if not 0.0 <= accuracy <= 1.0:
            raise ValueError(f"accuracy must be in [0, 1], got {accuracy}")
        if not 0.0 <= timeout_probability <= 1.0:
            raise ValueError(f"timeout_probability must be in [0, 1], got {timeout_probability}")
        low, high = latency_ms
        if low < 0 or high < low:
            raise ValueError(f"invalid latency range {latency_ms}")
        self.accuracy = accuracy
        self.latency_ms = (float(low), float(high))
        self.timeout_probability = timeout_probability
        self._rng = np.random.default_rng(seed)

        self._planned_for: Optional[int] = None
        self._answer: Optional[bool] = None
        self._due_ms: Optional[float] = None

    def _plan(self, change: bool, test_start_ms: int) -> None:
        if self._rng.random() < self.timeout_probability:
            self._answer = None
            self._due_ms = None
            return
        correct = self._rng.random() < self.accuracy
        self._answer = change if correct else not change
        self._due_ms = test_start_ms + self._rng.uniform(*self.latency_ms)

    def poll(self, controller, now_ms: int) -> bool:
        """Submit the planned answer once it is due; returns True if one was accepted."""
        if not controller.awaiting_response:
            return False
        spec = controller.current_spec
        test_start = controller.test_start_ms
        if self._planned_for != test_start:
            self._planned_for = test_start
            self._plan(spec.change, test_start)

        if self._due_ms is None or now_ms < self._due_ms:
            return False
        answer = self._answer
        self._due_ms = None
        logger.debug("Simulated response %s for trial %s", answer, spec.trial_id)
        return controller.submit_response(answer, now_ms)
