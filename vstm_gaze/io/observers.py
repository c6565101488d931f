# vstm_gaze/io/observers.py
"""
Observer Pattern implementation for session progress reporting.

The trial controller notifies registered observers when the session starts,
after every completed trial, when the session ends and when an error stops
the tick loop. Observers never influence the trial sequence.

Example:
    >>> from vstm_gaze.io.observers import ConsoleReporter
    >>> controller.register_observer(ConsoleReporter(verbose=True))
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import SessionConfig
from ..domain.events import TrialResult
from ..domain.trials import TrialPlan


@dataclass
class SessionSummary:
    """Totals reported when a session ends."""

    trials_planned: int
    trials_completed: int = 0
    correct: int = 0
    timeouts: int = 0
    aborted: bool = False
    stem: Optional[str] = None
    rows_written: Dict[str, int] = field(default_factory=dict)

    @property
    def accuracy(self) -> float:
        if self.trials_completed == 0:
            return 0.0
        return self.correct / self.trials_completed

    @classmethod
    def from_results(cls, trials_planned: int, results: List[TrialResult], aborted: bool = False) -> SessionSummary:
        return cls(
            trials_planned=trials_planned,
            trials_completed=len(results),
            correct=sum(1 for r in results if r.correct),
            timeouts=sum(1 for r in results if r.timed_out),
            aborted=aborted,
        )


class SessionObserver(ABC):
    """
    Abstract base class for session observers (Observer Pattern).
    """

    @abstractmethod
    def on_session_start(self, plan: TrialPlan, config: Optional[SessionConfig] = None):
        """
        Called once before the first trial starts.

        Args:
            plan: The validated trial plan
            config: Session configuration, if known
        """
        pass

    @abstractmethod
    def on_trial_complete(self, result: TrialResult):
        """
        Called after the trial row has been written.

        Args:
            result: Outcome of the trial
        """
        pass

    @abstractmethod
    def on_session_end(self, summary: SessionSummary):
        """
        Called once when the session ends, normally or aborted.

        Args:
            summary: Session totals
        """
        pass

    def on_session_error(self, error: Exception):
        """Called when an exception stops the tick loop."""
        pass


class ConsoleReporter(SessionObserver):
    """
    Reports session progress and results to console.

    Example:
        >>> reporter = ConsoleReporter(verbose=False)
        >>> controller.register_observer(reporter)
    """

    def __init__(self, verbose: bool = True):
        """
        Initialize console reporter.

        Args:
            verbose: If True, prints one line per trial
        """
        self.verbose = verbose

    def on_session_start(self, plan: TrialPlan, config: Optional[SessionConfig] = None):
        """Print session start message."""
        print(f"\n{'='*70}")
        print(f"🚀 Starting session with {len(plan)} trials")
        if plan.source:
            print(f"   Plan: {plan.source}")
        if config is not None and self.verbose:
            print(f"   Study: {config.timing.study_s} s")
            print(f"   Test window: {config.timing.test_max_s} s")
            print(f"   Min fixation: {config.fixation.min_fixation_ms} ms")
        print(f"{'='*70}\n")

    def on_trial_complete(self, result: TrialResult):
        """Print one line per trial."""
        if not self.verbose:
            return
        mark = "✓" if result.correct else "✗"
        timeout = " (timeout)" if result.timed_out else ""
        print(
            f"   {mark} Trial {result.trial_id}: set size {result.set_size}, "
            f"change={int(result.change)}, response={result.response_label}, "
            f"RT {result.rt_ms:.0f} ms{timeout}"
        )

    def on_session_end(self, summary: SessionSummary):
        """Print session totals."""
        print(f"\n{'='*70}")
        if summary.aborted:
            print(f"⚠️  Session aborted after {summary.trials_completed} of {summary.trials_planned} trials")
        else:
            print(f"✅ Session completed: {summary.trials_completed} trials")
        print(f"   Accuracy: {summary.accuracy * 100:.1f}%")
        print(f"   Timeouts: {summary.timeouts}")
        if summary.stem:
            print(f"   Files: {summary.stem}_*.csv")
        print(f"{'='*70}\n")

    def on_session_error(self, error: Exception):
        """Print error message."""
        print(f"\n{'='*70}")
        print("❌ Session failed")
        print(f"   Error: {error}")
        print(f"{'='*70}\n")
