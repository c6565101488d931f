"""Trial/phase context shared between the controller and the recorder."""
from __future__ import annotations

from dataclasses import dataclass

from ..domain.events import Phase


@dataclass(frozen=True)
class TrialContext:
    """Snapshot of where the session is.

    Only :class:`~vstm_gaze.task.controller.TrialPhaseController` creates new
    contexts (via :func:`dataclasses.replace`); everyone else reads them.
    """

    trial_id: int = -1
    phase: Phase = Phase.IDLE
    set_size: int = 0
    retention_s: float = 0.0
