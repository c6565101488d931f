"""Trial loop: phase controller, display surface, gaze recorder and scheduler."""

from .context import TrialContext
from .controller import ControllerState, TrialPhaseController
from .display import DisplayItem, ItemTemplate, StimulusDisplay, TableGridDisplay, TableSurface
from .recorder import SampleRecorder
from .responders import SimulatedResponder
from .runner import ManualClock, MonotonicClock, SessionRunner

__all__ = [
    "ControllerState",
    "DisplayItem",
    "ItemTemplate",
    "ManualClock",
    "MonotonicClock",
    "SampleRecorder",
    "SessionRunner",
    "SimulatedResponder",
    "StimulusDisplay",
    "TableGridDisplay",
    "TableSurface",
    "TrialContext",
    "TrialPhaseController",
]
