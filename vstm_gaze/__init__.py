# vstm_gaze/__init__.py
"""
Missing-object gaze task package.

Contains:
- trial plan loading (explicit per-cell table)
- gaze ray sources and AOI hit testing
- online dwell fixation detection and AOI sequence aggregation
- the trial phase state machine and the five session CSV streams
"""

from .config import SessionConfig, FixationConfig, TaskTimingConfig, GridConfig
from .domain import Phase, TrialPlan, TrialSpec, FixationRecord, SummaryRow, TrialResult
from .errors import ConfigurationError, TrialPlanError
from .processing import FixationDetector, SequenceAggregator
from .io import SessionLog, load_trial_plan, parse_trial_plan, read_stream
from .task import SampleRecorder, SessionRunner, TrialPhaseController

__version__ = "0.1.0"
