# vstm_gaze/config/constants.py
"""Task and computational constants for the missing-object gaze task."""

from __future__ import annotations


class TaskConstants:
    """Timing and geometry defaults of the missing-object task."""

    # Seconds the study array stays visible
    DEFAULT_STUDY_S: float = 1.0

    # Blank interval between study and test (per-trial override in the plan)
    DEFAULT_RETENTION_S: float = 0.6

    # Visible duration of the test array
    DEFAULT_TEST_DISPLAY_S: float = 1.0

    # Response window measured from test onset
    DEFAULT_TEST_MAX_S: float = 2.0

    # Blank pause between trials
    DEFAULT_INTER_TRIAL_S: float = 3.5

    # Grid layout (gridSize x gridSize cells on the table top)
    DEFAULT_GRID_SIZE: int = 4
    DEFAULT_GRID_SPACING_M: float = 0.06
    DEFAULT_OBJECT_SCALE_M: float = 0.03

    # Clearance between table top and item bottom (m)
    TABLE_CLEARANCE_M: float = 0.005


class GazeConstants:
    """Gaze pipeline defaults."""

    # Minimum dwell on the same AOI to call it a fixation (ms)
    DEFAULT_MIN_FIXATION_MS: int = 100

    # Hit test range of the AOI resolver (m)
    DEFAULT_MAX_RAY_DISTANCE_M: float = 50.0

    # Simulated pointer depth and its clamp range (m)
    DEFAULT_POINTER_DEPTH_M: float = 3.0
    MIN_POINTER_DEPTH_M: float = 0.1
    MAX_POINTER_DEPTH_M: float = 10.0

    # Distance along the ray used as reference point when nothing is hit (m)
    NO_HIT_REFERENCE_DISTANCE_M: float = 1.0


class LoggingConstants:
    """Session log defaults."""

    DEFAULT_FILE_PREFIX: str = "gaze_session"

    # Samples are flushed every N rows; rare rows are flushed immediately
    DEFAULT_SAMPLE_FLUSH_EVERY: int = 30

    STREAMS = ("samples", "events", "trials", "fixations", "sequences")


class ValidationMessages:
    """Standard validation and error messages."""

    MISSING_DISPLAY = "A stimulus display surface is required before the trial loop can start"
    MISSING_TABLE = "Table surface is not assigned"
    MISSING_TEMPLATE = "Item template is not assigned"
    EMPTY_PLAN = "Trial plan contains no usable trial"
    MISSING_HEADER = "Trial plan needs a header row followed by at least one trial row"
    BAD_HEADER = "Trial plan header does not list the expected columns"
    INVALID_THRESHOLD = "Minimum fixation duration must be >= 0 ms"
    INVALID_TICK = "Tick length must be > 0 ms"
