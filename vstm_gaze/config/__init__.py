"""Configuration and constants for the missing-object gaze task."""

from .config import (
    FixationConfig,
    TaskTimingConfig,
    GridConfig,
    GazeConfig,
    LoggingConfig,
    SessionConfig,
)
from .constants import GazeConstants, LoggingConstants, TaskConstants, ValidationMessages

__all__ = [
    "FixationConfig",
    "TaskTimingConfig",
    "GridConfig",
    "GazeConfig",
    "LoggingConfig",
    "SessionConfig",
    "GazeConstants",
    "LoggingConstants",
    "TaskConstants",
    "ValidationMessages",
]
