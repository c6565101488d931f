# vstm_gaze/config/config.py
"""
Configuration classes for the missing-object gaze task.

This module defines all configuration parameters for:
  - the dwell-based fixation detector
  - the trial phase timing (study, retention, test, inter-trial)
  - the grid layout on the table top
  - gaze ray acquisition and AOI hit testing
  - the session CSV streams

Example:
    >>> from vstm_gaze.config import SessionConfig, TaskTimingConfig
    >>>
    >>> cfg = SessionConfig(timing=TaskTimingConfig(study_s=1.2, test_max_s=3.0))
    >>> cfg.fixation.min_fixation_ms
    100
    >>>
    >>> # JSON round-trip
    >>> SessionConfig.from_dict(cfg.to_dict()) == cfg
    True
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict

from .constants import GazeConstants, LoggingConstants, TaskConstants, ValidationMessages


@dataclass
class FixationConfig:
    """
    Configuration of the dwell-based fixation detector.
    """

    # Inclusive: a dwell of exactly this length already counts
    min_fixation_ms: int = GazeConstants.DEFAULT_MIN_FIXATION_MS

    def __post_init__(self) -> None:
        if self.min_fixation_ms < 0:
            raise ValueError(ValidationMessages.INVALID_THRESHOLD)


@dataclass
class TaskTimingConfig:
    """
    Phase durations in seconds.

    retention_s is only the default; a plan row may carry its own value.
    """

    study_s: float = TaskConstants.DEFAULT_STUDY_S
    retention_s: float = TaskConstants.DEFAULT_RETENTION_S
    test_display_s: float = TaskConstants.DEFAULT_TEST_DISPLAY_S
    test_max_s: float = TaskConstants.DEFAULT_TEST_MAX_S
    inter_trial_s: float = TaskConstants.DEFAULT_INTER_TRIAL_S

    def __post_init__(self) -> None:
        for name in ("study_s", "retention_s", "test_display_s", "test_max_s", "inter_trial_s"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")


@dataclass
class GridConfig:
    """
    Grid geometry: gridSize x gridSize cells centred on the table top.
    """

    grid_size: int = TaskConstants.DEFAULT_GRID_SIZE
    grid_spacing_m: float = TaskConstants.DEFAULT_GRID_SPACING_M
    object_scale_m: float = TaskConstants.DEFAULT_OBJECT_SCALE_M

    def __post_init__(self) -> None:
        if self.grid_size < 1:
            raise ValueError(f"grid_size must be >= 1, got {self.grid_size}")

    @property
    def cell_count(self) -> int:
        return self.grid_size * self.grid_size


@dataclass
class GazeConfig:
    """
    Ray acquisition and hit testing.
    """

    max_ray_distance_m: float = GazeConstants.DEFAULT_MAX_RAY_DISTANCE_M
    pointer_depth_m: float = GazeConstants.DEFAULT_POINTER_DEPTH_M

    # Scripted viewer used by headless runs: time on each target
    simulated_dwell_ms: int = 250
    # Probability that the scripted viewer looks at empty space
    simulated_blank_probability: float = 0.15


@dataclass
class LoggingConfig:
    """
    Session CSV streams.
    """

    output_dir: str = "sessions"
    file_prefix: str = LoggingConstants.DEFAULT_FILE_PREFIX
    sample_flush_every: int = LoggingConstants.DEFAULT_SAMPLE_FLUSH_EVERY


@dataclass
class SessionConfig:
    """
    Complete configuration for one session.
    """

    fixation: FixationConfig = field(default_factory=FixationConfig)
    timing: TaskTimingConfig = field(default_factory=TaskTimingConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    gaze: GazeConfig = field(default_factory=GazeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SessionConfig:
        """Load from dictionary; missing sections use their defaults."""
        return cls(
            fixation=FixationConfig(**data.get("fixation", {})),
            timing=TaskTimingConfig(**data.get("timing", {})),
            grid=GridConfig(**data.get("grid", {})),
            gaze=GazeConfig(**data.get("gaze", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )
