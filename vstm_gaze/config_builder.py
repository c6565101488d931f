# vstm_gaze/config_builder.py
"""Build configuration objects from CLI arguments.

Separates configuration construction from argument parsing.
"""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional

from .config import (
    FixationConfig,
    GazeConfig,
    GridConfig,
    LoggingConfig,
    SessionConfig,
    TaskTimingConfig,
)
from .errors import ConfigurationError


class ConfigBuilder:
    """Builds configuration objects from parsed CLI arguments.

    Responsibilities:
        - Load an optional JSON session config as the base
        - Override single values given on the command line
        - Provide single source of truth for config construction
    """

    @staticmethod
    def load_json(path: Optional[str]) -> SessionConfig:
        """Session config from a JSON file, or the defaults when no path is given."""
        if not path:
            return SessionConfig()
        config_path = Path(path)
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {config_path}") from None
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Config file {config_path} is not valid JSON: {exc}") from None
        try:
            return SessionConfig.from_dict(data)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid config in {config_path}: {exc}") from None

    @staticmethod
    def build_fixation_config(args: argparse.Namespace, base: FixationConfig) -> FixationConfig:
        """Build fixation configuration from CLI arguments."""
        min_ms = getattr(args, "min_fixation_ms", None)
        return FixationConfig(min_fixation_ms=base.min_fixation_ms if min_ms is None else min_ms)

    @staticmethod
    def build_timing_config(args: argparse.Namespace, base: TaskTimingConfig) -> TaskTimingConfig:
        """Build timing configuration; ``--fast`` shrinks every phase for smoke runs."""
        timing = TaskTimingConfig(
            study_s=base.study_s,
            retention_s=base.retention_s,
            test_display_s=base.test_display_s,
            test_max_s=base.test_max_s,
            inter_trial_s=base.inter_trial_s,
        )
        if getattr(args, "fast", False):
            timing.inter_trial_s = min(timing.inter_trial_s, 0.2)
        return timing

    @staticmethod
    def build_logging_config(args: argparse.Namespace, base: LoggingConfig) -> LoggingConfig:
        """Build logging configuration from CLI arguments."""
        return LoggingConfig(
            output_dir=getattr(args, "output", None) or base.output_dir,
            file_prefix=getattr(args, "prefix", None) or base.file_prefix,
            sample_flush_every=base.sample_flush_every,
        )

    @classmethod
    def build_session_config(cls, args: argparse.Namespace) -> SessionConfig:
        """Complete session configuration: JSON base plus CLI overrides."""
        base = cls.load_json(getattr(args, "config", None))
        return SessionConfig(
            fixation=cls.build_fixation_config(args, base.fixation),
            timing=cls.build_timing_config(args, base.timing),
            grid=GridConfig(**vars(base.grid)),
            gaze=GazeConfig(**vars(base.gaze)),
            logging=cls.build_logging_config(args, base.logging),
        )
