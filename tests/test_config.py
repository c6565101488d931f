import argparse
import json

import pytest

from vstm_gaze.config import GridConfig, SessionConfig, TaskTimingConfig
from vstm_gaze.config_builder import ConfigBuilder
from vstm_gaze.errors import ConfigurationError


def make_args(**overrides) -> argparse.Namespace:
    values = dict(config=None, output=None, prefix=None, min_fixation_ms=None, fast=False)
    values.update(overrides)
    return argparse.Namespace(**values)


def test_defaults():
    cfg = SessionConfig()
    assert cfg.fixation.min_fixation_ms == 100
    assert cfg.timing.study_s == pytest.approx(1.0)
    assert cfg.timing.inter_trial_s == pytest.approx(3.5)
    assert cfg.grid.cell_count == 16
    assert cfg.logging.sample_flush_every == 30


def test_dict_round_trip():
    cfg = SessionConfig(timing=TaskTimingConfig(study_s=1.2, test_max_s=3.0), grid=GridConfig(grid_size=3))
    assert SessionConfig.from_dict(cfg.to_dict()) == cfg


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        TaskTimingConfig(retention_s=-1)
    with pytest.raises(ValueError):
        GridConfig(grid_size=0)


def test_builder_overrides_json(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"timing": {"study_s": 2.0}, "fixation": {"min_fixation_ms": 80}}), encoding="utf-8")

    cfg = ConfigBuilder.build_session_config(
        make_args(config=str(path), output=str(tmp_path / "out"), prefix="p01", min_fixation_ms=150, fast=True)
    )

    assert cfg.timing.study_s == pytest.approx(2.0)
    assert cfg.timing.inter_trial_s == pytest.approx(0.2)
    assert cfg.fixation.min_fixation_ms == 150
    assert cfg.logging.output_dir == str(tmp_path / "out")
    assert cfg.logging.file_prefix == "p01"


def test_builder_keeps_json_threshold_without_override(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"fixation": {"min_fixation_ms": 80}}), encoding="utf-8")
    cfg = ConfigBuilder.build_session_config(make_args(config=str(path)))
    assert cfg.fixation.min_fixation_ms == 80
    assert cfg.timing.inter_trial_s == pytest.approx(3.5)


@pytest.mark.parametrize("content", ["{not json", json.dumps({"timing": {"bogus": 1}})])
def test_bad_config_file(tmp_path, content):
    path = tmp_path / "session.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ConfigBuilder.load_json(str(path))


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError):
        ConfigBuilder.load_json(str(tmp_path / "missing.json"))
