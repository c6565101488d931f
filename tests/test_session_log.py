from dataclasses import replace

import numpy as np

from conftest import read_rows, stream_rows
from vstm_gaze.config import LoggingConfig
from vstm_gaze.domain.events import FixationRecord, Phase, SequenceSegment, SummaryRow, TrialResult
from vstm_gaze.domain.geometry import Ray
from vstm_gaze.domain.samples import GazeSample
from vstm_gaze.io.session_log import HEADERS, SessionLog
from vstm_gaze.io.tables import read_stream, session_paths


def make_sample(t: int) -> GazeSample:
    return GazeSample(
        timestamp_ms=t,
        trial_id=1,
        phase=Phase.STUDY,
        set_size=3,
        retention_s=0.6,
        ray=Ray(np.zeros(3), np.array([0.0, 0.0, 1.0])),
        is_real_gaze=False,
        viewport=(0.5, 0.5),
    )


def test_file_names_and_headers(tmp_path):
    log = SessionLog(str(tmp_path / "out"), file_prefix="pilot", timestamp="20250102_093000")
    with log:
        pass

    assert log.stem == "pilot_20250102_093000"
    for name, path in log.paths.items():
        assert path.name == f"pilot_20250102_093000_{name}.csv"
        assert path.read_text(encoding="utf-8").splitlines() == [",".join(HEADERS[name])]
    assert session_paths(str(tmp_path / "out"), log.stem) == log.paths


def test_samples_header_columns():
    assert len(HEADERS["samples"]) == 21
    assert HEADERS["trials"][-1] == "timed_out"


def test_event_values_are_quoted_not_rewritten(session_log):
    session_log.log_event(5, 2, "NOTE", 'a,b\nc "d"')
    rows = stream_rows(session_log, "events")
    assert rows == [["5", "2", "NOTE", 'a,b\nc "d"']]


def test_label_with_comma_reads_back_unchanged(session_log):
    sample = replace(
        make_sample(0),
        aoi_id="r0_c1",
        slot_index=0,
        label="Red, dark",
        hit_point=np.array([0.0, 0.0, 0.5]),
        distance=0.5,
        is_real_gaze=True,
    )
    session_log.write_sample(sample)
    session_log.log_event(0, 1, "AOI", "r0_c1;slot=0;label=Red, dark")
    session_log.close()

    samples = read_stream(str(session_log.paths["samples"]))
    events = read_stream(str(session_log.paths["events"]))
    assert list(samples.columns) == HEADERS["samples"]
    assert samples.loc[0, "label"] == "Red, dark"
    assert samples.loc[0, "aoi_id"] == "r0_c1"
    assert samples.loc[0, "real_gaze"] == 1
    assert events.loc[0, "value"] == "r0_c1;slot=0;label=Red, dark"


def test_rare_rows_are_flushed_immediately(session_log):
    session_log.write_trial(
        TrialResult(
            trial_id=3,
            set_size=4,
            retention_s=1.0,
            change=False,
            missing_index=-1,
            said_missing=True,
            correct=False,
            rt_ms=812.25,
        )
    )
    session_log.write_fixation(FixationRecord(3, Phase.TEST, "r1_c2", 100, 260))
    session_log.write_sequence(SummaryRow(3, Phase.TEST, (SequenceSegment("r1_c2", 100, 260),)))

    # readable before close
    assert read_rows(session_log.paths["trials"]) == [["3", "4", "1.00", "0", "-1", "1", "0", "812.2", "0"]]
    assert read_rows(session_log.paths["fixations"]) == [["3", "TEST", "r1_c2", "100", "260", "160"]]
    assert read_rows(session_log.paths["sequences"]) == [["3", "TEST", "r1_c2", "r1_c2:160"]]


def test_samples_flushed_in_batches(tmp_path):
    log = SessionLog(str(tmp_path), timestamp="20250101_000000", sample_flush_every=3)
    log.open()
    for t in (0, 10):
        log.write_sample(make_sample(t))
    log.write_sample(make_sample(20))
    assert len(read_rows(log.paths["samples"])) == 3
    assert log.rows_written["samples"] == 3
    log.close()


def test_close_is_idempotent_and_drops_later_rows(tmp_path):
    log = SessionLog(str(tmp_path), timestamp="20250101_000000")
    log.open()
    log.log_event(0, -1, "SESSION_START")
    log.close()
    log.close()
    log.log_event(10, -1, "LATE")
    log.write_sample(make_sample(10))

    assert not log.is_open
    assert [row[2] for row in read_rows(log.paths["events"])] == ["SESSION_START"]
    assert log.rows_written["samples"] == 0


def test_from_config(tmp_path):
    cfg = LoggingConfig(output_dir=str(tmp_path), file_prefix="cfg", sample_flush_every=5)
    log = SessionLog.from_config(cfg, timestamp="20250101_000000")
    assert log.stem == "cfg_20250101_000000"
    assert log.sample_flush_every == 5


def test_streams_read_back_with_pandas(session_log):
    session_log.write_sample(make_sample(0))
    session_log.write_sequence(
        SummaryRow(1, Phase.STUDY, (SequenceSegment("r0_c1", 0, 50), SequenceSegment("r1_c1", 50, 90)))
    )
    session_log.close()

    samples = read_stream(str(session_log.paths["samples"]))
    assert list(samples.columns) == HEADERS["samples"]
    assert samples.loc[0, "slot_index"] == -1
    assert samples["aoi_id"].isna().all()

    sequences = read_stream(str(session_log.paths["sequences"]))
    assert sequences.loc[0, "seq"] == "r0_c1>r1_c1"
    assert sequences.loc[0, "segments"] == "r0_c1:50;r1_c1:40"
