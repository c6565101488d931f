import numpy as np
import pytest

from conftest import FailingRaySource, ScriptedAoiResolver, SequenceRaySource, events_named, stream_rows
from vstm_gaze.domain.events import Phase
from vstm_gaze.domain.geometry import Ray
from vstm_gaze.gaze.base import IAoiResolver
from vstm_gaze.gaze.camera import PinholeCamera
from vstm_gaze.task.context import TrialContext
from vstm_gaze.task.recorder import SampleRecorder

STUDY = TrialContext(trial_id=1, phase=Phase.STUDY, set_size=3, retention_s=0.6)


class ExplodingResolver(IAoiResolver):
    def resolve(self, ray):
        raise ValueError("broken collider")


def test_sample_row_for_hit(session_log, forward_ray):
    recorder = SampleRecorder(SequenceRaySource([forward_ray]), ScriptedAoiResolver(["r0_c1"]), session_log)
    sample = recorder.record_tick(STUDY, 10)

    assert sample.aoi_id == "r0_c1"
    assert sample.is_real_gaze is True
    assert sample.phase is Phase.STUDY
    row = stream_rows(session_log, "samples")[0]
    assert row[:8] == ["10", "1", "STUDY", "3", "0.60", "r0_c1", "0", "Red"]
    assert row[8:14] == ["0.00000", "0.00000", "0.00000", "0.00000", "0.00000", "1.00000"]
    assert row[14:18] == ["0.00000", "0.00000", "0.50000", "0.50000"]
    assert row[-1] == "1"


def test_sample_row_without_hit(session_log, forward_ray):
    recorder = SampleRecorder(SequenceRaySource([forward_ray], is_real=False), ScriptedAoiResolver([None]), session_log)
    recorder.record_tick(STUDY, 10)

    row = stream_rows(session_log, "samples")[0]
    assert row[5:8] == ["", "-1", ""]
    # reference point one metre along the ray
    assert row[14:17] == ["0.00000", "0.00000", "1.00000"]
    assert row[17] == "-1.00000"
    assert row[-1] == "0"


def test_viewport_projection_with_camera(session_log):
    camera = PinholeCamera(position=(0, 0, 0), forward=(0, 0, 1))
    source = SequenceRaySource([camera.forward_ray()])
    recorder = SampleRecorder(source, ScriptedAoiResolver([None]), session_log, camera=camera)
    sample = recorder.record_tick(STUDY, 10)
    assert sample.viewport == pytest.approx((0.5, 0.5))


def test_failing_source_falls_back_and_logs_once(session_log):
    camera = PinholeCamera(position=(0, 1, 0), forward=(0, 0, 1))
    source = FailingRaySource()
    recorder = SampleRecorder(source, ScriptedAoiResolver([None]), session_log, camera=camera)

    samples = [recorder.record_tick(STUDY, t) for t in (10, 20, 30)]

    assert all(s.is_real_gaze is False for s in samples)
    assert samples[0].ray == camera.forward_ray()
    assert len(events_named(session_log, "GAZE_SOURCE_ERROR")) == 1
    assert "eye tracker disconnected" in events_named(session_log, "GAZE_SOURCE_ERROR")[0][3]
    assert len(stream_rows(session_log, "samples")) == 3


def test_failing_source_without_camera_uses_neutral_ray(session_log):
    recorder = SampleRecorder(FailingRaySource(), ScriptedAoiResolver([None]), session_log)
    sample = recorder.record_tick(STUDY, 10)
    assert sample.ray == Ray.neutral()


def test_failing_resolver_means_no_aoi(session_log, forward_ray):
    recorder = SampleRecorder(SequenceRaySource([forward_ray]), ExplodingResolver(), session_log)
    first = recorder.record_tick(STUDY, 10)
    recorder.record_tick(STUDY, 20)

    assert first.aoi_id is None
    assert len(events_named(session_log, "AOI_RESOLVE_ERROR")) == 1


def test_fixation_and_sequence_rows_written_on_aoi_change(session_log, forward_ray):
    aois = ["A", "A", "A", "B", "B"]
    recorder = SampleRecorder(SequenceRaySource([forward_ray]), ScriptedAoiResolver(aois), session_log)
    for t in (0, 50, 120, 121, 200):
        recorder.record_tick(STUDY, t)

    assert stream_rows(session_log, "fixations") == [["1", "STUDY", "A", "0", "121", "121"]]
    assert stream_rows(session_log, "sequences") == []


def test_close_mid_fixation_writes_truncated_records(session_log, forward_ray):
    aois = ["A", "A", "A", "A", "B", "B"]
    recorder = SampleRecorder(SequenceRaySource([forward_ray]), ScriptedAoiResolver(aois), session_log)
    test_ctx = TrialContext(trial_id=2, phase=Phase.TEST, set_size=4, retention_s=1.0)
    for t in (0, 40, 80, 120, 160, 300):
        recorder.record_tick(test_ctx, t)

    recorder.close(310)
    recorder.close(320)
    session_log.close()

    fixations = stream_rows(session_log, "fixations")
    assert fixations == [
        ["2", "TEST", "A", "0", "160", "160"],
        ["2", "TEST", "B", "160", "310", "150"],
    ]
    sequences = stream_rows(session_log, "sequences")
    assert sequences == [["2", "TEST", "A>B", "A:160;B:150"]]


def test_context_change_between_ticks_splits_rows(session_log, forward_ray):
    recorder = SampleRecorder(SequenceRaySource([forward_ray]), ScriptedAoiResolver(["A"]), session_log)
    recorder.record_tick(STUDY, 0)
    recorder.record_tick(STUDY, 100)
    retention = TrialContext(trial_id=1, phase=Phase.RETENTION, set_size=3, retention_s=0.6)
    recorder.record_tick(retention, 110)

    fixations = stream_rows(session_log, "fixations")
    sequences = stream_rows(session_log, "sequences")
    assert fixations == [["1", "STUDY", "A", "0", "110", "110"]]
    assert sequences == [["1", "STUDY", "A", "A:110"]]
    assert np.isclose(recorder.last_sample.distance, 0.5)
