import csv
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pytest

from vstm_gaze.config import SessionConfig, TaskTimingConfig
from vstm_gaze.domain.geometry import Ray
from vstm_gaze.domain.samples import AoiHit
from vstm_gaze.gaze.aoi import BoxAoiResolver
from vstm_gaze.gaze.base import IAoiResolver, IGazeRaySource
from vstm_gaze.io.plan import parse_trial_plan
from vstm_gaze.io.session_log import SessionLog
from vstm_gaze.task.controller import TrialPhaseController
from vstm_gaze.task.display import ItemTemplate, TableGridDisplay, TableSurface
from vstm_gaze.task.recorder import SampleRecorder

HEADER = ",".join(
    ["trial_id", "change", "missing_cell", "added_cell", "added_color"]
    + [f"cell_{i}" for i in range(16)]
    + ["retention_s"]
)


def plan_row(
    trial_id: int,
    change: bool,
    missing_cell,
    added_cell,
    added_color: str,
    cells: Dict[int, str],
    retention_s: str = "",
) -> str:
    """One 22-field plan line; ``cells`` maps grid cell -> colour."""
    fields = [
        str(trial_id),
        "1" if change else "0",
        "none" if missing_cell is None else str(missing_cell),
        "none" if added_cell is None else str(added_cell),
        added_color,
    ]
    fields += [cells.get(i, "") for i in range(16)]
    fields.append(retention_s)
    return ",".join(fields)


def plan_text(rows: Iterable[str]) -> str:
    return "\n".join([HEADER, *rows]) + "\n"


def default_rows() -> List[str]:
    return [
        plan_row(1, True, 5, 10, "Yellow", {1: "Red", 5: "Blue", 12: "Green"}),
        plan_row(2, False, None, 3, "Purple", {0: "Red", 6: "Green", 15: "Blue"}, retention_s="1.0"),
    ]


class SequenceRaySource(IGazeRaySource):
    """Returns pre-recorded rays in order, repeating the last one."""

    def __init__(self, rays: Sequence[Ray], is_real: bool = True) -> None:
        self.rays = list(rays)
        self.is_real = is_real
        self.calls = 0

    def try_get_ray(self):
        ray = self.rays[min(self.calls, len(self.rays) - 1)]
        self.calls += 1
        return ray, self.is_real


class FailingRaySource(IGazeRaySource):
    def __init__(self) -> None:
        self.calls = 0

    def try_get_ray(self):
        self.calls += 1
        raise RuntimeError("eye tracker disconnected")


class ScriptedAoiResolver(IAoiResolver):
    """Resolver that ignores the ray and replays a list of AOI ids."""

    def __init__(self, aoi_ids: Sequence[Optional[str]]) -> None:
        self.aoi_ids = list(aoi_ids)
        self.calls = 0

    def resolve(self, ray: Ray) -> Optional[AoiHit]:
        aoi = self.aoi_ids[min(self.calls, len(self.aoi_ids) - 1)]
        self.calls += 1
        if aoi is None:
            return None
        return AoiHit(aoi_id=aoi, slot_index=0, label="Red", point=ray.point_at(0.5), distance=0.5)


class SettableAoiResolver(IAoiResolver):
    """Resolver whose current AOI is set by the test between ticks."""

    def __init__(self) -> None:
        self.current: Optional[str] = None

    def resolve(self, ray: Ray) -> Optional[AoiHit]:
        if self.current is None:
            return None
        return AoiHit(aoi_id=self.current, slot_index=1, label="Blue", point=ray.point_at(0.6), distance=0.6)


def read_rows(path) -> List[List[str]]:
    """Data rows of a session stream (header dropped)."""
    with open(path, encoding="utf-8", newline="") as handle:
        return list(csv.reader(handle))[1:]


def stream_rows(log: SessionLog, name: str) -> List[List[str]]:
    """Flush the buffered streams of ``log`` and return the rows of ``name``."""
    log.flush()
    return read_rows(log.paths[name])


def events_named(log: SessionLog, name: str) -> List[List[str]]:
    return [row for row in stream_rows(log, "events") if row[2] == name]


@pytest.fixture
def forward_ray() -> Ray:
    return Ray(np.zeros(3), np.array([0.0, 0.0, 1.0]))


@pytest.fixture
def session_log(tmp_path) -> SessionLog:
    log = SessionLog(str(tmp_path), file_prefix="test", timestamp="20250101_120000")
    log.open()
    yield log
    log.close()


@pytest.fixture
def plan():
    trial_plan, _ = parse_trial_plan(plan_text(default_rows()))
    return trial_plan


@pytest.fixture
def fast_timing() -> TaskTimingConfig:
    return TaskTimingConfig(study_s=0.1, retention_s=0.05, test_display_s=0.1, test_max_s=0.5, inter_trial_s=0.05)


@pytest.fixture
def task_setup(plan, session_log, fast_timing):
    """Controller wired to a real grid display and a settable AOI resolver."""
    box_resolver = BoxAoiResolver()
    display = TableGridDisplay(TableSurface(), ItemTemplate(), box_resolver)
    gaze_resolver = SettableAoiResolver()
    source = SequenceRaySource([Ray(np.zeros(3), np.array([0.0, 0.0, 1.0]))], is_real=False)
    recorder = SampleRecorder(source, gaze_resolver, session_log)
    controller = TrialPhaseController(
        plan,
        display,
        session_log,
        recorder=recorder,
        config=SessionConfig(timing=fast_timing),
    )
    return controller, recorder, display, gaze_resolver, box_resolver
