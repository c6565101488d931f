# vstm_gaze/simple_api.py
"""Wire up a complete headless session in one call.

The simulated session uses the scripted viewer as gaze source and the
simulated participant as responder, so a plan can be run end to end
without a headset.

Example:
    >>> from vstm_gaze.simple_api import run_simulated_session
    >>>
    >>> runner = run_simulated_session("trials_plan.csv", output_dir="sessions", seed=7)
    >>> runner.log.paths["trials"]
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

from .config import SessionConfig
from .domain.trials import TrialPlan
from .gaze.aoi import BoxAoiResolver
from .gaze.camera import PinholeCamera, default_camera
from .gaze.sources import ScriptedScanRaySource
from .io.observers import SessionObserver
from .io.plan import load_trial_plan
from .io.session_log import SessionLog
from .task.controller import TrialPhaseController
from .task.display import ItemTemplate, TableGridDisplay, TableSurface
from .task.recorder import SampleRecorder
from .task.responders import SimulatedResponder
from .task.runner import ManualClock, SessionRunner


def build_simulated_session(
    plan: TrialPlan,
    config: Optional[SessionConfig] = None,
    seed: int = 0,
    tick_ms: int = 11,
    timestamp: Optional[str] = None,
    observers: Optional[Sequence[SessionObserver]] = None,
    plan_warnings: Optional[Sequence[str]] = None,
    camera: Optional[PinholeCamera] = None,
    responder: Optional[SimulatedResponder] = None,
) -> SessionRunner:
    """
    Assemble log, display, gaze pipeline, controller and scheduler.

    Args:
        plan: Validated trial plan
        config: Session configuration (defaults if None)
        seed: Seed of the scripted viewer and the simulated participant
        tick_ms: Tick length of the manual clock
        timestamp: Fixed session timestamp for the file names
        observers: Session observers to register
        plan_warnings: Loader warnings to record as PLAN_WARNING events
        camera: Viewer camera (seated default if None)
        responder: Simulated participant (seeded default if None)

    Returns:
        A runner that has not been started yet.
    """
    cfg = config or SessionConfig()
    camera = camera or default_camera()
    clock = ManualClock()

    log = SessionLog.from_config(cfg.logging, timestamp=timestamp)
    resolver = BoxAoiResolver(max_distance_m=cfg.gaze.max_ray_distance_m)
    display = TableGridDisplay(
        TableSurface(),
        ItemTemplate(scale_m=cfg.grid.object_scale_m),
        resolver,
        grid=cfg.grid,
    )
    source = ScriptedScanRaySource(
        camera,
        resolver,
        now_ms=clock.now_ms,
        dwell_ms=cfg.gaze.simulated_dwell_ms,
        blank_probability=cfg.gaze.simulated_blank_probability,
        seed=seed,
    )
    recorder = SampleRecorder(source, resolver, log, camera=camera, fixation_config=cfg.fixation)
    controller = TrialPhaseController(
        plan,
        display,
        log,
        recorder=recorder,
        observers=observers,
        plan_warnings=plan_warnings,
        config=cfg,
    )
    return SessionRunner(
        controller,
        recorder,
        log,
        clock=clock,
        tick_ms=tick_ms,
        responder=responder or SimulatedResponder(seed=seed),
    )


def run_simulated_session(
    plan_path: str,
    output_dir: str = "sessions",
    seed: int = 0,
    tick_ms: int = 11,
    config: Optional[SessionConfig] = None,
    observers: Optional[Sequence[SessionObserver]] = None,
) -> SessionRunner:
    """
    Load a plan from disk and run it to the end with simulated gaze and responses.

    Returns:
        The finished runner (its log holds the paths of the five streams).
    """
    base = config or SessionConfig()
    cfg = replace(base, logging=replace(base.logging, output_dir=output_dir))
    plan, report = load_trial_plan(plan_path, grid_size=cfg.grid.grid_size)
    runner = build_simulated_session(
        plan,
        config=cfg,
        seed=seed,
        tick_ms=tick_ms,
        observers=observers,
        plan_warnings=report.warnings,
    )
    runner.run()
    return runner
