# vstm_gaze/cli.py
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import pandas as pd

from .config_builder import ConfigBuilder
from .errors import ConfigurationError, TrialPlanError
from .io.observers import ConsoleReporter
from .io.plan import load_trial_plan
from .io.tables import read_stream
from .simple_api import build_simulated_session
from .task.responders import SimulatedResponder

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    """
    CLI parser for the missing-object gaze task.

    Only parsing and option descriptions; the work happens in the
    command functions below.
    """
    parser = argparse.ArgumentParser(
        prog="vstm-gaze",
        description=(
            "Missing-object visual short-term memory task with gaze logging: "
            "validate trial plans, run headless simulated sessions and inspect "
            "the resulting CSV streams."
        ),
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_validate = sub.add_parser("validate-plan", help="Load a trial plan and report skipped rows.")
    p_validate.add_argument("plan", help="Trial plan (.csv, or .tsv for tab separated).")
    p_validate.add_argument("--grid-size", type=int, default=4, help="Grid size (default: 4, i.e. 16 cells).")

    p_run = sub.add_parser("run", help="Run a plan headless with simulated gaze and responses.")
    p_run.add_argument("plan", help="Trial plan (.csv, or .tsv for tab separated).")
    p_run.add_argument("--output", required=True, help="Directory for the five session CSV files.")
    p_run.add_argument("--config", default=None, help="Optional JSON session config.")
    p_run.add_argument("--prefix", default=None, help="File prefix of the session streams.")
    p_run.add_argument("--seed", type=int, default=0, help="Seed of the simulated viewer and participant.")
    p_run.add_argument("--tick-ms", type=int, default=11, help="Tick length in ms (default: 11, ~90 Hz).")
    p_run.add_argument(
        "--min-fixation-ms",
        type=int,
        default=None,
        help="Minimum dwell for a fixation (default: from config, 100 ms).",
    )
    p_run.add_argument("--accuracy", type=float, default=0.85, help="Simulated participant accuracy.")
    p_run.add_argument(
        "--timeout-probability",
        type=float,
        default=0.1,
        help="Probability that the simulated participant does not answer.",
    )
    p_run.add_argument("--fast", action="store_true", help="Shorten the inter-trial interval.")
    p_run.add_argument("--quiet", action="store_true", help="No per-trial console output.")

    p_show = sub.add_parser("show", help="Print a session stream.")
    p_show.add_argument("stream", help="One of the *_samples/events/trials/fixations/sequences.csv files.")
    p_show.add_argument("--head", type=int, default=20, help="Number of rows to print (default: 20).")

    return parser


def cmd_validate_plan(args: argparse.Namespace) -> int:
    plan, report = load_trial_plan(args.plan, grid_size=args.grid_size)
    print(f"Plan: {args.plan}")
    print(f"  rows read:    {report.rows_read}")
    print(f"  rows skipped: {report.rows_skipped}")
    for warning in report.warnings:
        print(f"  ! {warning}")
    with pd.option_context("display.width", 120):
        print(plan.to_frame().to_string(index=False))
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    config = ConfigBuilder.build_session_config(args)
    plan, report = load_trial_plan(args.plan, grid_size=config.grid.grid_size)
    runner = build_simulated_session(
        plan,
        config=config,
        seed=args.seed,
        tick_ms=args.tick_ms,
        observers=[ConsoleReporter(verbose=not args.quiet)],
        plan_warnings=report.warnings,
        responder=SimulatedResponder(
            accuracy=args.accuracy,
            timeout_probability=args.timeout_probability,
            seed=args.seed,
        ),
    )
    runner.run()
    for name, path in runner.log.paths.items():
        print(f"  {name:<10} {path}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    df = read_stream(args.stream)
    print(f"{args.stream}: {len(df)} rows")
    with pd.option_context("display.width", 160, "display.max_columns", None):
        print(df.head(args.head).to_string(index=False))
    return 0


COMMANDS = {
    "validate-plan": cmd_validate_plan,
    "run": cmd_run,
    "show": cmd_show,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except (TrialPlanError, ConfigurationError) as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
