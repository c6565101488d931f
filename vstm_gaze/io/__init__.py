"""Trial plan input, session CSV streams and progress observers."""

from .observers import ConsoleReporter, SessionObserver, SessionSummary
from .plan import PlanLoadReport, load_trial_plan, parse_trial_plan
from .session_log import HEADERS, SessionLog
from .tables import read_session, read_stream, session_paths

__all__ = [
    "ConsoleReporter",
    "HEADERS",
    "PlanLoadReport",
    "SessionLog",
    "SessionObserver",
    "SessionSummary",
    "load_trial_plan",
    "parse_trial_plan",
    "read_session",
    "read_stream",
    "session_paths",
]
