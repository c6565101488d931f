# vstm_gaze/io/tables.py
from __future__ import annotations

from pathlib import Path
from typing import Dict

import pandas as pd

from ..config.constants import LoggingConstants

# Columns that must stay text even when every value looks numeric
_TEXT_COLUMNS = {"aoi_id": str, "label": str, "value": str, "seq": str, "segments": str, "phase": str}


def read_stream(path: str) -> pd.DataFrame:
    """
    Read one session stream written by :class:`SessionLog`.

    - comma separator, header row
    - AOI ids, labels, event values and sequence strings stay strings;
      empty fields become NaN
    """
    return pd.read_csv(path, sep=",", dtype=_TEXT_COLUMNS, low_memory=False)


def session_paths(directory: str, stem: str) -> Dict[str, Path]:
    """Paths of the five streams of the session ``stem``."""
    base = Path(directory)
    return {name: base / f"{stem}_{name}.csv" for name in LoggingConstants.STREAMS}


def read_session(directory: str, stem: str) -> Dict[str, pd.DataFrame]:
    """All streams of one session keyed by stream name."""
    return {name: read_stream(str(path)) for name, path in session_paths(directory, stem).items()}
