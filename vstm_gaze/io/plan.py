# vstm_gaze/io/plan.py
"""
Trial plan loader.

The plan is a delimited text table with a header row. Columns are read by
position:

    trial_id, change, missing_cell, added_cell, added_color, cell_0 ... cell_15

followed by optional named columns (currently ``retention_s``). A cell field
holds the label/colour of the item shown in that cell at study; an empty
field means the cell stays empty. ``missing_cell`` and ``added_cell`` accept
``none``, ``-1`` or an empty field for "no cell".

Malformed rows are skipped with a warning; a plan without any usable row is
fatal.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from ..config.constants import TaskConstants, ValidationMessages
from ..domain.trials import TrialPlan, TrialSpec
from ..errors import TrialPlanError

logger = logging.getLogger(__name__)

FIXED_COLUMNS = ("trial_id", "change", "missing_cell", "added_cell", "added_color")

_NONE_TOKENS = {"", "none", "-1", "na", "n/a"}
_TRUE_TOKENS = {"1", "true", "yes", "y"}
_FALSE_TOKENS = {"0", "false", "no", "n"}


class _RowError(ValueError):
    """A single plan row cannot be used."""


@dataclass
class PlanLoadReport:
    """What happened while reading a plan."""

    source: str
    rows_read: int = 0
    rows_skipped: int = 0
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        self.rows_skipped += 1
        logger.warning("%s: %s", self.source, message)


def _parse_int(value: str, column: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise _RowError(f"could not parse {column} '{value}' as integer") from None


def _parse_flag(value: str) -> bool:
    token = value.strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise _RowError(f"could not parse change flag '{value}'")


def _parse_cell(value: str, column: str, cell_count: int) -> Optional[int]:
    if value.strip().lower() in _NONE_TOKENS:
        return None
    cell = _parse_int(value, column)
    if not 0 <= cell < cell_count:
        raise _RowError(f"{column} {cell} outside grid (0..{cell_count - 1})")
    return cell


def _parse_retention(value: str) -> Optional[float]:
    if not value.strip():
        return None
    try:
        retention = float(value)
    except ValueError:
        raise _RowError(f"could not parse retention_s '{value}'") from None
    if retention < 0:
        raise _RowError(f"retention_s must be >= 0, got {retention}")
    return retention


def _parse_row(fields: List[str], cell_count: int, retention_col: Optional[int]) -> TrialSpec:
    trial_id = _parse_int(fields[0], "trial_id")
    change = _parse_flag(fields[1])
    missing_cell = _parse_cell(fields[2], "missing_cell", cell_count)
    added_cell = _parse_cell(fields[3], "added_cell", cell_count)
    added_label = fields[4] or None

    offset = len(FIXED_COLUMNS)
    cell_labels = tuple(label or None for label in fields[offset:offset + cell_count])

    retention_s = None
    if retention_col is not None and retention_col < len(fields):
        retention_s = _parse_retention(fields[retention_col])

    if not any(cell_labels):
        raise _RowError("no item in any cell")
    if change and (missing_cell is None or cell_labels[missing_cell] is None):
        raise _RowError(f"change trial but missing_cell {missing_cell} holds no item")

    return TrialSpec(
        trial_id=trial_id,
        change=change,
        missing_cell=missing_cell,
        added_cell=added_cell,
        added_label=added_label,
        cell_labels=cell_labels,
        retention_s=retention_s,
    )


def expected_header(grid_size: int = TaskConstants.DEFAULT_GRID_SIZE) -> List[str]:
    """Required leading column names for a ``grid_size`` x ``grid_size`` grid."""
    return list(FIXED_COLUMNS) + [f"cell_{i}" for i in range(grid_size * grid_size)]


def _check_header(header: List[str], expected: List[str], source: str) -> None:
    if not header or header[0] != FIXED_COLUMNS[0]:
        first = header[0] if header else ""
        raise TrialPlanError(f"{source}: {ValidationMessages.MISSING_HEADER} (first row starts with '{first}')")
    for position, name in enumerate(expected):
        found = header[position] if position < len(header) else "<missing>"
        if found != name:
            raise TrialPlanError(
                f"{source}: {ValidationMessages.BAD_HEADER}: column {position + 1} is '{found}', expected '{name}'"
            )


def _read_table(text: str, delimiter: str, report: PlanLoadReport) -> pd.DataFrame:
    def too_long(fields: List[str]) -> None:
        report.rows_read += 1
        report.warn(f"row with {len(fields)} fields has more fields than the header; skipping")
        return None

    try:
        return pd.read_csv(
            StringIO(text),
            sep=delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=too_long,
        )
    except pd.errors.EmptyDataError:
        raise TrialPlanError(f"{report.source}: {ValidationMessages.MISSING_HEADER}") from None
    except pd.errors.ParserError as exc:
        raise TrialPlanError(f"{report.source}: could not read plan table: {exc}") from None


def parse_trial_plan(
    text: str,
    grid_size: int = TaskConstants.DEFAULT_GRID_SIZE,
    delimiter: str = ",",
    source: str = "<plan>",
) -> Tuple[TrialPlan, PlanLoadReport]:
    """Parse plan text into a validated :class:`TrialPlan`.

    Fields may be quoted, so a label can contain the delimiter. Rows shorter
    than the header are padded with NaN by pandas, which is how short rows are
    told apart from rows whose trailing cells are empty.

    Raises:
        TrialPlanError: header missing or wrong, or no usable trial row.
    """
    report = PlanLoadReport(source=source)
    cell_count = grid_size * grid_size
    required = len(FIXED_COLUMNS) + cell_count

    table = _read_table(text, delimiter, report)
    rows = [
        [None if pd.isna(value) else str(value).strip() for value in values]
        for values in table.itertuples(index=False, name=None)
    ]

    header = [(name or "").lstrip("\ufeff").lower() for name in rows[0]] if rows else []
    _check_header(header, expected_header(grid_size), source)
    if len(rows) < 2:
        raise TrialPlanError(f"{source}: {ValidationMessages.MISSING_HEADER}")

    retention_col = None
    if "retention_s" in header[required:]:
        retention_col = required + header[required:].index("retention_s")

    specs: List[TrialSpec] = []
    seen_ids = set()
    for row_no, values in enumerate(rows[1:], start=1):
        report.rows_read += 1
        present = sum(1 for value in values if value is not None)
        if present < required:
            report.warn(f"row {row_no}: expected at least {required} fields, got {present}; skipping")
            continue
        fields = [value or "" for value in values]
        try:
            spec = _parse_row(fields, cell_count, retention_col)
        except _RowError as exc:
            report.warn(f"row {row_no}: {exc}; skipping")
            continue
        if spec.trial_id in seen_ids:
            report.warn(f"row {row_no}: duplicate trial_id {spec.trial_id}; skipping")
            continue
        seen_ids.add(spec.trial_id)
        specs.append(spec)

    if not specs:
        raise TrialPlanError(
            f"{source}: {ValidationMessages.EMPTY_PLAN} ({report.rows_skipped} of {report.rows_read} rows skipped)"
        )

    logger.info("Loaded plan with %s trials from %s", len(specs), source)
    return TrialPlan(specs, source=source), report


def load_trial_plan(
    path: str,
    grid_size: int = TaskConstants.DEFAULT_GRID_SIZE,
    delimiter: Optional[str] = None,
) -> Tuple[TrialPlan, PlanLoadReport]:
    """
    Read a trial plan from disk.

    - ``.tsv`` files are tab separated, everything else comma separated
      unless ``delimiter`` is given
    - a UTF-8 byte order mark is ignored
    """
    plan_path = Path(path)
    if delimiter is None:
        delimiter = "\t" if plan_path.suffix.lower() == ".tsv" else ","
    try:
        text = plan_path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        raise TrialPlanError(f"Trial plan not found: {plan_path}") from None
    return parse_trial_plan(text, grid_size=grid_size, delimiter=delimiter, source=str(plan_path))
