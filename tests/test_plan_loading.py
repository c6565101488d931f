import logging

import pytest

from conftest import HEADER, default_rows, plan_row, plan_text
from vstm_gaze.errors import TrialPlanError
from vstm_gaze.io.plan import load_trial_plan, parse_trial_plan


def test_valid_plan_loads_in_order():
    plan, report = parse_trial_plan(plan_text(default_rows()))

    assert plan.trial_ids == [1, 2]
    assert report.rows_read == 2
    assert report.rows_skipped == 0

    first = plan[0]
    assert first.change is True
    assert first.occupied_cells == [1, 5, 12]
    assert first.set_size == 3
    assert first.missing_cell == 5
    assert first.missing_index == 1
    assert first.added_cell == 10
    assert first.added_label == "Yellow"
    assert first.retention_s is None
    assert first.aoi_id_for_cell(5) == "r1_c1"

    second = plan[1]
    assert second.change is False
    assert second.missing_cell is None
    assert second.missing_index == -1
    assert second.retention_s == pytest.approx(1.0)


def test_short_row_is_skipped_with_warning(caplog):
    rows = [default_rows()[0], "7,1,3", default_rows()[1]]
    with caplog.at_level(logging.WARNING):
        plan, report = parse_trial_plan(plan_text(rows))

    assert plan.trial_ids == [1, 2]
    assert report.rows_skipped == 1
    assert "expected at least 21 fields, got 3" in report.warnings[0]
    assert any("skipping" in rec.message for rec in caplog.records)


@pytest.mark.parametrize(
    "bad_row",
    [
        plan_row("x", False, None, 3, "Red", {0: "Blue"}),
        plan_row(9, False, None, 3, "Red", {0: "Blue"}).replace("9,0,", "9,maybe,", 1),
        plan_row(9, False, None, 16, "Red", {0: "Blue"}),
        plan_row(9, False, None, 3, "Red", {}),
        plan_row(9, True, 4, 3, "Red", {0: "Blue"}),
        plan_row(9, True, None, 3, "Red", {0: "Blue"}),
        plan_row(9, False, None, 3, "Red", {0: "Blue"}, retention_s="-0.5"),
        plan_row(1, False, None, 3, "Red", {0: "Blue"}),
    ],
)
def test_unusable_rows_are_skipped(bad_row):
    rows = default_rows() + [bad_row]
    plan, report = parse_trial_plan(plan_text(rows))
    assert plan.trial_ids == [1, 2]
    assert report.rows_skipped == 1


def test_no_usable_rows_is_fatal():
    with pytest.raises(TrialPlanError):
        parse_trial_plan(plan_text(["1,1,3", "2,0"]))


def test_header_only_is_fatal():
    with pytest.raises(TrialPlanError):
        parse_trial_plan(HEADER + "\n")


def test_blank_lines_are_ignored():
    text = plan_text(default_rows()).replace("\n", "\n\n")
    plan, report = parse_trial_plan(text)
    assert len(plan) == 2
    assert report.rows_skipped == 0


def test_none_tokens_for_cells():
    row = plan_row(3, False, None, None, "", {2: "Red"}).replace("none,none", "-1,", 1)
    plan, _ = parse_trial_plan(plan_text([row]))
    assert plan[0].missing_cell is None
    assert plan[0].added_cell is None
    assert plan[0].added_label is None


def test_load_tsv_from_disk(tmp_path):
    text = plan_text(default_rows()).replace(",", "\t")
    path = tmp_path / "plan.tsv"
    path.write_text("\ufeff" + text, encoding="utf-8")

    plan, _ = load_trial_plan(str(path))

    assert plan.trial_ids == [1, 2]
    assert plan.source == str(path)


def test_missing_file_is_fatal(tmp_path):
    with pytest.raises(TrialPlanError):
        load_trial_plan(str(tmp_path / "nope.csv"))


def test_plan_frame():
    plan, _ = parse_trial_plan(plan_text(default_rows()))
    df = plan.to_frame()
    assert list(df["trial_id"]) == [1, 2]
    assert list(df["set_size"]) == [3, 3]
    assert list(df["missing_index"]) == [1, -1]


def test_quoted_label_keeps_the_delimiter():
    row = plan_row(4, True, 0, 3, "Red", {0: '"Red, dark"', 1: "Blue"})
    plan, report = parse_trial_plan(plan_text([row]))

    assert report.warnings == []
    spec = plan[0]
    assert spec.cell_labels[0] == "Red, dark"
    assert spec.cell_labels[1] == "Blue"
    assert spec.set_size == 2
    assert spec.missing_index == 0


def test_trailing_empty_cells_are_not_a_short_row():
    row = ",".join(["6", "0", "none", "none", "", "Red"] + [""] * 15 + [""])
    plan, report = parse_trial_plan(plan_text([row]))
    assert plan.trial_ids == [6]
    assert report.rows_skipped == 0


def test_plan_without_header_is_fatal():
    text = "\n".join(default_rows()) + "\n"
    with pytest.raises(TrialPlanError, match="header"):
        parse_trial_plan(text)


def test_header_with_columns_out_of_order_is_fatal():
    header = HEADER.replace("missing_cell,added_cell", "added_cell,missing_cell", 1)
    text = "\n".join([header, *default_rows()]) + "\n"
    with pytest.raises(TrialPlanError, match="column 3"):
        parse_trial_plan(text)


def test_header_missing_cell_columns_is_fatal():
    header = ",".join(HEADER.split(",")[:14])
    with pytest.raises(TrialPlanError, match="cell_9"):
        parse_trial_plan("\n".join([header, *default_rows()]) + "\n", grid_size=4)


def test_row_longer_than_header_is_skipped():
    rows = default_rows() + [plan_row(3, False, None, 3, "Red", {0: "Blue"}) + ",extra"]
    plan, report = parse_trial_plan(plan_text(rows))
    assert plan.trial_ids == [1, 2]
    assert report.rows_skipped == 1
    assert "more fields than the header" in report.warnings[0]


def test_empty_text_is_fatal():
    with pytest.raises(TrialPlanError):
        parse_trial_plan("")
