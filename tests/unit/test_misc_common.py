from datetime import date

from civicscore.common.deterministic import rate, round_count, round_half_up, stable_sorted, top_breakdown
from civicscore.common.scoring import clamp
from civicscore.common.time_utils import (
    generate_run_id,
    parse_record_date,
    parse_record_year,
    parse_run_date,
    resolve_window,
)


def test_stable_sorted_orders_values():
    assert stable_sorted([{"k": 2}, {"k": 1}], key=lambda item: item["k"]) == [{"k": 1}, {"k": 2}]


def test_round_half_up_differs_from_bankers_rounding():
    assert round_count(2.5) == 3
    assert round_count(0.5) == 1
    assert round_count(0.49) == 0
    assert round_half_up(66.666, 1) == 66.7


def test_rate_is_none_without_denominator():
    assert rate(3, 100, scale=1000) == 30.0
    assert rate(1, 3.5, digits=2) == 0.29
    assert rate(5, 0) is None


def test_top_breakdown_caps_before_merging_labels():
    counts = {
        "Pothole | Nid-de-poule": 4.0,
        "Pothole | Nid de poule": 2.6,
        "Sidewalk": 2.0,
        "Curb": 0.4,
    }
    assert top_breakdown(counts, 2) == {"Pothole": 7}
    assert top_breakdown(counts, None) == {"Pothole": 7, "Sidewalk": 2, "Curb": 0}


def test_top_breakdown_orders_ties_by_label():
    assert list(top_breakdown({"b": 1.0, "a": 1.0, "c": 1.0}, 2)) == ["a", "b"]


def test_clamp_within_bounds():
    assert clamp(-5.0) == 0.0
    assert clamp(50.0) == 50.0
    assert clamp(150.0) == 100.0


def test_generate_run_id_prefix():
    assert generate_run_id().startswith("run-")


def test_parse_run_date_defaults_and_iso():
    assert parse_run_date("2026-02-17") == "2026-02-17"
    assert len(parse_run_date(None)) == len("2026-02-17")


def test_parse_record_date_formats():
    assert parse_record_date("20191125T15:17:17.3065280") == date(2019, 11, 25)
    assert parse_record_date("2019-11-25") == date(2019, 11, 25)
    assert parse_record_date("2019-11-25T00:00:00Z") == date(2019, 11, 25)
    assert parse_record_date("20191340T00:00:00") is None
    assert parse_record_date("soon") is None
    assert parse_record_year("2023-07-01") == 2023
    assert parse_record_year("n/a") is None


def test_resolve_window_years_back_is_relative_to_run_date():
    window = resolve_window({"years_back": 2}, "2025-06-30")
    assert window.contains(date(2023, 6, 30))
    assert not window.contains(date(2023, 6, 29))
    assert not window.contains(date(2025, 7, 1))
    assert not window.contains(None)


def test_resolve_window_handles_leap_day_anchor():
    window = resolve_window({"years_back": 1}, "2024-02-29")
    assert window.start == date(2023, 2, 28)


def test_resolve_window_open_ended_year_range():
    window = resolve_window({"from_year": 2023}, "2025-06-30")
    assert window.contains_year(2023)
    assert window.contains_year(2031)
    assert not window.contains_year(2022)
    assert window.contains(date(2023, 1, 1))
