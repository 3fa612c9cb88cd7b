from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from civicscore.cli import parse_args, run_command

OUTPUT_FILES = (
    "establishments_categorized.csv",
    "establishments_uncategorized.csv",
    "food_establishments_by_neighbourhood.json",
    "crime_by_neighbourhood.json",
    "311_by_neighbourhood.json",
    "development_by_neighbourhood.json",
    "food_inspections_by_neighbourhood.json",
    "neighbourhood_scores.json",
)


def _run_all(data_dir: Path, run_id: str) -> int:
    shutil.copytree(Path("tests/fixtures/sample"), data_dir)
    args = parse_args(
        [
            "all",
            "--config-dir",
            "config",
            "--data-dir",
            str(data_dir),
            "--run-date",
            "2025-06-30",
            "--run-id",
            run_id,
        ]
    )
    return run_command(args)


@pytest.mark.regression
def test_fixture_crime_snapshot(tmp_path: Path):
    data_dir = tmp_path / "data"
    assert _run_all(data_dir, "run-fixture") == 0

    actual = (data_dir / "out" / "crime_by_neighbourhood.json").read_text(encoding="utf-8")
    expected = Path("tests/fixtures/expected/crime_by_neighbourhood.json").read_text(encoding="utf-8")
    assert actual == expected


@pytest.mark.regression
def test_reruns_produce_identical_outputs(tmp_path: Path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    assert _run_all(first, "run-a") == 0
    assert _run_all(second, "run-b") == 0

    for name in OUTPUT_FILES:
        assert (first / "out" / name).read_bytes() == (second / "out" / name).read_bytes(), name
