import shutil
from pathlib import Path

from civicscore.cli import main, parse_args
from civicscore.common.constants import EXIT_HARD_FAIL
from civicscore.common.fs import read_json


def test_parse_args_defaults():
    args = parse_args(["crime"])
    assert args.command == "crime"
    assert args.config_dir == "./config"
    assert args.data_dir == "./data"
    assert args.overlay_config_dir is None
    assert args.run_date is None
    assert args.log_level == "INFO"


def test_parse_args_accepts_overlay_config_dir():
    args = parse_args(["all", "--overlay-config-dir", "config/live", "--run-date", "2025-06-30"])
    assert args.overlay_config_dir == "config/live"
    assert args.run_date == "2025-06-30"


def test_missing_boundary_file_is_a_hard_failure(tmp_path: Path):
    data_dir = tmp_path / "data"
    shutil.copytree(Path("tests/fixtures/sample"), data_dir)
    (data_dir / "reference" / "boundaries.geojson").unlink()

    code = main(["crime", "--data-dir", str(data_dir), "--run-id", "run-test"])

    assert code == EXIT_HARD_FAIL
    assert not (data_dir / "out" / "crime_by_neighbourhood.json").exists()


def test_invalid_config_is_a_hard_failure(tmp_path: Path):
    config_dir = tmp_path / "config"
    shutil.copytree(Path("config"), config_dir)
    (config_dir / "scoring.yml").write_text("categories: {}\n", encoding="utf-8")

    code = main(["score", "--config-dir", str(config_dir), "--data-dir", str(tmp_path / "data")])

    assert code == EXIT_HARD_FAIL


def test_missing_dataset_is_skipped_not_failed(tmp_path: Path):
    data_dir = tmp_path / "data"
    shutil.copytree(Path("tests/fixtures/sample"), data_dir)
    (data_dir / "raw" / "crime_raw.csv").unlink()

    code = main(["crime", "--data-dir", str(data_dir), "--run-id", "run-test", "--run-date", "2025-06-30"])

    assert code == 0
    report = read_json(data_dir / "out" / "reports" / "crime_report.json")
    assert report["status"] == "skipped"
    assert report["run_id"] == "run-test"
