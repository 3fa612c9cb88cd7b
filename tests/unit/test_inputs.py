from pathlib import Path

import pytest

from civicscore.common.errors import MissingInputError, StageError
from civicscore.pipeline.accumulators import AssignmentTally
from civicscore.pipeline.coordinates import CoordinateTransformer
from civicscore.pipeline.inputs import parse_flag, read_mapped_rows, read_point, resolve_input

OTTAWA_BBOX = {"min_lat": 44.9, "max_lat": 45.6, "min_lon": -76.4, "max_lon": -75.2}
COLUMNS = {"year": "YEAR", "category": "OFF_CATEG", "ward": "WARD"}
SERVICE_REQUEST_COLUMNS = {
    "type": "Type | Type",
    "description": "Description | Description",
    "lat": "Latitude | Latitude",
    "lng": "Longitude | Longitude",
    "ward": "Ward | Quartier",
}
SERVICE_REQUEST_HEADER = (
    '"Service Request ID | Numéro de demande de service","Status | État","Type | Type",'
    '"Description | Description","Opened Date | Date d\'ouverture","Closed Date | Date de fermeture",'
    '"Address | Adresse","Latitude | Latitude","Longitude | Longitude","Ward | Quartier"\n'
)


def _write(path: Path, text: str, encoding: str = "utf-8") -> Path:
    path.write_text(text, encoding=encoding)
    return path


def test_resolve_input_missing_file(tmp_path: Path):
    with pytest.raises(MissingInputError):
        resolve_input(tmp_path, "raw/crime.csv", "crime")


def test_read_mapped_rows_maps_headers_and_counts_malformed(tmp_path: Path):
    path = _write(
        tmp_path / "crime.csv",
        "OFF_CATEG,YEAR\nAssault,2024\n\nMischief\n,,\nTheft,2023,extra\n",
        encoding="utf-8-sig",
    )
    tally = AssignmentTally()

    rows = list(read_mapped_rows(path, COLUMNS, required={"year", "category"}, tally=tally, dataset="crime"))

    assert rows == [
        {"year": "2024", "category": "Assault", "ward": None},
        {"year": "2023", "category": "Theft", "ward": None},
    ]
    assert tally.rows_read == 3
    assert tally.rows_malformed == 1


def test_read_mapped_rows_skips_rows_cut_short_of_mapped_columns(tmp_path: Path):
    path = _write(
        tmp_path / "311.csv",
        SERVICE_REQUEST_HEADER
        + "1,Closed,Roads and Transportation,Pothole\n"
        + "2,Open,Roads and Transportation,Pothole,2025-03-01,,100 Bank St,45.415,-75.69,Ward 14\n",
    )
    tally = AssignmentTally()

    rows = list(
        read_mapped_rows(
            path,
            SERVICE_REQUEST_COLUMNS,
            required={"type", "description"},
            tally=tally,
            dataset="service_requests",
        )
    )

    assert [row["ward"] for row in rows] == ["Ward 14"]
    assert tally.rows_read == 2
    assert tally.rows_malformed == 1


def test_read_mapped_rows_missing_required_header_fails(tmp_path: Path):
    path = _write(tmp_path / "crime.csv", "OFF_CATEG\nAssault\n")
    with pytest.raises(StageError):
        list(read_mapped_rows(path, COLUMNS, required={"year"}, tally=AssignmentTally(), dataset="crime"))


def test_read_mapped_rows_empty_file_fails(tmp_path: Path):
    path = _write(tmp_path / "crime.csv", "")
    with pytest.raises(StageError):
        list(read_mapped_rows(path, COLUMNS, required=set(), tally=AssignmentTally(), dataset="crime"))


def test_read_point_counts_unparsable_and_out_of_city_points():
    transformer = CoordinateTransformer(OTTAWA_BBOX)
    tally = AssignmentTally()

    assert read_point({"lat": "45.41", "lng": "-75.69"}, transformer, tally) == (45.41, -75.69)
    assert read_point({"lat": "north", "lng": "-75.69"}, transformer, tally) == (None, None)
    assert read_point({"lat": "43.65", "lng": "-79.38"}, transformer, tally) == (None, None)
    assert tally.rows_invalid == 2

    # Blank and zero coordinates are "no location", not invalid.
    assert read_point({"lat": "", "lng": None}, transformer, tally) == (None, None)
    assert read_point({"lat": "0", "lng": "0"}, transformer, tally) == (None, None)
    assert tally.rows_invalid == 2


@pytest.mark.parametrize(("value", "expected"), [("1", True), ("TRUE", True), ("y", True), ("0", False), ("", False), (None, False)])
def test_parse_flag(value, expected):
    assert parse_flag(value) is expected
