"""Header-mapped CSV reading shared by the dataset stages."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Mapping

from civicscore.common.errors import MissingInputError, StageError
from civicscore.common.fs import iter_csv_rows
from civicscore.common.geometry import is_usable_coordinate
from civicscore.pipeline.accumulators import AssignmentTally
from civicscore.pipeline.coordinates import CoordinateTransformer, is_unparsable, safe_float

TRUTHY_FLAGS = {"1", "true", "t", "yes", "y"}


def resolve_input(data_dir: Path, relative: str, dataset: str) -> Path:
    path = data_dir / relative
    if not path.exists():
        raise MissingInputError(f"{dataset}: input not found: {path}")
    return path


def read_mapped_rows(
    path: Path,
    columns: Mapping[str, str | None],
    *,
    required: set[str],
    tally: AssignmentTally,
    dataset: str,
) -> Iterator[dict[str, str | None]]:
    """Yield one dict per data row, keyed by field name instead of header.

    Fields whose header is absent from the file come back as ``None``, unless
    the field is required, in which case the whole dataset fails. Rows too
    short to hold every mapped column present in the header are skipped and
    counted as malformed.
    """
    rows = iter_csv_rows(path)
    header = next(rows, None)
    if header is None:
        raise StageError(f"{dataset}: {path.name} is empty")
    positions = {name.strip(): idx for idx, name in enumerate(header)}

    indices: dict[str, int | None] = {}
    for field, column in columns.items():
        idx = positions.get(column) if column else None
        if idx is None and field in required:
            raise StageError(f"{dataset}: {path.name} has no column {column!r} for {field}")
        indices[field] = idx

    min_width = max((idx for idx in indices.values() if idx is not None), default=-1) + 1

    for row in rows:
        if not row or not any(cell.strip() for cell in row):
            continue
        tally.rows_read += 1
        if len(row) < min_width:
            tally.rows_malformed += 1
            continue
        yield {
            field: (row[idx].strip() if idx is not None and idx < len(row) else None)
            for field, idx in indices.items()
        }


def read_point(
    row: Mapping[str, str | None],
    transformer: CoordinateTransformer,
    tally: AssignmentTally,
    lat_field: str = "lat",
    lng_field: str = "lng",
) -> tuple[float | None, float | None]:
    """Parse and reproject a row's coordinates; unusable points come back as ``(None, None)``."""
    raw_lat = row.get(lat_field)
    raw_lng = row.get(lng_field)
    if is_unparsable(raw_lat) or is_unparsable(raw_lng):
        tally.rows_invalid += 1
        return None, None

    lat = safe_float(raw_lat)
    lng = safe_float(raw_lng)
    if not is_usable_coordinate(lat, lng):
        return None, None

    transformed = transformer.to_wgs84(lat, lng)
    if transformed is None:
        tally.rows_invalid += 1
        return None, None
    return transformed


def parse_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in TRUTHY_FLAGS


def transformer_for(dataset_cfg: dict, pipeline_cfg: dict) -> CoordinateTransformer:
    return CoordinateTransformer(pipeline_cfg["city"]["bbox_wgs84"], dataset_cfg.get("source_epsg"))
