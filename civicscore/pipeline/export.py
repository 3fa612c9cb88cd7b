"""Categorised establishment CSV export."""

from __future__ import annotations

from pathlib import Path

from civicscore.common.fs import write_csv
from civicscore.common.models import CategorizedEstablishment

ESTABLISHMENT_HEADERS = [
    "ID",
    "NAME",
    "ADDRESS",
    "LAST_INSPECTION",
    "LATITUDE",
    "LONGITUDE",
    "NEIGHBOURHOOD",
    "CATEGORY",
    "MATCH_SOURCE",
    "MATCHED_NAME",
]


def _serialize_row(item: CategorizedEstablishment, neighbourhood_id: str | None) -> dict:
    establishment = item.establishment
    values = {
        "ID": establishment.establishment_id,
        "NAME": establishment.name,
        "ADDRESS": establishment.address,
        "LAST_INSPECTION": establishment.last_inspection,
        "LATITUDE": establishment.lat,
        "LONGITUDE": establishment.lng,
        "NEIGHBOURHOOD": neighbourhood_id,
        "CATEGORY": item.category,
        "MATCH_SOURCE": item.match_source,
        "MATCHED_NAME": item.matched_name,
    }
    return {key: ("" if value is None else value) for key, value in values.items()}


def write_establishment_csv(
    out_path: Path,
    items: list[tuple[CategorizedEstablishment, str | None]],
) -> Path:
    """Write rows in input order; ``items`` pairs each result with its neighbourhood."""
    write_csv(out_path, ESTABLISHMENT_HEADERS, [_serialize_row(item, nid) for item, nid in items])
    return out_path
