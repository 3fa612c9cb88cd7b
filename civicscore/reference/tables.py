"""Static lookup tables: ward membership, manual overrides and reference places."""

from __future__ import annotations

from pathlib import Path

from civicscore.common.models import ReferencePlace
from civicscore.common.text import normalise_ward, override_key
from civicscore.pipeline.accumulators import AssignmentTally
from civicscore.pipeline.inputs import read_mapped_rows, resolve_input
from civicscore.pipeline.coordinates import safe_float


class WardMembership:
    """Ward label to the ordered neighbourhood ids that make up the ward."""

    def __init__(self, wards: dict[str, list[str]]):
        self._members = {normalise_ward(str(ward)): tuple(str(n) for n in members) for ward, members in wards.items()}

    @classmethod
    def from_config(cls, wards_cfg: dict) -> WardMembership:
        return cls(wards_cfg["wards"])

    def members(self, ward: str | None) -> tuple[str, ...]:
        key = normalise_ward(ward)
        if key is None:
            return ()
        return self._members.get(key, ())


def load_manual_overrides(path: Path) -> dict[str, str]:
    """Read ``name,category`` lines; the last comma splits, so names may contain commas."""
    if not path.exists():
        return {}

    overrides: dict[str, str] = {}
    lines = path.read_text(encoding="utf-8-sig").splitlines()
    for line in lines[1:]:
        comma_idx = line.rfind(",")
        if comma_idx <= 0:
            continue
        name = line[:comma_idx].strip().strip('"')
        category = line[comma_idx + 1 :].strip()
        if name and category:
            overrides[override_key(name)] = category
    return overrides


def load_reference_places(data_dir: Path, ref_cfg: dict, tally: AssignmentTally | None = None) -> list[ReferencePlace]:
    """Load one reference list, keeping file order for tie-breaking."""
    tally = tally or AssignmentTally()
    path = resolve_input(data_dir, ref_cfg["input"], ref_cfg["name"])
    columns = dict(ref_cfg["columns"])
    fixed_category = ref_cfg.get("category")

    places = []
    for row in read_mapped_rows(path, columns, required={"name"}, tally=tally, dataset=ref_cfg["name"]):
        category = fixed_category or row.get("category")
        if not row["name"] or not category:
            continue
        places.append(
            ReferencePlace(
                source=ref_cfg["name"],
                name=row["name"],
                category=category,
                lat=safe_float(row.get("lat")),
                lng=safe_float(row.get("lng")),
            )
        )
    return places
