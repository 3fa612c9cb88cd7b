"""Neighbourhood boundary store loaded from GeoJSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from civicscore.common.errors import ConfigError
from civicscore.common.geometry import polygons_area_km2, polygons_from_geojson
from civicscore.common.models import Neighbourhood, NeighbourhoodBoundary

BOUNDARY_PROPERTIES = {"ons_id", "name", "neighbourhood_id", "neighbourhood_name", "population", "area_km2"}
# Census attributes that are additive; everything else is population-weighted.
COUNT_ATTRIBUTES = {"households", "dwellings"}
AREA_NAME_SEPARATOR = " - "


def _safe_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _boundary_from_feature(feature: dict, idx: int) -> NeighbourhoodBoundary:
    props = feature.get("properties") or {}
    for key in ("ons_id", "name", "neighbourhood_id"):
        if props.get(key) in (None, ""):
            raise ConfigError(f"Boundary feature {idx} is missing property {key}")

    polygons = polygons_from_geojson(feature.get("geometry"))
    if not polygons:
        raise ConfigError(f"Boundary feature {idx} ({props['ons_id']}) has no usable polygon geometry")

    area = _safe_number(props.get("area_km2"))
    if area is None:
        area = polygons_area_km2(polygons)

    census = {}
    for key, value in props.items():
        if key in BOUNDARY_PROPERTIES:
            continue
        number = _safe_number(value)
        if number is not None:
            census[key] = number

    return NeighbourhoodBoundary(
        boundary_id=str(props["ons_id"]),
        name=str(props["name"]),
        neighbourhood_id=str(props["neighbourhood_id"]),
        neighbourhood_name=str(props.get("neighbourhood_name") or props["neighbourhood_id"]),
        polygons=polygons,
        population=_safe_number(props.get("population")) or 0.0,
        area_km2=area,
        census=census,
    )


class BoundaryStore:
    """Read-only view over the boundaries of one run.

    Boundaries keep their file order, which is the order ``locate`` scans them
    in. Several boundaries may roll up into one neighbourhood.
    """

    def __init__(self, boundaries: list[NeighbourhoodBoundary]):
        if not boundaries:
            raise ConfigError("Boundary store needs at least one boundary")
        self._boundaries = tuple(boundaries)
        self._by_neighbourhood: dict[str, list[NeighbourhoodBoundary]] = {}
        self._by_area_name: dict[str, str] = {}
        for boundary in self._boundaries:
            self._by_neighbourhood.setdefault(boundary.neighbourhood_id, []).append(boundary)
            self._by_area_name.setdefault(boundary.name, boundary.neighbourhood_id)

    @classmethod
    def from_geojson(cls, path: Path) -> BoundaryStore:
        if not path.exists():
            raise ConfigError(f"Boundary file not found: {path}")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Boundary file is not readable GeoJSON: {path} ({exc})") from exc

        features = payload.get("features") if isinstance(payload, dict) else None
        if not isinstance(features, list):
            raise ConfigError(f"Boundary file is not a FeatureCollection: {path}")
        return cls([_boundary_from_feature(feature, idx) for idx, feature in enumerate(features)])

    @property
    def boundaries(self) -> tuple[NeighbourhoodBoundary, ...]:
        return self._boundaries

    def neighbourhood_ids(self) -> list[str]:
        return list(self._by_neighbourhood)

    def has_neighbourhood(self, neighbourhood_id: str) -> bool:
        return neighbourhood_id in self._by_neighbourhood

    def neighbourhood(self, neighbourhood_id: str) -> Neighbourhood:
        members = self._by_neighbourhood[neighbourhood_id]
        return Neighbourhood(
            id=neighbourhood_id,
            name=members[0].neighbourhood_name,
            population=sum(b.population for b in members),
            area_km2=sum(b.area_km2 for b in members),
            boundary_ids=tuple(b.boundary_id for b in members),
        )

    def population(self, neighbourhood_id: str) -> float:
        return sum(b.population for b in self._by_neighbourhood.get(neighbourhood_id, []))

    def area_km2(self, neighbourhood_id: str) -> float:
        return sum(b.area_km2 for b in self._by_neighbourhood.get(neighbourhood_id, []))

    def census(self, neighbourhood_id: str) -> dict[str, float]:
        members = self._by_neighbourhood.get(neighbourhood_id, [])
        keys = sorted({key for b in members for key in b.census})
        out: dict[str, float] = {}
        for key in keys:
            present = [b for b in members if key in b.census]
            if key in COUNT_ATTRIBUTES:
                out[key] = sum(b.census[key] for b in present)
                continue
            weight = sum(b.population for b in present)
            if weight > 0:
                out[key] = sum(b.census[key] * b.population for b in present) / weight
            else:
                out[key] = sum(b.census[key] for b in present) / len(present)
        return out

    def find_by_area_name(self, name: str | None) -> str | None:
        if not name:
            return None
        text = name.strip()
        if text in self._by_area_name:
            return self._by_area_name[text]
        base = text.split(AREA_NAME_SEPARATOR)[0]
        for boundary in self._boundaries:
            if boundary.name.split(AREA_NAME_SEPARATOR)[0] == base:
                return boundary.neighbourhood_id
        return None
