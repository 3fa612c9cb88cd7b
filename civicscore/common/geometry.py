"""Geometry helpers."""

from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

from pyproj import Geod

Ring = tuple[tuple[float, float], ...]
Polygon = tuple[Ring, ...]

_WGS84 = Geod(ellps="WGS84")


def is_usable_coordinate(lat: float | None, lng: float | None) -> bool:
    if lat is None or lng is None:
        return False
    if math.isnan(lat) or math.isnan(lng):
        return False
    # Extracts encode "no location" as 0; any zero component is treated as missing.
    return lat != 0 and lng != 0


def point_in_ring(lng: float, lat: float, ring: Sequence[Sequence[float]]) -> bool:
    inside = False
    n = len(ring)
    if n < 3:
        return False
    j = n - 1
    for i in range(n):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if (yi > lat) != (yj > lat) and lng < (xj - xi) * (lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def point_in_polygons(lng: float, lat: float, polygons: Iterable[Polygon]) -> bool:
    # Outer rings only; holes are not subtracted.
    for polygon in polygons:
        if polygon and point_in_ring(lng, lat, polygon[0]):
            return True
    return False


def _coerce_ring(raw_ring: Any) -> Ring:
    points = []
    for point in raw_ring or []:
        if not isinstance(point, (list, tuple)) or len(point) < 2:
            continue
        points.append((float(point[0]), float(point[1])))
    return tuple(points)


def polygons_from_geojson(geometry: dict[str, Any] | None) -> tuple[Polygon, ...]:
    if not geometry:
        return ()
    gtype = geometry.get("type")
    coords = geometry.get("coordinates") or []
    if gtype == "Polygon":
        raw_polygons = [coords]
    elif gtype == "MultiPolygon":
        raw_polygons = coords
    else:
        return ()

    polygons = []
    for raw_polygon in raw_polygons:
        rings = tuple(ring for ring in (_coerce_ring(r) for r in raw_polygon) if len(ring) >= 3)
        if rings:
            polygons.append(rings)
    return tuple(polygons)


def ring_area_km2(ring: Ring) -> float:
    lngs = [point[0] for point in ring]
    lats = [point[1] for point in ring]
    area_m2, _perimeter = _WGS84.polygon_area_perimeter(lngs, lats)
    return abs(area_m2) / 1_000_000


def polygons_area_km2(polygons: Iterable[Polygon]) -> float:
    total = 0.0
    for polygon in polygons:
        outer, holes = polygon[0], polygon[1:]
        total += ring_area_km2(outer) - sum(ring_area_km2(hole) for hole in holes)
    return max(total, 0.0)


def within_bbox(lat: float, lng: float, bbox: dict) -> bool:
    return bbox["min_lat"] <= lat <= bbox["max_lat"] and bbox["min_lon"] <= lng <= bbox["max_lon"]
