"""Coordinate parsing and transformation to WGS84."""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Any

from pyproj import CRS, Transformer
from pyproj.exceptions import ProjError

from civicscore.common.geometry import within_bbox

WGS84_EPSG = 4326


def safe_float(value: Any) -> float | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def is_unparsable(value: Any) -> bool:
    """True for a non-blank value that does not parse as a number."""
    return value is not None and str(value).strip() != "" and safe_float(value) is None


@lru_cache(maxsize=None)
def _transformer(source_epsg: int) -> Transformer:
    return Transformer.from_crs(CRS.from_epsg(source_epsg), CRS.from_epsg(WGS84_EPSG), always_xy=True)


class CoordinateTransformer:
    """Bring a dataset's coordinates into WGS84 and keep only in-city points.

    Projected datasets carry northing in the latitude column and easting in
    the longitude column.
    """

    def __init__(self, bbox: dict, source_epsg: int | None = None):
        self.bbox = bbox
        self.source_epsg = int(source_epsg) if source_epsg is not None else WGS84_EPSG

    def to_wgs84(self, lat: float, lng: float) -> tuple[float, float] | None:
        if self.source_epsg == WGS84_EPSG:
            out_lat, out_lng = lat, lng
        else:
            try:
                out_lng, out_lat = _transformer(self.source_epsg).transform(lng, lat)
            except ProjError:
                return None
            if not (math.isfinite(out_lat) and math.isfinite(out_lng)):
                return None
        if not within_bbox(out_lat, out_lng, self.bbox):
            return None
        return out_lat, out_lng
