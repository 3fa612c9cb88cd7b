import math

import pytest

from civicscore.common.geometry import (
    is_usable_coordinate,
    point_in_polygons,
    point_in_ring,
    polygons_area_km2,
    polygons_from_geojson,
)

SQUARE = ((0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0), (0.0, 0.0))
HOLE = ((4.0, 4.0), (6.0, 4.0), (6.0, 6.0), (4.0, 6.0), (4.0, 4.0))


def test_point_in_ring_interior_and_exterior():
    assert point_in_ring(5.0, 5.0, SQUARE) is True
    assert point_in_ring(15.0, 5.0, SQUARE) is False
    assert point_in_ring(5.0, -1.0, SQUARE) is False


def test_point_in_ring_rejects_degenerate_ring():
    assert point_in_ring(0.0, 0.0, ((0.0, 0.0), (1.0, 1.0))) is False


def test_point_in_polygons_ignores_holes():
    polygon = (SQUARE, HOLE)
    assert point_in_polygons(5.0, 5.0, [polygon]) is True


def test_is_usable_coordinate_rejects_missing_nan_and_zero():
    assert is_usable_coordinate(45.4, -75.7) is True
    assert is_usable_coordinate(None, -75.7) is False
    assert is_usable_coordinate(math.nan, -75.7) is False
    assert is_usable_coordinate(0.0, 0.0) is False
    assert is_usable_coordinate(45.4, 0.0) is False


def test_polygons_from_geojson_reads_polygon_and_multipolygon():
    ring = [[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]
    assert len(polygons_from_geojson({"type": "Polygon", "coordinates": [ring]})) == 1
    assert len(polygons_from_geojson({"type": "MultiPolygon", "coordinates": [[ring], [ring]]})) == 2
    assert polygons_from_geojson({"type": "Point", "coordinates": [0, 0]}) == ()
    assert polygons_from_geojson(None) == ()


def test_polygons_area_km2_is_geodesic_and_subtracts_holes():
    # 0.01 x 0.01 degrees near Ottawa is roughly 0.87 km2.
    outer = ((-75.70, 45.40), (-75.69, 45.40), (-75.69, 45.41), (-75.70, 45.41), (-75.70, 45.40))
    hole = ((-75.698, 45.402), (-75.692, 45.402), (-75.692, 45.408), (-75.698, 45.408), (-75.698, 45.402))
    full = polygons_area_km2([(outer,)])
    with_hole = polygons_area_km2([(outer, hole)])
    assert full == pytest.approx(0.87, abs=0.03)
    assert with_hole < full
