from pathlib import Path

import pytest

from civicscore.common.config_loader import load_all_configs
from civicscore.pipeline.assignment import UNASSIGNED, AssignmentEngine
from civicscore.reference.boundaries import BoundaryStore
from civicscore.reference.tables import WardMembership

FIXTURE_BOUNDARIES = Path("tests/fixtures/sample/reference/boundaries.geojson")


def _engine(boundaries=None) -> AssignmentEngine:
    store = BoundaryStore(boundaries) if boundaries is not None else BoundaryStore.from_geojson(FIXTURE_BOUNDARIES)
    wards = WardMembership.from_config(load_all_configs(Path("config")).wards)
    return AssignmentEngine(store, wards)


def test_locate_finds_containing_neighbourhood():
    engine = _engine()
    assert engine.locate(45.415, -75.69) == "centretown"
    assert engine.locate(45.405, -75.69) == "centretown"
    assert engine.locate(45.39, -75.71) == "civic-hospital"
    assert engine.locate(45.50, -75.69) is None


def test_locate_rejects_zero_and_missing_coordinates():
    engine = _engine()
    assert engine.locate(0.0, 0.0) is None
    assert engine.locate(45.415, 0.0) is None
    assert engine.locate(None, -75.69) is None


def test_locate_result_does_not_depend_on_load_order():
    forward = _engine()
    reverse = _engine(list(reversed(forward.store.boundaries)))
    for lat, lng in [(45.415, -75.69), (45.41, -75.71), (45.39, -75.69), (45.41, -75.73)]:
        assert forward.locate(lat, lng) == reverse.locate(lat, lng)


def test_distribute_by_ward_splits_by_population():
    engine = _engine()
    weights = engine.distribute_by_ward("15")

    # Members outside the boundary file are ignored.
    assert weights == pytest.approx(
        {
            "centretown": 0.5,
            "west-centretown": 0.25,
            "civic-hospital": 0.15,
            "hintonburg-mechanicsville": 0.10,
        }
    )
    assert sum(weights.values()) == pytest.approx(1.0)


def test_distribute_by_ward_scales_weight():
    weights = _engine().distribute_by_ward("Ward 15", weight=4.0)
    assert weights["centretown"] == pytest.approx(2.0)


def test_distribute_by_ward_unknown_ward_is_empty():
    engine = _engine()
    assert engine.distribute_by_ward("99") == {}
    assert engine.distribute_by_ward(None) == {}
    # Ward 1 lists only neighbourhoods missing from the boundary file.
    assert engine.distribute_by_ward("1") == {}


def test_assign_cascade_order():
    engine = _engine()

    located = engine.assign(45.415, -75.69, ward="15", area_name="Civic Hospital")
    assert located.method == "geolocated"
    assert located.weights == {"centretown": 1.0}

    named = engine.assign(0.0, 0.0, ward="15", area_name="Civic Hospital")
    assert named.method == "name_matched"
    assert named.weights == {"civic-hospital": 1.0}

    warded = engine.assign(None, None, ward="15", area_name="Vanier")
    assert warded.method == "ward_assigned"
    assert len(warded.weights) == 4

    assert engine.assign(None, None, ward="99") is UNASSIGNED
    assert UNASSIGNED.assigned is False
