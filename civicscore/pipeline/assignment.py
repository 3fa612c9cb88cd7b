"""Record to neighbourhood assignment: coordinates, area name, then ward."""

from __future__ import annotations

from dataclasses import dataclass, field

from civicscore.common.geometry import is_usable_coordinate, point_in_polygons
from civicscore.reference.boundaries import BoundaryStore
from civicscore.reference.tables import WardMembership


@dataclass(frozen=True)
class Assignment:
    method: str
    weights: dict[str, float] = field(default_factory=dict)

    @property
    def assigned(self) -> bool:
        return bool(self.weights)


UNASSIGNED = Assignment(method="unassigned")


class AssignmentEngine:
    """Pure lookups against a read-only boundary store and ward table."""

    def __init__(self, store: BoundaryStore, wards: WardMembership):
        self.store = store
        self.wards = wards

    def locate(self, lat: float | None, lng: float | None) -> str | None:
        if not is_usable_coordinate(lat, lng):
            return None
        for boundary in self.store.boundaries:
            if point_in_polygons(lng, lat, boundary.polygons):
                return boundary.neighbourhood_id
        return None

    def distribute_by_ward(self, ward: str | None, weight: float = 1.0) -> dict[str, float]:
        """Split ``weight`` across the ward's neighbourhoods by population share.

        Members unknown to the boundary store are ignored. An unknown ward or a
        ward whose members have no population yields an empty map.
        """
        members = [nid for nid in self.wards.members(ward) if self.store.has_neighbourhood(nid)]
        populations = {nid: self.store.population(nid) for nid in members}
        total = sum(populations.values())
        if total <= 0:
            return {}
        return {nid: weight * population / total for nid, population in populations.items()}

    def assign(
        self,
        lat: float | None,
        lng: float | None,
        ward: str | None = None,
        area_name: str | None = None,
    ) -> Assignment:
        neighbourhood_id = self.locate(lat, lng)
        if neighbourhood_id is not None:
            return Assignment(method="geolocated", weights={neighbourhood_id: 1.0})

        if area_name:
            neighbourhood_id = self.store.find_by_area_name(area_name)
            if neighbourhood_id is not None:
                return Assignment(method="name_matched", weights={neighbourhood_id: 1.0})

        weights = self.distribute_by_ward(ward)
        if weights:
            return Assignment(method="ward_assigned", weights=weights)
        return UNASSIGNED
