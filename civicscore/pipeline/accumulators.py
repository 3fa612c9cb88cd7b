"""Per-neighbourhood running sums and per-pass diagnostics."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Iterable, Mapping

ASSIGNMENT_METHODS = ("geolocated", "name_matched", "ward_assigned", "unassigned")


@dataclass
class AssignmentTally:
    rows_read: int = 0
    rows_malformed: int = 0
    rows_invalid: int = 0
    geolocated: int = 0
    name_matched: int = 0
    ward_assigned: int = 0
    unassigned: int = 0

    def record(self, method: str) -> None:
        if method not in ASSIGNMENT_METHODS:
            raise ValueError(f"Unknown assignment method: {method}")
        setattr(self, method, getattr(self, method) + 1)

    @property
    def processed(self) -> int:
        return self.geolocated + self.name_matched + self.ward_assigned + self.unassigned

    def as_dict(self) -> dict[str, int]:
        payload = asdict(self)
        payload["processed"] = self.processed
        return payload


@dataclass
class NeighbourhoodAccumulator:
    """Float running sums for one neighbourhood during one dataset pass.

    Nothing is rounded here; finalisers round once when building output.
    """

    neighbourhood_id: str
    totals: dict[str, float] = field(default_factory=dict)
    breakdowns: dict[str, dict[str, float]] = field(default_factory=dict)

    def add(self, counter: str, amount: float) -> None:
        self.totals[counter] = self.totals.get(counter, 0.0) + amount

    def add_breakdown(self, breakdown: str, label: str, amount: float) -> None:
        bucket = self.breakdowns.setdefault(breakdown, {})
        bucket[label] = bucket.get(label, 0.0) + amount

    def total(self, counter: str) -> float:
        return self.totals.get(counter, 0.0)

    def breakdown(self, breakdown: str) -> dict[str, float]:
        return self.breakdowns.get(breakdown, {})


class AccumulatorMap:
    """Accumulators for every neighbourhood known to the boundary store."""

    def __init__(self, neighbourhood_ids: Iterable[str]):
        self._items = {nid: NeighbourhoodAccumulator(nid) for nid in neighbourhood_ids}

    def __iter__(self):
        return iter(self._items.values())

    def __getitem__(self, neighbourhood_id: str) -> NeighbourhoodAccumulator:
        return self._items[neighbourhood_id]

    def add(self, weights: Mapping[str, float], counter: str, amount: float = 1.0) -> None:
        for neighbourhood_id, weight in weights.items():
            self._items[neighbourhood_id].add(counter, weight * amount)

    def add_breakdown(self, weights: Mapping[str, float], breakdown: str, label: str, amount: float = 1.0) -> None:
        for neighbourhood_id, weight in weights.items():
            self._items[neighbourhood_id].add_breakdown(breakdown, label, weight * amount)
