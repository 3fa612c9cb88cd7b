"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from civicscore.common.geometry import Polygon


@dataclass(frozen=True)
class NeighbourhoodBoundary:
    boundary_id: str
    name: str
    neighbourhood_id: str
    neighbourhood_name: str
    polygons: tuple[Polygon, ...]
    population: float
    area_km2: float
    census: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Neighbourhood:
    id: str
    name: str
    population: float
    area_km2: float
    boundary_ids: tuple[str, ...]


@dataclass(frozen=True)
class CrimeRecord:
    year: int | None
    offence_category: str
    area_name: str | None = None
    ward: str | None = None
    lat: float | None = None
    lng: float | None = None


@dataclass(frozen=True)
class ServiceRequestRecord:
    request_type: str
    description: str
    lat: float | None = None
    lng: float | None = None
    ward: str | None = None


@dataclass(frozen=True)
class DevelopmentRecord:
    application_number: str
    application_date: str
    application_type: str
    status: str
    address: str | None = None
    ward: str | None = None
    lat: float | None = None
    lng: float | None = None
    is_active: bool = False
    is_approved: bool = False


@dataclass(frozen=True)
class FoodBusiness:
    business_id: str
    name: str | None = None
    lat: float | None = None
    lng: float | None = None
    ward: str | None = None


@dataclass(frozen=True)
class FoodInspection:
    inspection_id: str
    business_id: str
    date: str | None = None
    score: float | None = None


@dataclass(frozen=True)
class FoodViolation:
    inspection_id: str
    critical: bool = False


@dataclass(frozen=True)
class Establishment:
    establishment_id: str
    name: str
    lat: float | None = None
    lng: float | None = None
    address: str | None = None
    last_inspection: str | None = None


@dataclass(frozen=True)
class ReferencePlace:
    source: str
    name: str
    category: str
    lat: float | None = None
    lng: float | None = None


@dataclass(frozen=True)
class CategorizedEstablishment:
    establishment: Establishment
    category: str | None
    match_source: str | None
    matched_name: str | None = None
