"""Establishment categorisation: overrides, keyword rules, then reference matching."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from civicscore.common.constants import PER_POPULATION
from civicscore.common.deterministic import rate, round_count
from civicscore.common.errors import MissingInputError
from civicscore.common.fs import write_json
from civicscore.common.geometry import is_usable_coordinate
from civicscore.common.logging import log_event
from civicscore.common.models import CategorizedEstablishment, Establishment, ReferencePlace
from civicscore.common.text import decode_html_entities, name_similarity, override_key
from civicscore.pipeline.accumulators import AccumulatorMap
from civicscore.pipeline.context import StageContext
from civicscore.pipeline.export import write_establishment_csv
from civicscore.pipeline.inputs import read_mapped_rows, read_point, resolve_input, transformer_for
from civicscore.pipeline.reports import StageSummary, rank_extremes
from civicscore.reference.tables import load_manual_overrides, load_reference_places

MATCH_MANUAL_OVERRIDE = "manual_override"
MATCH_NAME_PATTERN = "name_pattern"


@dataclass(frozen=True)
class CategoryRule:
    category: str
    priority: int
    patterns: tuple[re.Pattern, ...]

    def matches(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.patterns)


@dataclass(frozen=True)
class CategorizationResult:
    category: str | None
    match_source: str | None
    matched_name: str | None = None


UNCATEGORIZED = CategorizationResult(category=None, match_source=None)


def load_category_rules(rules_cfg: dict) -> list[CategoryRule]:
    rules = [
        CategoryRule(
            category=entry["category"],
            priority=int(entry["priority"]),
            patterns=tuple(re.compile(pattern, re.IGNORECASE) for pattern in entry["patterns"] or []),
        )
        for entry in rules_cfg["categories"]
    ]
    return sorted(rules, key=lambda rule: (rule.priority, rule.category))


def coords_match(
    lat: float | None,
    lng: float | None,
    other_lat: float | None,
    other_lng: float | None,
    tolerance: float,
) -> bool:
    if not (is_usable_coordinate(lat, lng) and is_usable_coordinate(other_lat, other_lng)):
        return False
    return abs(lat - other_lat) < tolerance and abs(lng - other_lng) < tolerance


class CategorizationEngine:
    """Resolve one category per establishment name; the first stage that answers wins."""

    def __init__(
        self,
        rules: list[CategoryRule],
        overrides: dict[str, str] | None = None,
        reference_sets: Iterable[tuple[str, list[ReferencePlace]]] = (),
        *,
        coordinate_tolerance: float = 0.0005,
        similarity_threshold: float = 0.6,
        tie_break: str = "input_order",
    ):
        self.rules = sorted(rules, key=lambda rule: (rule.priority, rule.category))
        self.overrides = overrides or {}
        self.reference_sets = list(reference_sets)
        self.coordinate_tolerance = coordinate_tolerance
        self.similarity_threshold = similarity_threshold
        self.tie_break = tie_break

    def match_pattern(self, name: str | None) -> str | None:
        text = decode_html_entities(name).lower()
        matched = [rule for rule in self.rules if rule.matches(text)]
        if not matched:
            return None
        return min(matched, key=lambda rule: rule.priority).category

    def match_reference(
        self,
        name: str | None,
        lat: float | None,
        lng: float | None,
        places: list[ReferencePlace],
    ) -> ReferencePlace | None:
        best: ReferencePlace | None = None
        best_key: tuple[float, float] | None = None
        for place in places:
            if not coords_match(lat, lng, place.lat, place.lng, self.coordinate_tolerance):
                continue
            similarity = name_similarity(name, place.name)
            if similarity < self.similarity_threshold:
                continue
            if self.tie_break == "distance":
                key = (similarity, -(abs(lat - place.lat) + abs(lng - place.lng)))
            else:
                key = (similarity, 0.0)
            # Strict comparison: among equal keys the earlier candidate stays.
            if best_key is None or key > best_key:
                best, best_key = place, key
        return best

    def categorize(self, name: str | None, lat: float | None = None, lng: float | None = None) -> CategorizationResult:
        key = override_key(name)
        if key and key in self.overrides:
            return CategorizationResult(self.overrides[key], MATCH_MANUAL_OVERRIDE)

        category = self.match_pattern(name)
        if category:
            return CategorizationResult(category, MATCH_NAME_PATTERN)

        for source, places in self.reference_sets:
            place = self.match_reference(name, lat, lng, places)
            if place is not None:
                return CategorizationResult(place.category, source, place.name)
        return UNCATEGORIZED


def build_engine(ctx: StageContext, summary: StageSummary) -> CategorizationEngine:
    cfg = ctx.bundle.dataset("establishments")
    overrides_path = ctx.data_dir / cfg.get("manual_overrides", "reference/manual_overrides.csv")
    overrides = load_manual_overrides(overrides_path)

    reference_sets = []
    for ref_cfg in cfg["reference_datasets"] or []:
        try:
            places = load_reference_places(ctx.data_dir, ref_cfg)
        except MissingInputError as exc:
            summary.warnings.append(str(exc))
            log_event(
                ctx.logger,
                "reference dataset missing",
                run_id=ctx.run_id,
                stage=summary.stage,
                dataset=ref_cfg["name"],
                event="INPUT_MISSING",
                status="warn",
                error_code=exc.error_code,
            )
            continue
        reference_sets.append((ref_cfg.get("match_source", ref_cfg["name"]), places))
        summary.counts[f"reference_{ref_cfg['name']}"] = len(places)

    summary.counts["manual_overrides"] = len(overrides)
    return CategorizationEngine(
        load_category_rules(ctx.bundle.category_rules),
        overrides,
        reference_sets,
        coordinate_tolerance=float(cfg["coordinate_tolerance_deg"]),
        similarity_threshold=float(cfg["name_similarity_threshold"]),
        tie_break=cfg["fuzzy_tie_break"],
    )


def run_categorize(ctx: StageContext) -> StageSummary:
    summary = StageSummary(stage="categorize", headline_metric="densityPerKm2")
    cfg = ctx.bundle.dataset("establishments")
    path = resolve_input(ctx.data_dir, cfg["input"], "establishments")
    engine = build_engine(ctx, summary)
    transformer = transformer_for(cfg, ctx.bundle.pipeline)
    tally = summary.tally

    categorized: list[tuple[CategorizedEstablishment, str | None]] = []
    uncategorized: list[tuple[CategorizedEstablishment, str | None]] = []
    accumulators = AccumulatorMap(ctx.store.neighbourhood_ids())
    by_source: dict[str, int] = {}
    by_category: dict[str, int] = {}

    for row in read_mapped_rows(path, cfg["columns"], required={"id", "name"}, tally=tally, dataset="establishments"):
        lat, lng = read_point(row, transformer, tally)
        establishment = Establishment(
            establishment_id=row["id"],
            name=row["name"] or "",
            lat=lat,
            lng=lng,
            address=row.get("address"),
            last_inspection=row.get("last_inspection"),
        )
        result = engine.categorize(establishment.name, lat, lng)
        item = CategorizedEstablishment(establishment, result.category, result.match_source, result.matched_name)

        assignment = ctx.engine.assign(lat, lng, row.get("ward"))
        tally.record(assignment.method)
        neighbourhood_id = next(iter(assignment.weights)) if assignment.method == "geolocated" else None

        if result.category is None:
            uncategorized.append((item, neighbourhood_id))
            continue
        categorized.append((item, neighbourhood_id))
        by_source[result.match_source] = by_source.get(result.match_source, 0) + 1
        by_category[result.category] = by_category.get(result.category, 0) + 1
        accumulators.add(assignment.weights, "total")
        accumulators.add_breakdown(assignment.weights, "byCategory", result.category)

    outputs = cfg["outputs"]
    categorized_path = write_establishment_csv(ctx.output_path(outputs["categorized"]), categorized)
    uncategorized_path = write_establishment_csv(ctx.output_path(outputs["uncategorized"]), uncategorized)

    results = {}
    for acc in accumulators:
        population = ctx.store.population(acc.neighbourhood_id)
        area = ctx.store.area_km2(acc.neighbourhood_id)
        total = round_count(acc.total("total"))
        results[acc.neighbourhood_id] = {
            "total": total,
            "byCategory": {
                label: round_count(count) for label, count in sorted(acc.breakdown("byCategory").items())
            },
            "densityPerKm2": rate(total, area, digits=2),
            "ratePer1000": rate(total, population, scale=PER_POPULATION),
        }
    by_neighbourhood_path = ctx.output_path(outputs["by_neighbourhood"])
    write_json(by_neighbourhood_path, results)

    summary.counts.update(
        {
            "categorized": len(categorized),
            "uncategorized": len(uncategorized),
            "by_match_source": by_source,
            "by_category": by_category,
        }
    )
    summary.outputs = [str(categorized_path), str(uncategorized_path), str(by_neighbourhood_path)]
    summary.top, summary.bottom = rank_extremes(results, "densityPerKm2", ctx.neighbourhood_names(), ctx.top_n)
    return summary
