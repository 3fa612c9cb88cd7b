"""Crime incidents aggregated per neighbourhood."""

from __future__ import annotations

from civicscore.common.constants import PER_POPULATION
from civicscore.common.deterministic import rate, round_count, top_breakdown
from civicscore.common.fs import write_json
from civicscore.common.models import CrimeRecord
from civicscore.common.time_utils import parse_record_year, resolve_window
from civicscore.pipeline.accumulators import AccumulatorMap
from civicscore.pipeline.context import StageContext
from civicscore.pipeline.inputs import read_mapped_rows, read_point, resolve_input, transformer_for
from civicscore.pipeline.reports import StageSummary, rank_extremes

UNKNOWN_CATEGORY = "Unknown"


def _record_from_row(row: dict, lat: float | None, lng: float | None) -> CrimeRecord:
    return CrimeRecord(
        year=parse_record_year(row.get("year")),
        offence_category=row.get("offence_category") or UNKNOWN_CATEGORY,
        area_name=row.get("area_name"),
        ward=row.get("ward"),
        lat=lat,
        lng=lng,
    )


def run_crime(ctx: StageContext) -> StageSummary:
    summary = StageSummary(stage="crime", headline_metric="rate")
    cfg = ctx.bundle.dataset("crime")
    path = resolve_input(ctx.data_dir, cfg["input"], "crime")
    transformer = transformer_for(cfg, ctx.bundle.pipeline)
    window = resolve_window(cfg["recent_window"], ctx.run_date)
    tally = summary.tally
    accumulators = AccumulatorMap(ctx.store.neighbourhood_ids())

    for row in read_mapped_rows(path, cfg["columns"], required={"year", "offence_category"}, tally=tally, dataset="crime"):
        bad_year = bool(row.get("year")) and parse_record_year(row["year"]) is None
        invalid_before = tally.rows_invalid
        lat, lng = read_point(row, transformer, tally)
        if bad_year and tally.rows_invalid == invalid_before:
            tally.rows_invalid += 1
        record = _record_from_row(row, lat, lng)

        assignment = ctx.engine.assign(record.lat, record.lng, record.ward, record.area_name)
        tally.record(assignment.method)
        if not assignment.assigned:
            continue
        accumulators.add(assignment.weights, "total")
        accumulators.add_breakdown(assignment.weights, "byCategory", record.offence_category)
        if window.contains_year(record.year):
            accumulators.add(assignment.weights, "recent")

    results = {}
    for acc in accumulators:
        population = ctx.store.population(acc.neighbourhood_id)
        total = round_count(acc.total("total"))
        recent = round_count(acc.total("recent"))
        results[acc.neighbourhood_id] = {
            "total": total,
            "rate": rate(total, population, scale=PER_POPULATION),
            "recent": recent,
            "recentRate": rate(recent, population, scale=PER_POPULATION),
            "byCategory": top_breakdown(acc.breakdown("byCategory"), cfg["top_n_types"]),
        }

    out_path = ctx.output_path(cfg["output"])
    write_json(out_path, results)
    summary.outputs = [str(out_path)]
    summary.counts["total_assigned"] = sum(item["total"] for item in results.values())
    summary.top, summary.bottom = rank_extremes(results, "rate", ctx.neighbourhood_names(), ctx.top_n)
    return summary
