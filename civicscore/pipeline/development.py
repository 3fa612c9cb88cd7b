"""Development applications aggregated per neighbourhood."""

from __future__ import annotations

from civicscore.common.constants import PER_POPULATION
from civicscore.common.deterministic import rate, round_count, top_breakdown
from civicscore.common.fs import write_json
from civicscore.common.models import DevelopmentRecord
from civicscore.common.time_utils import parse_record_date, parse_record_year, resolve_window
from civicscore.pipeline.accumulators import AccumulatorMap
from civicscore.pipeline.context import StageContext
from civicscore.pipeline.inputs import parse_flag, read_mapped_rows, read_point, resolve_input, transformer_for
from civicscore.pipeline.reports import StageSummary, rank_extremes

UNKNOWN_TYPE = "Unknown"


def _record_from_row(row: dict, lat: float | None, lng: float | None) -> DevelopmentRecord:
    return DevelopmentRecord(
        application_number=row["application_number"] or "",
        application_date=row.get("application_date") or "",
        application_type=row.get("application_type") or UNKNOWN_TYPE,
        status=row.get("status") or "",
        address=row.get("address"),
        ward=row.get("ward"),
        lat=lat,
        lng=lng,
        is_active=parse_flag(row.get("active")),
        is_approved=parse_flag(row.get("approved")),
    )


def run_development(ctx: StageContext) -> StageSummary:
    summary = StageSummary(stage="development", headline_metric="developmentRate")
    cfg = ctx.bundle.dataset("development")
    path = resolve_input(ctx.data_dir, cfg["input"], "development")
    transformer = transformer_for(cfg, ctx.bundle.pipeline)
    window = resolve_window(cfg["recent_window"], ctx.run_date)
    tally = summary.tally
    accumulators = AccumulatorMap(ctx.store.neighbourhood_ids())
    required = {"application_number", "application_date", "application_type", "status"}

    for row in read_mapped_rows(path, cfg["columns"], required=required, tally=tally, dataset="development"):
        invalid_before = tally.rows_invalid
        lat, lng = read_point(row, transformer, tally)
        record = _record_from_row(row, lat, lng)
        # One invalid count per row, whichever field failed.
        bad_date = bool(record.application_date) and parse_record_year(record.application_date) is None
        if bad_date and tally.rows_invalid == invalid_before:
            tally.rows_invalid += 1

        assignment = ctx.engine.assign(record.lat, record.lng, record.ward)
        tally.record(assignment.method)
        if not assignment.assigned:
            continue

        weights = assignment.weights
        accumulators.add(weights, "total")
        if record.is_active:
            accumulators.add(weights, "active")
        if record.is_approved:
            accumulators.add(weights, "approved")
        application_date = parse_record_date(record.application_date)
        if application_date is not None:
            is_recent = window.contains(application_date)
        else:
            is_recent = window.contains_year(parse_record_year(record.application_date))
        if is_recent:
            accumulators.add(weights, "recent")
        accumulators.add_breakdown(weights, "byType", record.application_type)

    results = {}
    for acc in accumulators:
        population = ctx.store.population(acc.neighbourhood_id)
        recent = round_count(acc.total("recent"))
        results[acc.neighbourhood_id] = {
            "total": round_count(acc.total("total")),
            "active": round_count(acc.total("active")),
            "approved": round_count(acc.total("approved")),
            "recent": recent,
            "developmentRate": rate(recent, population, scale=PER_POPULATION, digits=2),
            "byType": top_breakdown(acc.breakdown("byType"), cfg["top_n_types"]),
        }

    out_path = ctx.output_path(cfg["output"])
    write_json(out_path, results)
    summary.outputs = [str(out_path)]
    summary.counts["recent_applications"] = sum(item["recent"] for item in results.values())
    summary.top, summary.bottom = rank_extremes(results, "developmentRate", ctx.neighbourhood_names(), ctx.top_n)
    return summary
