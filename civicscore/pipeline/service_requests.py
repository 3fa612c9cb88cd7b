"""311 service requests aggregated per neighbourhood."""

from __future__ import annotations

from civicscore.common.constants import PER_POPULATION
from civicscore.common.deterministic import rate, round_count, top_breakdown
from civicscore.common.errors import MissingInputError
from civicscore.common.fs import write_json
from civicscore.common.logging import log_event
from civicscore.common.models import ServiceRequestRecord
from civicscore.pipeline.accumulators import AccumulatorMap
from civicscore.pipeline.context import StageContext
from civicscore.pipeline.inputs import read_mapped_rows, read_point, resolve_input, transformer_for
from civicscore.pipeline.reports import StageSummary, rank_extremes

OTHER_SERVICE_TYPE = "Other"
COMPLAINT_BREAKDOWN_LIMIT = 10


def service_category(request_type: str, service_types: dict[str, str]) -> str:
    """First configured key contained in the request type wins."""
    for key, label in service_types.items():
        if key in request_type:
            return label
    return OTHER_SERVICE_TYPE


def matches_any(record: ServiceRequestRecord, needles: list[str]) -> bool:
    return any(needle in record.description or needle in record.request_type for needle in needles)


def run_service_requests(ctx: StageContext) -> StageSummary:
    summary = StageSummary(stage="service-requests", headline_metric="rate")
    cfg = ctx.bundle.dataset("service_requests")
    transformer = transformer_for(cfg, ctx.bundle.pipeline)
    tally = summary.tally
    accumulators = AccumulatorMap(ctx.store.neighbourhood_ids())
    service_types = dict(cfg["service_types"])
    road = list(cfg["road_complaints"])
    noise = list(cfg["noise_complaints"])
    limit = cfg.get("complaint_top_n_types", COMPLAINT_BREAKDOWN_LIMIT)

    files_read = 0
    for relative in cfg["inputs"]:
        try:
            path = resolve_input(ctx.data_dir, relative, "service_requests")
        except MissingInputError as exc:
            summary.warnings.append(str(exc))
            log_event(
                ctx.logger,
                "service request file missing",
                run_id=ctx.run_id,
                stage=summary.stage,
                dataset="service_requests",
                event="INPUT_MISSING",
                status="warn",
                error_code=exc.error_code,
            )
            continue
        files_read += 1

        rows = read_mapped_rows(path, cfg["columns"], required={"type", "description"}, tally=tally, dataset="service_requests")
        for row in rows:
            lat, lng = read_point(row, transformer, tally)
            record = ServiceRequestRecord(
                request_type=row["type"] or "",
                description=row["description"] or "",
                lat=lat,
                lng=lng,
                ward=row.get("ward"),
            )
            assignment = ctx.engine.assign(record.lat, record.lng, record.ward)
            tally.record(assignment.method)
            if not assignment.assigned:
                continue

            weights = assignment.weights
            accumulators.add(weights, "total")
            accumulators.add_breakdown(weights, "byType", service_category(record.request_type, service_types))
            if matches_any(record, road):
                accumulators.add(weights, "roadComplaints")
                accumulators.add_breakdown(weights, "roadComplaintsByType", record.description)
            if matches_any(record, noise):
                accumulators.add(weights, "noiseComplaints")
                accumulators.add_breakdown(weights, "noiseComplaintsByType", record.description)

    if files_read == 0:
        raise MissingInputError("service_requests: none of the configured inputs exist")

    results = {}
    for acc in accumulators:
        population = ctx.store.population(acc.neighbourhood_id)
        area = ctx.store.area_km2(acc.neighbourhood_id)
        total = round_count(acc.total("total"))
        road_count = round_count(acc.total("roadComplaints"))
        noise_count = round_count(acc.total("noiseComplaints"))
        results[acc.neighbourhood_id] = {
            "total": total,
            "rate": rate(total, population, scale=PER_POPULATION),
            "byType": top_breakdown(acc.breakdown("byType"), cfg["top_n_types"]),
            "roadComplaints": road_count,
            "roadComplaintsRate": rate(road_count, population, scale=PER_POPULATION),
            "roadComplaintsPerKm2": rate(road_count, area),
            "roadComplaintsByType": top_breakdown(acc.breakdown("roadComplaintsByType"), limit),
            "noiseComplaints": noise_count,
            "noiseComplaintsRate": rate(noise_count, population, scale=PER_POPULATION),
            "noiseComplaintsByType": top_breakdown(acc.breakdown("noiseComplaintsByType"), limit),
        }

    out_path = ctx.output_path(cfg["output"])
    write_json(out_path, results)
    summary.outputs = [str(out_path)]
    summary.counts.update(
        {
            "files_read": files_read,
            "road_complaints": sum(item["roadComplaints"] for item in results.values()),
            "noise_complaints": sum(item["noiseComplaints"] for item in results.values()),
        }
    )
    summary.top, summary.bottom = rank_extremes(results, "rate", ctx.neighbourhood_names(), ctx.top_n)
    return summary
