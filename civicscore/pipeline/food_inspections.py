"""Food-safety inspections joined to businesses and aggregated per neighbourhood."""

from __future__ import annotations

from civicscore.common.deterministic import rate, round_count, round_half_up
from civicscore.common.fs import write_json
from civicscore.common.models import FoodBusiness, FoodInspection, FoodViolation
from civicscore.common.time_utils import parse_record_date, resolve_window
from civicscore.pipeline.accumulators import AccumulatorMap, AssignmentTally
from civicscore.pipeline.context import StageContext
from civicscore.pipeline.coordinates import is_unparsable, safe_float
from civicscore.pipeline.inputs import parse_flag, read_mapped_rows, read_point, resolve_input, transformer_for
from civicscore.pipeline.reports import StageSummary, rank_extremes


def _mean(total: float, weight: float) -> float | None:
    if weight <= 0:
        return None
    return round_half_up(total / weight, 1)


def _merge_row_counts(target: AssignmentTally, source: AssignmentTally) -> None:
    target.rows_malformed += source.rows_malformed
    target.rows_invalid += source.rows_invalid


def load_inspections(ctx: StageContext, cfg: dict, tally: AssignmentTally) -> dict[str, list[FoodInspection]]:
    path = resolve_input(ctx.data_dir, cfg["inputs"]["inspections"], "food_inspections")
    by_business: dict[str, list[FoodInspection]] = {}
    rows = read_mapped_rows(
        path,
        cfg["columns"]["inspections"],
        required={"inspection_id", "business_id"},
        tally=tally,
        dataset="food_inspections",
    )
    for row in rows:
        if is_unparsable(row.get("score")):
            tally.rows_invalid += 1
        inspection = FoodInspection(
            inspection_id=row["inspection_id"],
            business_id=row["business_id"],
            date=row.get("date"),
            score=safe_float(row.get("score")),
        )
        by_business.setdefault(inspection.business_id, []).append(inspection)
    return by_business


def load_violations(ctx: StageContext, cfg: dict, tally: AssignmentTally) -> dict[str, list[FoodViolation]]:
    path = resolve_input(ctx.data_dir, cfg["inputs"]["violations"], "food_inspections")
    by_inspection: dict[str, list[FoodViolation]] = {}
    rows = read_mapped_rows(
        path,
        cfg["columns"]["violations"],
        required={"inspection_id"},
        tally=tally,
        dataset="food_inspections",
    )
    for row in rows:
        violation = FoodViolation(inspection_id=row["inspection_id"], critical=parse_flag(row.get("critical")))
        by_inspection.setdefault(violation.inspection_id, []).append(violation)
    return by_inspection


def run_food_inspections(ctx: StageContext) -> StageSummary:
    summary = StageSummary(stage="food-inspections", headline_metric="avgScore")
    cfg = ctx.bundle.dataset("food_inspections")
    businesses_path = resolve_input(ctx.data_dir, cfg["inputs"]["businesses"], "food_inspections")
    inspection_tally = AssignmentTally()
    violation_tally = AssignmentTally()
    inspections_by_business = load_inspections(ctx, cfg, inspection_tally)
    violations_by_inspection = load_violations(ctx, cfg, violation_tally)

    transformer = transformer_for(cfg, ctx.bundle.pipeline)
    window = resolve_window(cfg["recent_window"], ctx.run_date)
    perfect_score = float(cfg["perfect_score"])
    low_score_below = float(cfg["low_score_below"])
    tally = summary.tally
    accumulators = AccumulatorMap(ctx.store.neighbourhood_ids())
    joined_inspections = 0

    rows = read_mapped_rows(
        businesses_path,
        cfg["columns"]["businesses"],
        required={"business_id"},
        tally=tally,
        dataset="food_inspections",
    )
    for row in rows:
        lat, lng = read_point(row, transformer, tally)
        business = FoodBusiness(business_id=row["business_id"], name=row.get("name"), lat=lat, lng=lng, ward=row.get("ward"))
        assignment = ctx.engine.assign(business.lat, business.lng, business.ward)
        tally.record(assignment.method)
        if not assignment.assigned:
            continue

        weights = assignment.weights
        accumulators.add(weights, "establishments")
        for inspection in inspections_by_business.get(business.business_id, []):
            joined_inspections += 1
            accumulators.add(weights, "inspections")
            is_recent = window.contains(parse_record_date(inspection.date))
            if is_recent:
                accumulators.add(weights, "recentInspections")
            if inspection.score is not None:
                accumulators.add(weights, "scored")
                accumulators.add(weights, "scoreSum", inspection.score)
                if inspection.score == perfect_score:
                    accumulators.add(weights, "perfect")
                elif inspection.score < low_score_below:
                    accumulators.add(weights, "low")
                if is_recent:
                    accumulators.add(weights, "recentScored")
                    accumulators.add(weights, "recentScoreSum", inspection.score)
            for violation in violations_by_inspection.get(inspection.inspection_id, []):
                accumulators.add(weights, "violations")
                if violation.critical:
                    accumulators.add(weights, "criticalViolations")

    names = ctx.neighbourhood_names()
    results = {}
    for acc in accumulators:
        scored = acc.total("scored")
        total_inspections = round_count(acc.total("inspections"))
        total_violations = round_count(acc.total("violations"))
        critical = round_count(acc.total("criticalViolations"))
        results[acc.neighbourhood_id] = {
            "name": names[acc.neighbourhood_id],
            "establishments": round_count(acc.total("establishments")),
            "totalInspections": total_inspections,
            "recentInspections": round_count(acc.total("recentInspections")),
            "avgScore": _mean(acc.total("scoreSum"), scored),
            "recentAvgScore": _mean(acc.total("recentScoreSum"), acc.total("recentScored")),
            "perfectScoreRate": rate(acc.total("perfect"), scored, scale=100),
            "lowScoreRate": rate(acc.total("low"), scored, scale=100),
            "totalViolations": total_violations,
            "criticalViolations": critical,
            "violationsPerInspection": rate(total_violations, total_inspections, digits=2),
            "criticalViolationRate": rate(critical, total_violations, scale=100),
        }

    out_path = ctx.output_path(cfg["output"])
    write_json(out_path, results)

    _merge_row_counts(tally, inspection_tally)
    _merge_row_counts(tally, violation_tally)
    summary.outputs = [str(out_path)]
    summary.counts.update(
        {
            "inspections_read": inspection_tally.rows_read,
            "violations_read": violation_tally.rows_read,
            "inspections_joined": joined_inspections,
        }
    )
    summary.top, summary.bottom = rank_extremes(results, "avgScore", names, ctx.top_n)
    return summary
