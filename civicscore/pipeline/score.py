"""Percentile normalisation and weighted composite scores per neighbourhood."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from civicscore.common.fs import read_json, write_json
from civicscore.common.logging import log_event
from civicscore.common.scoring import ScoringPolicy, compose, percentile_scores
from civicscore.pipeline.context import StageContext
from civicscore.pipeline.reports import StageSummary, rank_extremes

CENSUS_SOURCE = "census"
FOOD_ESTABLISHMENTS_SOURCE = "food_establishments"
DEFAULT_OUTPUT = "neighbourhood_scores.json"

Sources = Mapping[str, Mapping[str, Mapping[str, Any]]]


def source_paths(ctx: StageContext) -> dict[str, Path]:
    datasets = ctx.bundle.pipeline["datasets"]
    paths = {
        name: ctx.output_path(datasets[name]["output"])
        for name in ("crime", "service_requests", "development", "food_inspections")
    }
    paths[FOOD_ESTABLISHMENTS_SOURCE] = ctx.output_path(datasets["establishments"]["outputs"]["by_neighbourhood"])
    return paths


def _raw_value(sources: Sources, source: str, nid: str, field: str) -> float | None:
    record = sources.get(source, {}).get(nid)
    if record is None:
        return None
    value = record.get(field)
    if value is None or isinstance(value, (bool, dict, list, str)):
        return None
    return float(value)


def metric_inputs(
    sources: Sources,
    metric_cfg: dict,
    neighbourhood_ids: list[str],
) -> tuple[dict[str, float | None], dict[str, bool] | None]:
    source = metric_cfg["source"]
    values = {nid: _raw_value(sources, source, nid, metric_cfg["field"]) for nid in neighbourhood_ids}
    zero_field = metric_cfg.get("zero_field")
    if not zero_field:
        return values, None
    zero_flags = {}
    for nid in neighbourhood_ids:
        count = _raw_value(sources, source, nid, zero_field)
        if count is not None:
            zero_flags[nid] = count == 0
    return values, zero_flags


def score_neighbourhoods(
    scoring_cfg: dict,
    sources: Sources,
    names: Mapping[str, str],
) -> dict[str, dict]:
    """Build the full score document; ``names`` fixes which neighbourhoods are scored."""
    neighbourhood_ids = list(names)
    metric_scores: dict[str, dict[str, float | None]] = {nid: {} for nid in neighbourhood_ids}
    raw_values: dict[str, dict[str, float | None]] = {nid: {} for nid in neighbourhood_ids}
    category_scores: dict[str, dict[str, float | None]] = {nid: {} for nid in neighbourhood_ids}
    category_weights = {}

    for category, category_cfg in scoring_cfg["categories"].items():
        category_weights[category] = float(category_cfg["weight"])
        metric_weights = {}
        for metric_id, metric_cfg in category_cfg["metrics"].items():
            metric_weights[metric_id] = float(metric_cfg["weight"])
            values, zero_flags = metric_inputs(sources, metric_cfg, neighbourhood_ids)
            scores = percentile_scores(values, ScoringPolicy.from_config(metric_cfg), zero_flags)
            for nid in neighbourhood_ids:
                raw_values[nid][metric_id] = values[nid]
                metric_scores[nid][metric_id] = scores[nid]

        for nid in neighbourhood_ids:
            present = {metric_id: metric_scores[nid][metric_id] for metric_id in metric_weights}
            category_scores[nid][category] = compose(present, metric_weights)

    overall = {nid: compose(category_scores[nid], category_weights) for nid in neighbourhood_ids}
    ranked = sorted((nid for nid in neighbourhood_ids if overall[nid] is not None), key=lambda nid: (-overall[nid], nid))
    ranks = {nid: idx + 1 for idx, nid in enumerate(ranked)}

    return {
        nid: {
            "name": names[nid],
            "overallScore": overall[nid],
            "rank": ranks.get(nid),
            "categoryScores": category_scores[nid],
            "metricScores": metric_scores[nid],
            "rawMetricValues": raw_values[nid],
        }
        for nid in neighbourhood_ids
    }


def run_score(ctx: StageContext) -> StageSummary:
    summary = StageSummary(stage="score", headline_metric="overallScore")
    sources: dict[str, Any] = {}
    for source, path in source_paths(ctx).items():
        if not path.exists():
            summary.warnings.append(f"score: {source} output not found at {path}; its metrics are null")
            log_event(
                ctx.logger,
                "score source missing",
                run_id=ctx.run_id,
                stage=summary.stage,
                dataset=source,
                event="INPUT_MISSING",
                status="warn",
            )
            continue
        sources[source] = read_json(path)

    sources[CENSUS_SOURCE] = {nid: ctx.store.census(nid) for nid in ctx.store.neighbourhood_ids()}
    names = ctx.neighbourhood_names()
    results = score_neighbourhoods(ctx.bundle.scoring, sources, names)

    out_path = ctx.output_path(ctx.bundle.scoring.get("output", DEFAULT_OUTPUT))
    write_json(out_path, results)
    summary.outputs = [str(out_path)]
    summary.counts.update(
        {
            "neighbourhoods": len(results),
            "ranked": sum(1 for item in results.values() if item["rank"] is not None),
            "sources_loaded": len(sources),
        }
    )
    summary.top, summary.bottom = rank_extremes(results, "overallScore", names, ctx.top_n)
    return summary
