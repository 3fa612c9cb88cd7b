"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

import re

from civicscore.common.errors import ConfigError

DATASET_KEYS = ("crime", "service_requests", "development", "food_inspections", "establishments")
DIRECTIONS = {"higher_is_better", "lower_is_better"}
ZERO_POLICIES = {"best", "worst", "no_data", "ranked"}
TIE_BREAKS = {"input_order", "distance"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"Expected a mapping for {ctx}")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_window(window: dict, ctx: str) -> None:
    if not isinstance(window, dict) or not window:
        raise ConfigError(f"{ctx} must be a non-empty mapping")
    if "years_back" in window and ({"from_year", "to_year"} & set(window)):
        raise ConfigError(f"{ctx} takes either years_back or from_year/to_year, not both")
    _assert_no_unknown_keys(window, {"years_back", "from_year", "to_year"}, ctx, False)


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"reference", "city", "datasets", "summary"}
    _assert_required_keys(cfg, top_required, "pipeline config")
    _assert_no_unknown_keys(cfg, top_required, "pipeline config", allow_unknown)

    _assert_required_keys(cfg["reference"], {"boundaries"}, "reference")
    _assert_required_keys(cfg["city"], {"bbox_wgs84"}, "city")
    _assert_required_keys(
        cfg["city"]["bbox_wgs84"],
        {"min_lat", "max_lat", "min_lon", "max_lon"},
        "city.bbox_wgs84",
    )
    _assert_required_keys(cfg["summary"], {"top_n"}, "summary")

    datasets = cfg["datasets"]
    _assert_required_keys(datasets, set(DATASET_KEYS), "datasets")

    crime = datasets["crime"]
    _assert_required_keys(crime, {"input", "columns", "recent_window", "top_n_types", "output"}, "datasets.crime")
    _assert_required_keys(crime["columns"], {"year", "offence_category"}, "datasets.crime.columns")
    _assert_window(crime["recent_window"], "datasets.crime.recent_window")

    requests_cfg = datasets["service_requests"]
    _assert_required_keys(
        requests_cfg,
        {"inputs", "columns", "service_types", "road_complaints", "noise_complaints", "top_n_types", "output"},
        "datasets.service_requests",
    )
    _assert_required_keys(requests_cfg["columns"], {"type", "description", "lat", "lng", "ward"}, "datasets.service_requests.columns")
    if not isinstance(requests_cfg["inputs"], list) or not requests_cfg["inputs"]:
        raise ConfigError("datasets.service_requests.inputs must be a non-empty list")

    development = datasets["development"]
    _assert_required_keys(development, {"input", "columns", "recent_window", "top_n_types", "output"}, "datasets.development")
    _assert_required_keys(
        development["columns"],
        {"application_number", "application_date", "application_type", "status", "ward", "lat", "lng", "active", "approved"},
        "datasets.development.columns",
    )
    _assert_window(development["recent_window"], "datasets.development.recent_window")

    food = datasets["food_inspections"]
    _assert_required_keys(
        food,
        {"inputs", "columns", "recent_window", "perfect_score", "low_score_below", "output"},
        "datasets.food_inspections",
    )
    _assert_required_keys(food["inputs"], {"businesses", "inspections", "violations"}, "datasets.food_inspections.inputs")
    _assert_required_keys(food["columns"], {"businesses", "inspections", "violations"}, "datasets.food_inspections.columns")
    _assert_required_keys(food["columns"]["businesses"], {"business_id", "lat", "lng"}, "datasets.food_inspections.columns.businesses")
    _assert_required_keys(
        food["columns"]["inspections"],
        {"inspection_id", "business_id", "date", "score"},
        "datasets.food_inspections.columns.inspections",
    )
    _assert_required_keys(food["columns"]["violations"], {"inspection_id", "critical"}, "datasets.food_inspections.columns.violations")
    _assert_window(food["recent_window"], "datasets.food_inspections.recent_window")

    establishments = datasets["establishments"]
    _assert_required_keys(
        establishments,
        {
            "input",
            "columns",
            "coordinate_tolerance_deg",
            "name_similarity_threshold",
            "fuzzy_tie_break",
            "reference_datasets",
            "outputs",
        },
        "datasets.establishments",
    )
    _assert_required_keys(establishments["columns"], {"id", "name", "lat", "lng"}, "datasets.establishments.columns")
    _assert_required_keys(
        establishments["outputs"],
        {"categorized", "uncategorized", "by_neighbourhood"},
        "datasets.establishments.outputs",
    )
    if establishments["fuzzy_tie_break"] not in TIE_BREAKS:
        raise ConfigError(f"datasets.establishments.fuzzy_tie_break must be one of {sorted(TIE_BREAKS)}")
    for idx, ref in enumerate(establishments["reference_datasets"] or []):
        ctx = f"datasets.establishments.reference_datasets[{idx}]"
        _assert_required_keys(ref, {"name", "input", "columns"}, ctx)
        _assert_required_keys(ref["columns"], {"name", "lat", "lng"}, f"{ctx}.columns")
        if "category" not in ref and "category" not in ref["columns"]:
            raise ConfigError(f"{ctx} needs a fixed category or a category column")

    return cfg


def validate_wards_config(cfg: dict) -> dict:
    _assert_required_keys(cfg, {"wards"}, "wards")
    wards = cfg["wards"]
    if not isinstance(wards, dict) or not wards:
        raise ConfigError("wards.wards must be a non-empty mapping")
    for ward_id, members in wards.items():
        if not isinstance(members, list) or not members:
            raise ConfigError(f"Ward {ward_id} must list at least one neighbourhood id")
    return cfg


def validate_category_rules_config(cfg: dict) -> dict:
    _assert_required_keys(cfg, {"categories"}, "category_rules")
    categories = cfg["categories"]
    if not isinstance(categories, list) or not categories:
        raise ConfigError("category_rules.categories must be a non-empty list")

    seen_names: set[str] = set()
    seen_priorities: set[int] = set()
    for idx, entry in enumerate(categories):
        _assert_required_keys(entry, {"category", "priority", "patterns"}, f"categories[{idx}]")
        name = entry["category"]
        priority = entry["priority"]
        if name in seen_names:
            raise ConfigError(f"Duplicate category rule: {name}")
        if priority in seen_priorities:
            raise ConfigError(f"Duplicate category priority {priority} ({name})")
        seen_names.add(name)
        seen_priorities.add(priority)
        for pattern in entry["patterns"] or []:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ConfigError(f"Invalid pattern for {name}: {pattern!r} ({exc})") from exc
    return cfg


def validate_scoring_config(cfg: dict) -> dict:
    _assert_required_keys(cfg, {"categories"}, "scoring")
    categories = cfg["categories"]
    if not isinstance(categories, dict) or not categories:
        raise ConfigError("scoring.categories must be a non-empty mapping")

    metric_ids: set[str] = set()
    for category, entry in categories.items():
        _assert_required_keys(entry, {"weight", "metrics"}, f"scoring.categories.{category}")
        if float(entry["weight"]) < 0:
            raise ConfigError(f"scoring.categories.{category}.weight must not be negative")
        if not entry["metrics"]:
            raise ConfigError(f"scoring.categories.{category} has no metrics")
        for metric_id, metric in entry["metrics"].items():
            ctx = f"scoring.categories.{category}.metrics.{metric_id}"
            _assert_required_keys(metric, {"source", "field", "direction", "zero_means", "weight"}, ctx)
            if metric_id in metric_ids:
                raise ConfigError(f"Metric {metric_id} is declared more than once")
            metric_ids.add(metric_id)
            if metric["direction"] not in DIRECTIONS:
                raise ConfigError(f"{ctx}.direction must be one of {sorted(DIRECTIONS)}")
            if metric["zero_means"] not in ZERO_POLICIES:
                raise ConfigError(f"{ctx}.zero_means must be one of {sorted(ZERO_POLICIES)}")
    return cfg
