"""Stage reports, run summary aggregation and console formatting."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from civicscore.common.fs import read_json, write_json
from civicscore.pipeline.accumulators import AssignmentTally

STATUS_SUCCESS = "success"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class StageSummary:
    stage: str
    status: str = STATUS_SUCCESS
    tally: AssignmentTally = field(default_factory=AssignmentTally)
    counts: dict[str, Any] = field(default_factory=dict)
    headline_metric: str | None = None
    top: list[dict] = field(default_factory=list)
    bottom: list[dict] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_report(self, run_id: str, run_date: str) -> dict:
        return {
            "run_id": run_id,
            "run_date": run_date,
            "stage": self.stage,
            "status": self.status,
            "tally": self.tally.as_dict(),
            "counts": self.counts,
            "headline_metric": self.headline_metric,
            "top": self.top,
            "bottom": self.bottom,
            "outputs": self.outputs,
            "warnings": self.warnings,
            "errors": self.errors,
        }


def rank_extremes(
    results: Mapping[str, Mapping[str, Any]],
    metric: str,
    names: Mapping[str, str],
    limit: int,
) -> tuple[list[dict], list[dict]]:
    """Highest and lowest ``limit`` neighbourhoods for one result field, nulls excluded."""
    rows = [
        {"id": nid, "name": names.get(nid, nid), "value": values.get(metric)}
        for nid, values in results.items()
        if values.get(metric) is not None
    ]
    descending = sorted(rows, key=lambda row: (-row["value"], row["id"]))
    ascending = sorted(rows, key=lambda row: (row["value"], row["id"]))
    return descending[:limit], ascending[:limit]


def stage_report_path(data_dir: Path, stage: str) -> Path:
    return data_dir / "out" / "reports" / f"{stage}_report.json"


def write_stage_report(data_dir: Path, summary: StageSummary, *, run_id: str, run_date: str) -> Path:
    path = stage_report_path(data_dir, summary.stage)
    write_json(path, summary.to_report(run_id, run_date))
    return path


def write_run_summary(data_dir: Path, run_id: str, run_date: str, stages: list[str]) -> Path:
    stage_reports = {}
    totals = {
        "rows_read": 0,
        "rows_malformed": 0,
        "rows_invalid": 0,
        "geolocated": 0,
        "name_matched": 0,
        "ward_assigned": 0,
        "unassigned": 0,
    }
    warning_count = 0
    error_count = 0

    for stage in stages:
        report_path = stage_report_path(data_dir, stage)
        if not report_path.exists():
            stage_reports[stage] = {"status": "missing_report"}
            error_count += 1
            continue

        report = read_json(report_path)
        # Reports left over from an earlier run are not part of this summary.
        if report.get("run_id") != run_id:
            stage_reports[stage] = {"status": "missing_report"}
            error_count += 1
            continue

        stage_reports[stage] = {
            "status": report.get("status"),
            "tally": report.get("tally", {}),
            "warnings": report.get("warnings", []),
            "errors": report.get("errors", []),
        }
        tally = report.get("tally", {})
        for key in totals:
            totals[key] += int(tally.get(key, 0))

        warning_count += len(report.get("warnings", []))
        error_count += len(report.get("errors", []))

    status = STATUS_SUCCESS
    if error_count > 0:
        status = "error"
    elif warning_count > 0:
        status = "partial"

    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    payload = {
        "run_id": run_id,
        "run_date": run_date,
        "status": status,
        "stages": stages,
        "totals": totals,
        "warning_count": warning_count,
        "error_count": error_count,
        "stage_reports": stage_reports,
    }
    write_json(summary_path, payload)
    return summary_path


def _pct(part: int, whole: int) -> str:
    if whole <= 0:
        return "0.0%"
    return f"{100 * part / whole:.1f}%"


def format_stage_summary(summary: StageSummary) -> str:
    lines = [f"== {summary.stage} ({summary.status}) =="]
    if summary.status == STATUS_SKIPPED:
        lines.extend(f"  {warning}" for warning in summary.warnings)
        return "\n".join(lines)
    if summary.status == STATUS_FAILED:
        lines.extend(f"  error: {error}" for error in summary.errors)
        return "\n".join(lines)

    tally = summary.tally
    processed = tally.processed
    lines.append(f"  rows read: {tally.rows_read}  malformed: {tally.rows_malformed}  invalid fields: {tally.rows_invalid}")
    if processed:
        lines.append(f"  processed: {processed}")
        for method in ("geolocated", "name_matched", "ward_assigned", "unassigned"):
            count = getattr(tally, method)
            lines.append(f"    {method}: {count} ({_pct(count, processed)})")
    for key in sorted(summary.counts):
        value = summary.counts[key]
        if isinstance(value, dict):
            lines.append(f"  {key}:")
            for label, count in sorted(value.items(), key=lambda item: (-item[1], item[0])):
                lines.append(f"    {label}: {count}")
        else:
            lines.append(f"  {key}: {value}")
    if summary.headline_metric and summary.top:
        lines.append(f"  highest {summary.headline_metric}:")
        lines.extend(f"    {row['name']}: {row['value']}" for row in summary.top)
        lines.append(f"  lowest {summary.headline_metric}:")
        lines.extend(f"    {row['name']}: {row['value']}" for row in summary.bottom)
    lines.extend(f"  warning: {warning}" for warning in summary.warnings)
    return "\n".join(lines)
