"""CLI entrypoint for the neighbourhood civic data pipeline."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from civicscore.common.config_loader import load_all_configs
from civicscore.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, STAGES
from civicscore.common.errors import ConfigError, MissingInputError, PipelineError, StageError
from civicscore.common.logging import build_logger, close_logger, log_event
from civicscore.common.time_utils import generate_run_id, parse_run_date
from civicscore.pipeline.categorize import run_categorize
from civicscore.pipeline.context import StageContext
from civicscore.pipeline.crime import run_crime
from civicscore.pipeline.development import run_development
from civicscore.pipeline.food_inspections import run_food_inspections
from civicscore.pipeline.reports import (
    STATUS_FAILED,
    STATUS_SKIPPED,
    StageSummary,
    format_stage_summary,
    write_run_summary,
    write_stage_report,
)
from civicscore.pipeline.score import run_score
from civicscore.pipeline.service_requests import run_service_requests

STAGE_RUNNERS = {
    "categorize": run_categorize,
    "crime": run_crime,
    "service-requests": run_service_requests,
    "development": run_development,
    "food-inspections": run_food_inspections,
    "score": run_score,
}


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    return parser.parse_args(argv)


def execute_stage(stage: str, ctx: StageContext) -> StageSummary:
    try:
        return STAGE_RUNNERS[stage](ctx)
    except MissingInputError as exc:
        log_event(
            ctx.logger,
            f"stage skipped: {exc}",
            run_id=ctx.run_id,
            stage=stage,
            event="STAGE_SKIP",
            status="warn",
            error_code=exc.error_code,
        )
        return StageSummary(stage=stage, status=STATUS_SKIPPED, warnings=[str(exc)])


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    run_date = parse_run_date(args.run_date)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    try:
        try:
            bundle = load_all_configs(config_dir, overlay_config_dir=overlay_config_dir)
            ctx = StageContext.build(bundle, data_dir, run_id=run_id, run_date=run_date, logger=logger)
        except ConfigError as exc:
            log_event(logger, str(exc), run_id=run_id, event="CONFIG_FAIL", status="error", error_code=exc.error_code)
            print(f"configuration error: {exc}", file=sys.stderr)
            return EXIT_HARD_FAIL

        stages = STAGES if args.command == "all" else (args.command,)
        had_partial_failure = False

        for stage in stages:
            started = time.monotonic()
            log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
            try:
                summary = execute_stage(stage, ctx)
            except ConfigError as exc:
                log_event(logger, str(exc), run_id=run_id, stage=stage, event="STAGE_FAIL", status="error", error_code=exc.error_code)
                return EXIT_HARD_FAIL
            except StageError as exc:
                had_partial_failure = True
                summary = StageSummary(stage=stage, status=STATUS_FAILED, errors=[str(exc)])
                log_event(logger, str(exc), run_id=run_id, stage=stage, event="STAGE_FAIL", status="error", error_code=exc.error_code)
            except Exception as exc:
                had_partial_failure = True
                summary = StageSummary(stage=stage, status=STATUS_FAILED, errors=[f"unexpected failure: {exc!r}"])
                log_event(
                    logger,
                    "unexpected stage failure",
                    run_id=run_id,
                    stage=stage,
                    event="STAGE_FAIL",
                    status="error",
                    error_code="UNEXPECTED_ERROR",
                )

            write_stage_report(data_dir, summary, run_id=run_id, run_date=run_date)
            print(format_stage_summary(summary))
            log_event(
                logger,
                "stage end",
                run_id=run_id,
                stage=stage,
                event="STAGE_END",
                status=summary.status,
                duration_ms=int((time.monotonic() - started) * 1000),
                rows_in=summary.tally.rows_read,
                rows_out=summary.tally.processed - summary.tally.unassigned,
            )

        write_run_summary(data_dir, run_id=run_id, run_date=run_date, stages=list(stages))
        if had_partial_failure:
            return EXIT_PARTIAL
        return EXIT_SUCCESS
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
