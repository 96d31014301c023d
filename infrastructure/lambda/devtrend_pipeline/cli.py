"""CLI entry point for the DevTrend pipeline."""

import argparse
import json
import sys
from datetime import date
from typing import Any

from dotenv import load_dotenv

from .config import (
    ConfigurationError,
    get_external_api_config,
    get_pipeline_config,
    get_storage_config,
)
from .logging_config import get_logger, setup_logging
from .pipeline import TrendPipeline, build_pipeline
from .report import summarize_report
from .storage import RetentionPolicy, StorageError

logger = get_logger(__name__)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_run(pipeline: TrendPipeline, args: argparse.Namespace) -> int:
    languages = None
    if args.languages is not None:
        languages = [lang.strip() for lang in args.languages.split(",") if lang.strip()]

    report = pipeline.generator.generate_weekly_report(
        day=args.date,
        languages=languages,
        regenerate=args.regenerate,
        force_refresh=args.force_refresh,
    )
    print(summarize_report(report).to_text())
    return 0


def cmd_status(pipeline: TrendPipeline, args: argparse.Namespace) -> int:
    status = pipeline.orchestrator.get_pipeline_status()
    if args.json:
        _print_json(status.to_dict())
        return 0

    print(f"Alert level: {status.alert_level}")
    print(f"Data freshness: {status.data_freshness or 'no cached data'}")
    for category, category_status in status.categories.items():
        active = category_status.active_source or "none"
        fallback = " (fallback)" if category_status.using_fallback else ""
        print(f"  {category}: {active}{fallback}")
    for source in status.sources:
        state = "available" if source.available else "unavailable"
        print(f"  {source.name}: {state}, consecutive failures {source.consecutive_failures}")
    return 0


def cmd_check(pipeline: TrendPipeline, args: argparse.Namespace) -> int:
    results = pipeline.orchestrator.check_all_sources()
    for name, result in results.items():
        verdict = "healthy" if result.healthy else f"unhealthy ({result.error})"
        print(f"{name}: {verdict}")
    return 0 if any(r.healthy for r in results.values()) else 1


def cmd_reports(pipeline: TrendPipeline, args: argparse.Namespace) -> int:
    if args.summary:
        reports = pipeline.storage.get_recent_reports(
            args.limit if args.limit is not None else pipeline.config.retention_weeks
        )
        if not reports:
            print("No reports stored")
            return 0
        print("\n\n".join(summarize_report(report).to_text() for report in reports))
        return 0

    weeks = pipeline.storage.list_trend_reports()
    if args.limit is not None:
        weeks = weeks[: args.limit]
    if not weeks:
        print("No reports stored")
    for week in weeks:
        print(week)
    return 0


def cmd_show(pipeline: TrendPipeline, args: argparse.Namespace) -> int:
    if args.week:
        report = pipeline.storage.get_trend_report(args.week)
    else:
        report = pipeline.storage.get_latest_trend_report()
    if report is None:
        print(f"No report found for {args.week or 'latest week'}", file=sys.stderr)
        return 1

    if args.summary:
        print(summarize_report(report).to_text())
    else:
        _print_json(report.to_dict())
    return 0


def cmd_cleanup(pipeline: TrendPipeline, args: argparse.Namespace) -> int:
    policy = RetentionPolicy(
        keep_latest=args.keep_latest
        if args.keep_latest is not None
        else pipeline.config.retention_weeks,
        max_age_weeks=args.max_age_weeks,
    )
    deleted = pipeline.storage.cleanup_old_reports(policy)
    print(f"Deleted {deleted} report(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devtrend", description="Collect developer trends into weekly reports"
    )
    parser.add_argument("--log-level", default="INFO", help="Console log level (default: INFO)")
    parser.add_argument("--log-file", help="Also write DEBUG logs to this file")
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit JSON log lines instead of console text"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Generate the weekly report")
    run_parser.add_argument(
        "--date", type=date.fromisoformat, help="Any date in the target week (YYYY-MM-DD)"
    )
    run_parser.add_argument("--languages", help="Comma-separated languages to rank separately")
    run_parser.add_argument(
        "--regenerate", action="store_true", help="Rebuild the report even if it exists"
    )
    run_parser.add_argument(
        "--force-refresh", action="store_true", help="Bypass the collection cache"
    )
    run_parser.set_defaults(func=cmd_run)

    status_parser = subparsers.add_parser("status", help="Show pipeline status")
    status_parser.add_argument("--json", action="store_true", help="Print raw JSON")
    status_parser.set_defaults(func=cmd_status)

    check_parser = subparsers.add_parser("check", help="Probe every source now")
    check_parser.set_defaults(func=cmd_check)

    reports_parser = subparsers.add_parser("reports", help="List stored weeks")
    reports_parser.add_argument("--limit", type=int, help="Show at most this many weeks")
    reports_parser.add_argument(
        "--summary", action="store_true", help="Print the digest of each recent report"
    )
    reports_parser.set_defaults(func=cmd_reports)

    show_parser = subparsers.add_parser("show", help="Print a stored report")
    show_parser.add_argument("week", nargs="?", help="Week identifier (default: latest)")
    show_parser.add_argument("--summary", action="store_true", help="Print the digest only")
    show_parser.set_defaults(func=cmd_show)

    cleanup_parser = subparsers.add_parser("cleanup", help="Delete old reports")
    cleanup_parser.add_argument("--keep-latest", type=int, help="Number of weeks to keep")
    cleanup_parser.add_argument(
        "--max-age-weeks", type=int, help="Also delete weeks older than this"
    )
    cleanup_parser.set_defaults(func=cmd_cleanup)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    setup_logging(level=args.log_level, json_output=args.json_logs, log_file=args.log_file)

    try:
        pipeline = build_pipeline(
            storage_config=get_storage_config(),
            api_config=get_external_api_config(),
            pipeline_config=get_pipeline_config(),
        )
        return args.func(pipeline, args)
    except ConfigurationError as e:
        logger.error("configuration_error", command=args.command, error=str(e))
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except StorageError as e:
        logger.error("storage_error", command=args.command, error=str(e))
        print(f"Storage error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
