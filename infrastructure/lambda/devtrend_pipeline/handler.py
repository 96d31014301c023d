"""Lambda handler for the DevTrend pipeline.

This is the entry point for the Lambda function that builds the weekly
trend report (on a weekly EventBridge schedule) and answers operator
queries about sources and stored reports.
"""

import os
from datetime import date
from typing import Any

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


def _create_pipeline() -> TrendPipeline:
    """Create and configure the TrendPipeline instance."""
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))
    return build_pipeline(
        storage_config=get_storage_config(),
        api_config=get_external_api_config(),
        pipeline_config=get_pipeline_config(),
    )


# Global pipeline instance for Lambda warm starts
_pipeline: TrendPipeline | None = None


def _get_pipeline() -> TrendPipeline:
    """Get or create the TrendPipeline instance."""
    global _pipeline
    if _pipeline is None:
        _pipeline = _create_pipeline()
    return _pipeline


def _generate_report(pipeline: TrendPipeline, event: dict[str, Any]) -> dict[str, Any]:
    day = date.fromisoformat(event["date"]) if event.get("date") else None
    report = pipeline.generator.generate_weekly_report(
        day=day,
        languages=event.get("languages"),
        regenerate=bool(event.get("regenerate", False)),
        force_refresh=bool(event.get("force_refresh", False)),
    )
    return {
        "week": report.week,
        "summary": summarize_report(report).to_text(),
        "provenance": report.provenance,
        "gaps": report.gaps or None,
        "report": report.to_dict(),
    }


def _status(pipeline: TrendPipeline, event: dict[str, Any]) -> dict[str, Any]:
    return pipeline.orchestrator.get_pipeline_status().to_dict()


def _check_sources(pipeline: TrendPipeline, event: dict[str, Any]) -> dict[str, Any]:
    results = pipeline.orchestrator.check_all_sources()
    return {"sources": {name: result.to_dict() for name, result in results.items()}}


def _latest_report(pipeline: TrendPipeline, event: dict[str, Any]) -> dict[str, Any]:
    if event.get("week"):
        report = pipeline.storage.get_trend_report(event["week"])
    else:
        report = pipeline.storage.get_latest_trend_report()
    return {"report": report.to_dict() if report is not None else None}


def _list_reports(pipeline: TrendPipeline, event: dict[str, Any]) -> dict[str, Any]:
    metadata = pipeline.storage.get_storage_metadata()
    return {
        "weeks": pipeline.storage.list_trend_reports(),
        "metadata": metadata.to_dict() if metadata is not None else None,
    }


def _recent_reports(pipeline: TrendPipeline, event: dict[str, Any]) -> dict[str, Any]:
    reports = pipeline.storage.get_recent_reports(int(event.get("limit", 12)))
    return {"reports": [report.to_dict() for report in reports]}


def _cleanup(pipeline: TrendPipeline, event: dict[str, Any]) -> dict[str, Any]:
    default = pipeline.retention_policy()
    max_age = event.get("max_age_weeks", default.max_age_weeks)
    policy = RetentionPolicy(
        keep_latest=int(event.get("keep_latest", default.keep_latest)),
        max_age_weeks=int(max_age) if max_age is not None else None,
    )
    return {"deleted": pipeline.storage.cleanup_old_reports(policy)}


ACTIONS = {
    "generate_report": _generate_report,
    "status": _status,
    "check_sources": _check_sources,
    "latest_report": _latest_report,
    "list_reports": _list_reports,
    "recent_reports": _recent_reports,
    "cleanup": _cleanup,
}


def _error(error_type: str, message: str) -> dict[str, Any]:
    return {"error": {"error_type": error_type, "message": message}}


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda entry point.

    Args:
        event: Lambda event containing request parameters:
            - action: One of ACTIONS (default "generate_report")
            - date: ISO date inside the target week (generate_report)
            - languages: Languages to rank separately (generate_report)
            - regenerate: Rebuild an already stored week (generate_report)
            - force_refresh: Bypass the collection cache (generate_report)
            - week: Week identifier to fetch (latest_report)
            - limit: Number of most recent reports (recent_reports)
            - keep_latest / max_age_weeks: Retention overrides (cleanup)
        context: Lambda context (unused)

    Returns:
        Action result, or an "error" object describing the failure
    """
    event = event or {}
    action = event.get("action", "generate_report")
    operation = ACTIONS.get(action)
    if operation is None:
        return _error("invalid_request", f"Unknown action: {action}")

    try:
        pipeline = _get_pipeline()
        return {"action": action, **operation(pipeline, event)}
    except ConfigurationError as e:
        logger.error("configuration_error", action=action, error=str(e))
        return _error("configuration_error", str(e))
    except StorageError as e:
        logger.error("storage_error", action=action, error=str(e))
        return _error("storage_error", str(e))
    except ValueError as e:
        return _error("invalid_request", str(e))
    except Exception as e:
        logger.exception("unhandled_error", action=action)
        return _error("internal_error", str(e))
