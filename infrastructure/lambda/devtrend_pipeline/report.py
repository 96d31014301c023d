"""Weekly trend report generation.

This module provides the ReportGenerator class, which collects every
category through the fallback orchestrator, merges and ranks the results,
extracts emerging topics and stores the report for its ISO week.
"""

from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone
from typing import TypeVar

from .collectors.base import CollectOptions
from .collectors.filters import filter_developer_tools_by_topics, top_by
from .config import (
    CATEGORY_POSTS,
    CATEGORY_REPOS,
    MAX_DEVELOPER_TOOLS,
    MAX_OVERALL_REPOS,
    MAX_REPORT_POSTS,
    MAX_REPOS_PER_LANGUAGE,
    TOPIC_HISTORY_WEEKS,
    PipelineConfig,
)
from .error_handling import sleep
from .logging_config import get_logger
from .models import (
    CollectionResult,
    RedditPost,
    ReportSummary,
    TrendingRepo,
    WeeklyTrendReport,
    utc_now,
)
from .orchestrator import FallbackOrchestrator
from .periods import get_last_n_weeks, get_week_date_range, get_week_string
from .storage import TrendStorage
from .topics import count_topics, extract_emerging_topics

logger = get_logger(__name__)

Item = TypeVar("Item", TrendingRepo, RedditPost)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)
HOT_TOPIC_COUNT = 5


def item_timestamp(item: TrendingRepo | RedditPost) -> datetime:
    """Timestamp that decides which duplicate wins.

    Posts use their publication time (collection time when unknown);
    repositories use their collection time.
    """
    if isinstance(item, RedditPost):
        return item.published_at or item.collected_at
    return item.collected_at


def dedupe_items(items: Iterable[Item]) -> list[Item]:
    """Deduplicate by identifier, keeping the record with the later timestamp.

    The output keeps the position of each identifier's first occurrence.
    """
    by_id: dict[str, Item] = {}
    for item in items:
        existing = by_id.get(item.identifier)
        if existing is None or item_timestamp(item) > item_timestamp(existing):
            by_id[item.identifier] = item
    return list(by_id.values())


def rank_repos(repos: Iterable[TrendingRepo], limit: int) -> list[TrendingRepo]:
    return top_by(repos, lambda r: (r.stars_gained, r.stars), limit)


def rank_posts(posts: Iterable[RedditPost], limit: int) -> list[RedditPost]:
    return top_by(posts, lambda p: (p.score, p.published_at or _EPOCH), limit)


def summarize_report(report: WeeklyTrendReport) -> ReportSummary:
    """Condense a report into its headline facts.

    Args:
        report: Report to summarize

    Returns:
        ReportSummary with the top repository, top tool, hot topics and the
        leading repository of each language
    """
    return ReportSummary(
        week=report.week,
        top_repo=report.repos[0] if report.repos else None,
        top_tool=report.developer_tools[0] if report.developer_tools else None,
        hot_topics=tuple(t.topic for t in report.emerging_topics[:HOT_TOPIC_COUNT]),
        language_highlights={
            language: repos[0].full_name
            for language, repos in report.repos_by_language.items()
            if repos
        },
        gaps=dict(report.gaps),
    )


class ReportGenerator:
    """Builds and stores weekly trend reports.

    Categories are collected one at a time. A category whose sources are
    all exhausted becomes a gap in the report instead of aborting it.
    """

    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        storage: TrendStorage,
        config: PipelineConfig | None = None,
        sleep_func: Callable[[float], None] = sleep,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize ReportGenerator.

        Args:
            orchestrator: Fallback orchestrator used for every collection
            storage: Report storage
            config: Pipeline tuning (defaults to PipelineConfig())
            sleep_func: Delay primitive used between language collections
            clock: Source of the current UTC time
        """
        self._orchestrator = orchestrator
        self._storage = storage
        self._config = config or PipelineConfig()
        self._sleep = sleep_func
        self._clock = clock

    def generate_weekly_report(
        self,
        day: date | None = None,
        languages: Iterable[str] | None = None,
        regenerate: bool = False,
        force_refresh: bool = False,
    ) -> WeeklyTrendReport:
        """Generate (or return the stored) report for the week containing day.

        Args:
            day: Any date in the target week (defaults to today)
            languages: Languages to rank separately (defaults to config)
            regenerate: If True, rebuild even if the week is already stored
            force_refresh: If True, bypass the collection cache

        Returns:
            The weekly report

        Raises:
            StorageError: If the report cannot be read or stored
        """
        day = day or self._clock().date()
        week = get_week_string(day)

        if not regenerate and self._storage.report_exists(week):
            existing = self._storage.get_trend_report(week)
            if existing is not None:
                logger.info("trend_report_exists", week=week)
                return existing

        languages = list(self._config.languages if languages is None else languages)
        logger.info("trend_report_started", week=week, languages=languages)

        provenance: dict[str, str] = {}
        gaps: dict[str, str] = {}

        overall = self._orchestrator.collect_with_fallback(
            CATEGORY_REPOS, "weekly", force_refresh=force_refresh
        )
        self._record(CATEGORY_REPOS, overall, provenance, gaps)
        all_repos: list[TrendingRepo] = list(overall.data)

        repos_by_language: dict[str, tuple[TrendingRepo, ...]] = {}
        for index, language in enumerate(languages):
            if index:
                self._sleep(self._config.inter_request_delay)
            result = self._orchestrator.collect_with_fallback(
                CATEGORY_REPOS,
                "weekly",
                CollectOptions(language=language),
                force_refresh=force_refresh,
            )
            label = f"{CATEGORY_REPOS}:{language}"
            if self._record(label, result, provenance, gaps):
                repos_by_language[language] = tuple(
                    rank_repos(dedupe_items(result.data), MAX_REPOS_PER_LANGUAGE)
                )
                all_repos.extend(result.data)

        posts_result = self._orchestrator.collect_with_fallback(
            CATEGORY_POSTS, "weekly", force_refresh=force_refresh
        )
        self._record(CATEGORY_POSTS, posts_result, provenance, gaps)

        repos = dedupe_items(overall.data)
        unique_repos = dedupe_items(all_repos)
        posts = dedupe_items(posts_result.data)

        topic_frequencies = count_topics(unique_repos, posts)
        emerging = extract_emerging_topics(topic_frequencies, self._topic_history(day))

        start_date, end_date = get_week_date_range(week)
        report = WeeklyTrendReport(
            week=week,
            start_date=start_date,
            end_date=end_date,
            generated_at=self._clock(),
            repos=tuple(rank_repos(repos, MAX_OVERALL_REPOS)),
            repos_by_language=repos_by_language,
            developer_tools=tuple(
                rank_repos(filter_developer_tools_by_topics(unique_repos), MAX_DEVELOPER_TOOLS)
            ),
            posts=tuple(rank_posts(posts, MAX_REPORT_POSTS)),
            emerging_topics=tuple(emerging),
            topic_frequencies=topic_frequencies,
            provenance=provenance,
            gaps=gaps,
        )

        self._storage.save_trend_report(report)
        logger.info(
            "trend_report_generated",
            week=week,
            repos=len(report.repos),
            developer_tools=len(report.developer_tools),
            posts=len(report.posts),
            topics=len(report.emerging_topics),
            gaps=sorted(gaps),
        )
        return report

    def _record(
        self,
        label: str,
        result: CollectionResult,
        provenance: dict[str, str],
        gaps: dict[str, str],
    ) -> bool:
        if result.success:
            provenance[label] = result.source
            return True
        gaps[label] = result.error.message
        logger.warning("report_gap", category=label, reason=result.error.message)
        return False

    def _topic_history(self, day: date) -> list[dict[str, int]]:
        """Topic counts of the stored reports for the preceding weeks."""
        history = []
        for week in get_last_n_weeks(TOPIC_HISTORY_WEEKS + 1, day)[1:]:
            report = self._storage.get_trend_report(week)
            if report is not None and report.topic_frequencies:
                history.append(report.topic_frequencies)
        return history
