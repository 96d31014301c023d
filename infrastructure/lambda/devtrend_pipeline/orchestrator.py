"""Fallback orchestration across prioritized sources.

This module provides the FallbackOrchestrator class, which serves each
data category from the first source in its priority list that delivers
enough items, with a cache-first strategy and per-source health tracking.
"""

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any

from .collectors.base import BaseCollector, CollectOptions
from .config import CATEGORY_POSTS, CATEGORY_REPOS, ConfigurationError, PipelineConfig
from .error_handling import with_error_recovery
from .health_cache import HealthCache
from .logging_config import get_logger
from .models import (
    AlertLevel,
    CategoryStatus,
    CollectionResult,
    HealthCheckResult,
    Period,
    PipelineStatus,
    RedditPost,
    SourceAttempt,
    SourceError,
    SourceStatus,
    TrendingRepo,
    parse_iso_datetime,
    utc_now,
)
from .storage import StorageError, TrendStorage

logger = get_logger(__name__)

ITEM_TYPES: dict[str, Any] = {
    CATEGORY_REPOS: TrendingRepo,
    CATEGORY_POSTS: RedditPost,
}

CACHE_SOURCE_PREFIX = "cache:"


class FallbackOrchestrator:
    """Tries sources in priority order until one delivers enough data.

    The priority order of each category is fixed at construction and never
    changes within a run. A category whose sources all fail produces an
    "exhausted" failure result; the orchestrator never raises for source
    failures.
    """

    def __init__(
        self,
        sources: dict[str, list[BaseCollector]],
        storage: TrendStorage | None,
        health_cache: HealthCache,
        config: PipelineConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize FallbackOrchestrator.

        Args:
            sources: Category to priority-ordered collectors
            storage: Storage used for cache snapshots (no caching when None)
            health_cache: Shared cache of health verdicts
            config: Pipeline tuning (defaults to PipelineConfig())
            clock: Source of the current UTC time

        Raises:
            ConfigurationError: If a category is unknown
        """
        self._config = config or PipelineConfig()
        for category in sources:
            self._config.min_items_for(category)

        self._sources = {category: list(collectors) for category, collectors in sources.items()}
        self._storage = storage
        self._health_cache = health_cache
        self._clock = clock
        self._statuses: dict[str, SourceStatus] = {}
        for collectors in self._sources.values():
            for collector in collectors:
                self._statuses.setdefault(collector.name, SourceStatus(name=collector.name))
        self._last_runs: dict[str, CategoryStatus] = {}

    @property
    def categories(self) -> list[str]:
        return list(self._sources)

    def collect_with_fallback(
        self,
        category: str,
        period: Period = "weekly",
        options: CollectOptions | None = None,
        force_refresh: bool = False,
    ) -> CollectionResult:
        """Collect a category from the first source that succeeds.

        Args:
            category: "repos" or "posts"
            period: Time window to collect
            options: Per-call collection options
            force_refresh: If True, bypass the cache

        Returns:
            The first acceptable result, or an "exhausted" failure listing
            every attempt

        Raises:
            ConfigurationError: If the category is unknown
        """
        collectors = self._collectors_for(category)
        options = options or CollectOptions()
        minimum = self._config.min_items_for(category)
        cache_key = self._cache_key(category, period, options)

        if not force_refresh and cache_key is not None:
            cached = self._read_cache(cache_key, category, minimum)
            if cached is not None:
                return cached

        attempts: list[SourceAttempt] = []
        for index, collector in enumerate(collectors):
            status = self._statuses[collector.name]

            if collector.probe_before_collect:
                verdict = self._health_verdict(collector)
                if not verdict.healthy:
                    reason = verdict.error or "health check failed"
                    status.record_failure(f"unhealthy: {reason}")
                    attempts.append(
                        SourceAttempt(
                            source=collector.name,
                            outcome="skipped",
                            error_type="unhealthy",
                            message=reason,
                            latency_ms=verdict.latency_ms,
                        )
                    )
                    logger.warning(
                        "source_skipped_unhealthy",
                        category=category,
                        source=collector.name,
                        reason=reason,
                    )
                    continue

            result = with_error_recovery(
                lambda: collector.collect(period, options),
                name=f"{collector.name}.collect",
                fallback_factory=lambda e: self._failure_from_exception(collector, e),
            )

            if result.success:
                count = len(result.data)
                if not collector.enforce_minimum or count >= minimum:
                    status.record_success(result.latency_ms)
                    attempts.append(
                        SourceAttempt(
                            source=collector.name,
                            outcome="success",
                            latency_ms=result.latency_ms,
                        )
                    )
                    if cache_key is not None and collector.enforce_minimum:
                        self._write_cache(cache_key, result)
                    self._last_runs[category] = CategoryStatus(
                        active_source=collector.name,
                        using_fallback=index > 0,
                        last_run_at=self._clock(),
                    )
                    logger.info(
                        "category_collected",
                        category=category,
                        source=result.source,
                        count=count,
                        using_fallback=index > 0,
                    )
                    return result.with_attempts(attempts)
                error_type = "insufficient_data"
                message = f"{count} items, {minimum} required"
                transient = False
            else:
                error_type = result.error.error_type
                message = result.error.message
                transient = result.error.transient

            status.record_failure(f"{error_type}: {message}")
            attempts.append(
                SourceAttempt(
                    source=collector.name,
                    outcome="failed",
                    error_type=error_type,
                    message=message,
                    latency_ms=result.latency_ms,
                )
            )
            logger.warning(
                "source_failed",
                category=category,
                source=collector.name,
                error_type=error_type,
                error=message,
                transient=transient,
            )

        message = f"All {len(collectors)} sources failed for {category}"
        self._last_runs[category] = CategoryStatus(
            active_source=None,
            using_fallback=False,
            last_run_at=self._clock(),
            error=message,
        )
        logger.error(
            "sources_exhausted",
            category=category,
            attempts=[f"{a.source}:{a.outcome}:{a.error_type}" for a in attempts],
        )
        return CollectionResult.fail(
            source="none",
            error_type="exhausted",
            message=message,
            attempts=attempts,
        )

    def get_source_statuses(self) -> list[SourceStatus]:
        """Return one status per configured source, in priority order."""
        return [
            self._statuses[name]
            for name in dict.fromkeys(
                collector.name
                for collectors in self._sources.values()
                for collector in collectors
            )
        ]

    def get_pipeline_status(self) -> PipelineStatus:
        """Build an operator-facing snapshot of the pipeline.

        Health verdicts come from the health cache; sources are only probed
        when their cached verdict has expired.
        """
        health: dict[str, HealthCheckResult] = {}
        for collectors in self._sources.values():
            for collector in collectors:
                health[collector.name] = self._health_verdict(collector)

        categories: dict[str, CategoryStatus] = {}
        for category, collectors in self._sources.items():
            if category in self._last_runs:
                categories[category] = self._last_runs[category]
                continue
            categories[category] = CategoryStatus(
                active_source=None,
                using_fallback=False,
                error="No healthy source",
            )
            for index, collector in enumerate(collectors):
                if health[collector.name].healthy:
                    categories[category] = CategoryStatus(
                        active_source=collector.name,
                        using_fallback=index > 0,
                    )
                    break

        alert_level: AlertLevel = "green"
        if any(status.active_source is None for status in categories.values()):
            alert_level = "red"
        elif any(status.using_fallback for status in categories.values()):
            alert_level = "yellow"

        snapshot_times = [
            collected_at
            for category in self._sources
            if (collected_at := self._snapshot_time(category)) is not None
        ]

        return PipelineStatus(
            generated_at=self._clock(),
            categories=categories,
            sources=self.get_source_statuses(),
            health=health,
            alert_level=alert_level,
            data_freshness=max(snapshot_times).isoformat() if snapshot_times else None,
        )

    def check_all_sources(self) -> dict[str, HealthCheckResult]:
        """Probe every source now and refresh the health cache."""
        results: dict[str, HealthCheckResult] = {}
        for collectors in self._sources.values():
            for collector in collectors:
                verdict = self._probe(collector)
                self._health_cache.set(verdict)
                results[collector.name] = verdict
        logger.info(
            "sources_checked",
            healthy=[name for name, r in results.items() if r.healthy],
            unhealthy=[name for name, r in results.items() if not r.healthy],
        )
        return results

    def _collectors_for(self, category: str) -> list[BaseCollector]:
        if category not in self._sources:
            raise ConfigurationError(f"Unknown category: {category}")
        return self._sources[category]

    def _health_verdict(self, collector: BaseCollector) -> HealthCheckResult:
        verdict = self._health_cache.get(collector.name)
        if verdict is None:
            verdict = self._probe(collector)
            self._health_cache.set(verdict)
        return verdict

    def _probe(self, collector: BaseCollector) -> HealthCheckResult:
        verdict = with_error_recovery(
            collector.health_check,
            name=f"{collector.name}.health_check",
            fallback_factory=lambda e: HealthCheckResult(
                source=collector.name, healthy=False, error=str(e)
            ),
        )
        if verdict.source != collector.name:
            verdict = replace(verdict, source=collector.name)
        return verdict

    @staticmethod
    def _failure_from_exception(collector: BaseCollector, error: Exception) -> CollectionResult:
        error_type = error.error_type if isinstance(error, SourceError) else "internal_error"
        return CollectionResult.fail(
            source=collector.name,
            error_type=error_type,
            message=f"{type(error).__name__}: {error}",
        )

    @staticmethod
    def _cache_key(category: str, period: Period, options: CollectOptions) -> str | None:
        # Narrowed collections are not cached
        if options.query or options.subreddits or options.limit is not None:
            return None
        language = (options.language or "all").lower()
        return f"{category}:{period}:{language}"

    def _read_cache(self, key: str, category: str, minimum: int) -> CollectionResult | None:
        if self._storage is None:
            return None
        try:
            snapshot = self._storage.load_from_storage(key)
        except StorageError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        if not isinstance(snapshot, dict):
            return None

        try:
            collected_at = parse_iso_datetime(snapshot.get("collected_at"))
            item_type = ITEM_TYPES[category]
            items = [item_type.from_dict(item) for item in snapshot.get("items", [])]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("cache_snapshot_invalid", key=key, error=str(e))
            return None

        if collected_at is None:
            return None
        age = (self._clock() - collected_at).total_seconds()
        if age > self._config.cache_ttl_seconds:
            logger.debug("cache_expired", key=key, age_seconds=round(age))
            return None
        if len(items) < minimum:
            logger.debug("cache_insufficient", key=key, count=len(items), minimum=minimum)
            return None

        source = f"{CACHE_SOURCE_PREFIX}{snapshot.get('source', 'unknown')}"
        logger.info("cache_hit", key=key, source=source, count=len(items))
        return replace(CollectionResult.ok(source, items), collected_at=collected_at)

    def _snapshot_time(self, category: str) -> datetime | None:
        """Return when the default weekly snapshot of a category was collected."""
        if self._storage is None:
            return None
        key = self._cache_key(category, "weekly", CollectOptions())
        try:
            snapshot = self._storage.load_from_storage(key)
        except StorageError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        if not isinstance(snapshot, dict):
            return None
        try:
            return parse_iso_datetime(snapshot.get("collected_at"))
        except (TypeError, ValueError):
            return None

    def _write_cache(self, key: str, result: CollectionResult) -> None:
        if self._storage is None:
            return
        snapshot = {
            "source": result.source,
            "collected_at": result.collected_at.isoformat(),
            "items": [item.to_dict() for item in result.data],
        }
        try:
            self._storage.save_to_storage(key, snapshot, ttl_seconds=self._config.cache_ttl_seconds)
        except StorageError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
