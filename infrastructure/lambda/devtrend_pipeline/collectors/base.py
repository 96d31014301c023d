"""Base collector interface for upstream trend sources."""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from ..config import HEALTH_CHECK_TIMEOUT
from ..error_handling import FetchResult, RetryPolicy, fetch_with_retry, sleep
from ..models import CollectionResult, HealthCheckResult, Period, SourceError


@dataclass(frozen=True)
class CollectOptions:
    """Per-call collection options.

    Attributes:
        language: Restrict repositories to one programming language
        subreddits: Restrict community collectors to these communities
        query: Search query for collectors that support searching
        limit: Upper bound on returned items (collector default when None)
    """

    language: str | None = None
    subreddits: tuple[str, ...] | None = None
    query: str | None = None
    limit: int | None = None


def elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)


class BaseCollector(ABC):
    """Abstract base class for trend sources.

    Every source implements the same contract: ``collect`` returns a
    CollectionResult and ``health_check`` runs a cheap liveness probe.
    Subclasses implement ``_collect`` and may raise SourceError from it;
    ``collect`` turns that into a failure result.

    Attributes:
        name: Source identity recorded in results and status
        category: Logical data need the source serves ("repos" or "posts")
        probe_before_collect: Whether the orchestrator should run the health
            check before committing to a full collection
        enforce_minimum: Whether the orchestrator applies the category's
            minimum item count to this source's results
    """

    name: str = "base"
    category: str = ""
    probe_before_collect: bool = False
    enforce_minimum: bool = True

    def __init__(
        self,
        retry_policy: RetryPolicy | None = None,
        sleep_func: Callable[[float], None] = sleep,
    ) -> None:
        """Initialize the collector.

        Args:
            retry_policy: Retry schedule for full collection requests
            sleep_func: Delay primitive used for retries and rate limiting
        """
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep_func

    def collect(
        self, period: Period = "weekly", options: CollectOptions | None = None
    ) -> CollectionResult:
        """Collect items from the source.

        Args:
            period: Time window to collect ("daily", "weekly", "monthly")
            options: Optional per-call options

        Returns:
            CollectionResult with items on success or the error classification
        """
        start = time.monotonic()
        try:
            result = self._collect(period, options or CollectOptions())
        except SourceError as e:
            return CollectionResult.fail(
                source=e.source,
                error_type=e.error_type,
                message=e.message,
                latency_ms=elapsed_ms(start),
            )
        return replace(result, latency_ms=elapsed_ms(start))

    @abstractmethod
    def _collect(self, period: Period, options: CollectOptions) -> CollectionResult:
        """Source-specific collection.

        Raises:
            SourceError: If the source cannot deliver data
        """

    @abstractmethod
    def health_check(self) -> HealthCheckResult:
        """Run a cheap, single-attempt liveness probe."""

    def _fetch(self, method: str, url: str, **kwargs: Any) -> FetchResult:
        return fetch_with_retry(
            method,
            url,
            policy=self._retry_policy,
            sleep_func=self._sleep,
            **kwargs,
        )

    def _probe(self, method: str, url: str, **kwargs: Any) -> HealthCheckResult:
        """Probe an endpoint once with the short health-check timeout."""
        start = time.monotonic()
        result = fetch_with_retry(
            method,
            url,
            policy=RetryPolicy.single(HEALTH_CHECK_TIMEOUT),
            sleep_func=self._sleep,
            **kwargs,
        )
        if result.ok:
            return HealthCheckResult(
                source=self.name, healthy=True, latency_ms=elapsed_ms(start)
            )
        return HealthCheckResult(
            source=self.name,
            healthy=False,
            latency_ms=elapsed_ms(start),
            error=result.error.message,
        )
