"""GitHub GraphQL collector for trending repositories (official API)."""

import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from ..config import CATEGORY_REPOS, HEALTH_CHECK_TIMEOUT
from ..error_handling import RetryPolicy, fetch_with_retry, safe_json_parse, sleep
from ..logging_config import get_logger
from ..models import (
    CollectionResult,
    HealthCheckResult,
    Period,
    SourceError,
    TrendingRepo,
    parse_iso_datetime,
    utc_now,
)
from .base import BaseCollector, CollectOptions, elapsed_ms

logger = get_logger(__name__)

SEARCH_QUERY = """
query TrendingRepos($searchQuery: String!) {
  search(query: $searchQuery, type: REPOSITORY, first: 50) {
    repositoryCount
    nodes {
      ... on Repository {
        name
        nameWithOwner
        description
        url
        stargazerCount
        forkCount
        primaryLanguage { name }
        createdAt
        pushedAt
        isArchived
        isFork
        licenseInfo { spdxId }
        repositoryTopics(first: 10) { nodes { topic { name } } }
      }
    }
  }
}
"""

RATE_LIMIT_QUERY = "query { rateLimit { remaining resetAt } }"

DAYS_LOOKBACK: dict[str, int] = {"daily": 1, "weekly": 7, "monthly": 30}


class GitHubGraphQLCollector(BaseCollector):
    """Collector for trending repositories from the GitHub GraphQL API.

    Runs two searches: recently created repositories with more than 50
    stars, and recently pushed repositories with more than 1000 stars.
    Requires a personal access token.
    """

    GRAPHQL_URL = "https://api.github.com/graphql"
    NEW_REPO_MIN_STARS = 50
    ACTIVE_REPO_MIN_STARS = 1000

    name = "github-graphql"
    category = CATEGORY_REPOS
    probe_before_collect = True

    def __init__(
        self,
        access_token: str | None,
        retry_policy: RetryPolicy | None = None,
        sleep_func: Callable[[float], None] = sleep,
        language_delay: float = 2.0,
    ) -> None:
        """Initialize GitHubGraphQLCollector.

        Args:
            access_token: GitHub personal access token
            retry_policy: Retry schedule for search requests
            sleep_func: Delay primitive
            language_delay: Seconds to wait between per-language collections
        """
        super().__init__(retry_policy, sleep_func)
        self._access_token = access_token
        self._language_delay = language_delay

    def _collect(self, period: Period, options: CollectOptions) -> CollectionResult:
        if not self._access_token:
            raise SourceError(
                source=self.name,
                error_type="not_configured",
                message="GitHub access token is not configured",
            )

        date_str = self._date_threshold(period)
        searches = [
            self._build_search(
                f"created:>{date_str}", self.NEW_REPO_MIN_STARS, options.language
            ),
            self._build_search(
                f"pushed:>{date_str}", self.ACTIVE_REPO_MIN_STARS, options.language
            ),
        ]

        merged: dict[str, TrendingRepo] = {}
        skipped = 0
        for search in searches:
            nodes = self._execute(search)
            repos, invalid = self._parse_nodes(nodes)
            skipped += invalid
            for repo in repos:
                merged.setdefault(repo.full_name, repo)

        repos = sorted(merged.values(), key=lambda r: r.stars, reverse=True)
        if options.limit is not None:
            repos = repos[: options.limit]

        logger.info(
            "collection_succeeded",
            source=self.name,
            language=options.language or "all",
            period=period,
            count=len(repos),
            skipped=skipped,
        )
        return CollectionResult.ok(self.name, repos, skipped=skipped)

    def collect_multi_language(
        self, languages: list[str], period: Period = "weekly"
    ) -> dict[str, CollectionResult]:
        """Collect each language in turn, waiting between requests.

        Args:
            languages: Languages to collect
            period: Time window

        Returns:
            Mapping of language to its CollectionResult
        """
        results: dict[str, CollectionResult] = {}
        for index, language in enumerate(languages):
            if index:
                self._sleep(self._language_delay)
            results[language] = self.collect(period, CollectOptions(language=language))
        return results

    def health_check(self) -> HealthCheckResult:
        if not self._access_token:
            return HealthCheckResult(
                source=self.name,
                healthy=False,
                error="GitHub access token is not configured",
            )

        start = time.monotonic()
        result = fetch_with_retry(
            "POST",
            self.GRAPHQL_URL,
            policy=RetryPolicy.single(HEALTH_CHECK_TIMEOUT),
            sleep_func=self._sleep,
            headers=self._headers(),
            json={"query": RATE_LIMIT_QUERY},
        )
        latency = elapsed_ms(start)
        if not result.ok:
            return HealthCheckResult(
                source=self.name,
                healthy=False,
                latency_ms=latency,
                error=result.error.message,
            )

        payload = safe_json_parse(result.response.text)
        if not isinstance(payload, dict):
            payload = {}
        rate_limit = (payload.get("data") or {}).get("rateLimit") or {}
        remaining = rate_limit.get("remaining")
        healthy = not payload.get("errors") and remaining != 0
        return HealthCheckResult(
            source=self.name,
            healthy=healthy,
            latency_ms=latency,
            error=None if healthy else "GitHub GraphQL rate limit exhausted or errored",
            details={"remaining": remaining, "reset_at": rate_limit.get("resetAt")},
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

    def _date_threshold(self, period: Period) -> str:
        days = DAYS_LOOKBACK.get(period, DAYS_LOOKBACK["weekly"])
        threshold = datetime.now(timezone.utc) - timedelta(days=days)
        return threshold.strftime("%Y-%m-%d")

    def _build_search(self, date_filter: str, min_stars: int, language: str | None) -> str:
        """Build a GitHub search phrase.

        Args:
            date_filter: "created:>DATE" or "pushed:>DATE"
            min_stars: Minimum stargazer count
            language: Optional language filter

        Returns:
            Search phrase for the GraphQL search field
        """
        parts = [date_filter, f"stars:>{min_stars}"]
        if language:
            parts.append(f"language:{language}")
        return " ".join(parts)

    def _execute(self, search: str) -> list[Any]:
        """Run one search query and return its raw nodes.

        Raises:
            SourceError: If the request fails or GraphQL reports errors
        """
        result = self._fetch(
            "POST",
            self.GRAPHQL_URL,
            headers=self._headers(),
            json={"query": SEARCH_QUERY, "variables": {"searchQuery": search}},
        )
        response = result.raise_for_error(self.name)

        payload = safe_json_parse(response.text)
        if not isinstance(payload, dict):
            raise SourceError(
                source=self.name,
                error_type="parse_error",
                message="GitHub GraphQL returned a non-JSON body",
            )

        errors = payload.get("errors")
        if errors:
            messages = ", ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e)
                for e in errors
            )
            raise SourceError(
                source=self.name,
                error_type="client_error",
                message=f"GraphQL errors: {messages}",
            )

        data = payload.get("data") or {}
        try:
            if not isinstance(data, dict):
                raise TypeError("data is not an object")
            nodes = _nested_field(data, "search", "nodes", list)
        except TypeError as e:
            raise SourceError(
                source=self.name,
                error_type="parse_error",
                message=f"Unexpected GraphQL response shape: {e}",
            ) from e
        return nodes or []

    def _parse_nodes(self, nodes: list[Any]) -> tuple[list[TrendingRepo], int]:
        collected_at = utc_now()
        repos: list[TrendingRepo] = []
        invalid = 0
        for node in nodes:
            repo = self._parse_node(node, collected_at)
            if repo is None:
                invalid += 1
                continue
            if repo.is_archived or repo.is_fork:
                continue
            repos.append(repo)
        return repos, invalid

    def _parse_node(self, node: Any, collected_at: datetime) -> TrendingRepo | None:
        """Convert one GraphQL node, tolerating missing optional fields.

        Returns:
            TrendingRepo, or None when required fields are missing or invalid
        """
        if not isinstance(node, dict):
            return None

        full_name = node.get("nameWithOwner")
        if not isinstance(full_name, str) or "/" not in full_name:
            return None

        try:
            stars = int(node.get("stargazerCount") or 0)
            forks = int(node.get("forkCount") or 0)
            created_at = parse_iso_datetime(node.get("createdAt"))
            pushed_at = parse_iso_datetime(node.get("pushedAt"))
            language = _nested_field(node, "primaryLanguage", "name", str) or "Unknown"
            license_id = _nested_field(node, "licenseInfo", "spdxId", str)
            topic_nodes = _nested_field(node, "repositoryTopics", "nodes", list) or []
        except (TypeError, ValueError):
            return None

        topics = tuple(
            topic_node["topic"]["name"]
            for topic_node in topic_nodes
            if isinstance(topic_node, dict)
            and isinstance(topic_node.get("topic"), dict)
            and topic_node["topic"].get("name")
        )

        return TrendingRepo(
            full_name=full_name,
            name=node.get("name") or full_name.split("/")[-1],
            description=node.get("description") or "",
            language=language,
            url=node.get("url") or f"https://github.com/{full_name}",
            stars=stars,
            stars_gained=0,
            forks=forks,
            topics=topics,
            collected_at=collected_at,
            source=self.name,
            license=license_id,
            is_archived=bool(node.get("isArchived", False)),
            is_fork=bool(node.get("isFork", False)),
            created_at=created_at,
            pushed_at=pushed_at,
        )


def _nested_field(node: dict[str, Any], key: str, field: str, expected: type) -> Any:
    """Return node[key][field], or None when either level is absent.

    Raises:
        TypeError: If a present value has the wrong shape
    """
    container = node.get(key)
    if container is None:
        return None
    if not isinstance(container, dict):
        raise TypeError(f"{key} is not an object")
    value = container.get(field)
    if value is not None and not isinstance(value, expected):
        raise TypeError(f"{key}.{field} is not a {expected.__name__}")
    return value
