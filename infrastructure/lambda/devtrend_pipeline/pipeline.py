"""Wiring of collectors, storage, orchestrator and report generator."""

from collections.abc import Callable
from dataclasses import dataclass

from .collectors import (
    BaseCollector,
    GitHubGraphQLCollector,
    GitHubTrendingCollector,
    RedditJSONCollector,
    RedditRSSCollector,
    StaticFallbackCollector,
)
from .config import (
    CATEGORY_POSTS,
    CATEGORY_REPOS,
    ExternalAPIConfig,
    PipelineConfig,
    StorageConfig,
)
from .error_handling import RetryPolicy, sleep
from .health_cache import HealthCache
from .logging_config import get_logger
from .orchestrator import FallbackOrchestrator
from .report import ReportGenerator
from .storage import RetentionPolicy, TrendStorage, create_store

logger = get_logger(__name__)


@dataclass
class TrendPipeline:
    """A fully wired pipeline instance."""

    orchestrator: FallbackOrchestrator
    storage: TrendStorage
    generator: ReportGenerator
    health_cache: HealthCache
    config: PipelineConfig

    def retention_policy(self) -> RetentionPolicy:
        return RetentionPolicy(keep_latest=self.config.retention_weeks)


def build_sources(
    api_config: ExternalAPIConfig,
    pipeline_config: PipelineConfig,
    sleep_func: Callable[[float], None] = sleep,
) -> dict[str, list[BaseCollector]]:
    """Build the priority-ordered collectors for each category.

    The official GraphQL source is only included when a token is configured,
    and the static source only when the static fallback is enabled.

    Args:
        api_config: External API credentials
        pipeline_config: Pipeline tuning
        sleep_func: Delay primitive shared by every collector

    Returns:
        Category to priority-ordered collectors
    """
    policy = RetryPolicy(
        max_attempts=pipeline_config.retry_max_attempts,
        base_delay=pipeline_config.retry_base_delay,
    )

    repos: list[BaseCollector] = []
    if api_config.github_access_token:
        repos.append(
            GitHubGraphQLCollector(
                api_config.github_access_token,
                retry_policy=policy,
                sleep_func=sleep_func,
                language_delay=pipeline_config.inter_request_delay,
            )
        )
    repos.append(GitHubTrendingCollector(retry_policy=policy, sleep_func=sleep_func))
    if pipeline_config.use_static_fallback:
        repos.append(StaticFallbackCollector())

    posts: list[BaseCollector] = [
        RedditRSSCollector(
            retry_policy=policy,
            sleep_func=sleep_func,
            request_delay=pipeline_config.inter_request_delay,
        ),
        RedditJSONCollector(
            retry_policy=policy,
            sleep_func=sleep_func,
            request_delay=pipeline_config.inter_request_delay,
        ),
    ]

    return {CATEGORY_REPOS: repos, CATEGORY_POSTS: posts}


def build_pipeline(
    storage_config: StorageConfig,
    api_config: ExternalAPIConfig,
    pipeline_config: PipelineConfig | None = None,
    sleep_func: Callable[[float], None] = sleep,
) -> TrendPipeline:
    """Create and configure a TrendPipeline.

    Args:
        storage_config: Storage backend configuration
        api_config: External API credentials
        pipeline_config: Pipeline tuning (defaults to PipelineConfig())
        sleep_func: Delay primitive

    Returns:
        TrendPipeline ready to generate reports
    """
    pipeline_config = pipeline_config or PipelineConfig()

    storage = TrendStorage(create_store(storage_config))
    health_cache = HealthCache(ttl_seconds=pipeline_config.health_ttl_seconds)
    sources = build_sources(api_config, pipeline_config, sleep_func)
    orchestrator = FallbackOrchestrator(
        sources=sources,
        storage=storage,
        health_cache=health_cache,
        config=pipeline_config,
    )
    generator = ReportGenerator(
        orchestrator=orchestrator,
        storage=storage,
        config=pipeline_config,
        sleep_func=sleep_func,
    )

    logger.info(
        "pipeline_built",
        backend=storage_config.backend,
        sources={category: [c.name for c in collectors] for category, collectors in sources.items()},
    )
    return TrendPipeline(
        orchestrator=orchestrator,
        storage=storage,
        generator=generator,
        health_cache=health_cache,
        config=pipeline_config,
    )
