"""Shared community loop for the Reddit collectors."""

from abc import abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone

from ..config import CATEGORY_POSTS
from ..error_handling import RetryPolicy, sleep
from ..logging_config import get_logger
from ..models import CollectionResult, Period, RedditPost, SourceError
from .base import BaseCollector, CollectOptions
from .subreddits import MAX_POSTS_PER_SUBREDDIT, SubredditConfig, is_relevant, resolve_subreddits

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class RedditCollectorBase(BaseCollector):
    """Collects posts community by community, waiting between requests.

    A failing community is recorded as a warning and the next one is tried.
    The collection only fails when every requested community fails.
    """

    category = CATEGORY_POSTS

    def __init__(
        self,
        retry_policy: RetryPolicy | None = None,
        sleep_func: Callable[[float], None] = sleep,
        request_delay: float = 2.0,
    ) -> None:
        """Initialize the collector.

        Args:
            retry_policy: Retry schedule for feed requests
            sleep_func: Delay primitive
            request_delay: Seconds to wait between communities
        """
        super().__init__(retry_policy, sleep_func)
        self._request_delay = request_delay

    @abstractmethod
    def _fetch_subreddit(
        self, config: SubredditConfig, period: Period, query: str | None
    ) -> tuple[list[RedditPost], int]:
        """Fetch one community.

        Returns:
            Tuple of parsed posts and the number of invalid entries skipped

        Raises:
            SourceError: If the community cannot be fetched or parsed
        """

    def _collect(self, period: Period, options: CollectOptions) -> CollectionResult:
        configs, warnings = resolve_subreddits(options.subreddits)
        if not configs:
            raise SourceError(
                source=self.name,
                error_type="client_error",
                message="No configured subreddits to collect: " + "; ".join(warnings),
            )

        posts: list[RedditPost] = []
        failures: list[SourceError] = []
        skipped = 0

        for index, config in enumerate(configs):
            if index:
                self._sleep(self._request_delay)
            try:
                fetched, invalid = self._fetch_subreddit(config, period, options.query)
            except SourceError as e:
                logger.warning(
                    "subreddit_failed",
                    source=self.name,
                    subreddit=config.name,
                    error_type=e.error_type,
                    error=e.message,
                )
                failures.append(e)
                warnings.append(f"{config.name}: {e.message}")
                continue

            skipped += invalid
            if not options.query:
                fetched = [p for p in fetched if is_relevant(config, p.title, p.content)]
            posts.extend(fetched[:MAX_POSTS_PER_SUBREDDIT])
            logger.debug(
                "subreddit_collected",
                source=self.name,
                subreddit=config.name,
                relevant=min(len(fetched), MAX_POSTS_PER_SUBREDDIT),
            )

        if len(failures) == len(configs):
            raise SourceError(
                source=self.name,
                error_type=failures[-1].error_type,
                message="All subreddits failed: " + "; ".join(warnings),
            )

        unique: dict[str, RedditPost] = {}
        for post in posts:
            unique.setdefault(post.url or post.id, post)
        result = sorted(
            unique.values(), key=lambda p: p.published_at or _EPOCH, reverse=True
        )
        if options.limit is not None:
            result = result[: options.limit]

        logger.info(
            "collection_succeeded",
            source=self.name,
            period=period,
            count=len(result),
            failed_subreddits=len(failures),
        )
        return CollectionResult.ok(self.name, result, skipped=skipped, warnings=warnings)
