"""Reddit JSON collector (unofficial listing endpoints, no auth)."""

from datetime import datetime
from typing import Any

from ..error_handling import lenient_json_parse
from ..models import HealthCheckResult, Period, RedditPost, SourceError, utc_now
from .reddit_base import RedditCollectorBase
from .subreddits import (
    MAX_CONTENT_LENGTH,
    REDDIT_BASE_URL,
    REDDIT_TIME_FILTER,
    SubredditConfig,
    parse_timestamp,
)


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class RedditJSONCollector(RedditCollectorBase):
    """Collector for posts from Reddit's public listing JSON.

    Unlike the feeds, listings expose score and comment counts.
    """

    LISTING_LIMIT = 50
    SEARCH_LIMIT = 25

    name = "reddit-json"

    def health_check(self) -> HealthCheckResult:
        return self._probe(
            "GET", f"{REDDIT_BASE_URL}/r/programming/about.json"
        )

    def _fetch_subreddit(
        self, config: SubredditConfig, period: Period, query: str | None
    ) -> tuple[list[RedditPost], int]:
        time_filter = REDDIT_TIME_FILTER.get(period, "week")
        if query:
            url = f"{REDDIT_BASE_URL}/r/{config.name}/search.json"
            params = {
                "q": query,
                "restrict_sr": 1,
                "sort": "relevance",
                "t": time_filter,
                "limit": self.SEARCH_LIMIT,
            }
        else:
            url = f"{REDDIT_BASE_URL}/r/{config.name}/top.json"
            params = {"t": time_filter, "limit": self.LISTING_LIMIT}

        response = self._fetch("GET", url, params=params).raise_for_error(self.name)

        payload = lenient_json_parse(response.text)
        listing = payload.get("data") if isinstance(payload, dict) else None
        children = listing.get("children") if isinstance(listing, dict) else None
        if not isinstance(children, list):
            raise SourceError(
                source=self.name,
                error_type="parse_error",
                message=f"Unexpected listing shape for r/{config.name}",
            )

        collected_at = utc_now()
        posts: list[RedditPost] = []
        skipped = 0
        for child in children:
            post = self._parse_child(child, config.name, collected_at)
            if post is None:
                skipped += 1
            else:
                posts.append(post)
        return posts, skipped

    def _parse_child(
        self, child: Any, subreddit: str, collected_at: datetime
    ) -> RedditPost | None:
        data = child.get("data") if isinstance(child, dict) else None
        if not isinstance(data, dict):
            return None

        post_id = data.get("name") or data.get("id")
        title = data.get("title")
        if not post_id or not isinstance(title, str) or not title.strip():
            return None
        selftext = data.get("selftext")
        if not isinstance(selftext, str):
            selftext = ""

        permalink = data.get("permalink")
        url = f"{REDDIT_BASE_URL}{permalink}" if permalink else data.get("url") or ""

        return RedditPost(
            id=str(post_id),
            title=title.strip(),
            subreddit=data.get("subreddit") or subreddit,
            score=_count(data.get("score")),
            comment_count=_count(data.get("num_comments")),
            url=url,
            published_at=parse_timestamp(data.get("created_utc")),
            author=data.get("author") or "unknown",
            content=" ".join(selftext.split())[:MAX_CONTENT_LENGTH],
            collected_at=collected_at,
            source=self.name,
        )
