"""Reddit RSS collector for developer community posts."""

from datetime import datetime
from typing import Any

import feedparser

from ..models import HealthCheckResult, Period, RedditPost, SourceError, utc_now
from .reddit_base import RedditCollectorBase
from .subreddits import (
    MAX_CONTENT_LENGTH,
    REDDIT_BASE_URL,
    REDDIT_TIME_FILTER,
    SubredditConfig,
    html_to_text,
    parse_timestamp,
)

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml"


class RedditRSSCollector(RedditCollectorBase):
    """Collector for posts from Reddit community feeds.

    Reads each community's top.rss (or search.rss for a query) and parses
    it with feedparser. Feeds carry no score, so posts have score 0.
    """

    FEED_LIMIT = 50
    SEARCH_LIMIT = 25

    name = "reddit-rss"

    def health_check(self) -> HealthCheckResult:
        return self._probe(
            "GET",
            f"{REDDIT_BASE_URL}/r/programming/top.rss",
            params={"limit": 1},
            headers={"Accept": FEED_ACCEPT},
        )

    def _build_request(
        self, config: SubredditConfig, period: Period, query: str | None
    ) -> tuple[str, dict[str, Any]]:
        time_filter = REDDIT_TIME_FILTER.get(period, "week")
        if query:
            return f"{REDDIT_BASE_URL}/r/{config.name}/search.rss", {
                "q": query,
                "restrict_sr": "on",
                "sort": "relevance",
                "t": time_filter,
                "limit": self.SEARCH_LIMIT,
            }
        return f"{REDDIT_BASE_URL}/r/{config.name}/top.rss", {
            "t": time_filter,
            "limit": self.FEED_LIMIT,
        }

    def _fetch_subreddit(
        self, config: SubredditConfig, period: Period, query: str | None
    ) -> tuple[list[RedditPost], int]:
        url, params = self._build_request(config, period, query)
        response = self._fetch(
            "GET", url, params=params, headers={"Accept": FEED_ACCEPT}
        ).raise_for_error(self.name)

        feed = feedparser.parse(response.content)
        if feed.bozo and not feed.entries:
            raise SourceError(
                source=self.name,
                error_type="parse_error",
                message=f"Unreadable feed for r/{config.name}: {feed.get('bozo_exception')}",
            )

        collected_at = utc_now()
        posts: list[RedditPost] = []
        skipped = 0
        for entry in feed.entries:
            post = self._parse_entry(entry, config.name, collected_at)
            if post is None:
                skipped += 1
            else:
                posts.append(post)
        return posts, skipped

    def _parse_entry(
        self, entry: Any, subreddit: str, collected_at: datetime
    ) -> RedditPost | None:
        """Convert one feed entry.

        Args:
            entry: feedparser entry
            subreddit: Community the feed belongs to
            collected_at: Collection timestamp shared by the batch

        Returns:
            RedditPost, or None when the entry has no link or title
        """
        link = entry.get("link")
        title = (entry.get("title") or "").strip()
        if not link or not title:
            return None

        contents = entry.get("content") or []
        markup = contents[0].get("value") if contents else entry.get("summary")
        author = (entry.get("author") or "").strip().removeprefix("/u/")

        return RedditPost(
            id=entry.get("id") or link,
            title=title,
            subreddit=subreddit,
            score=0,
            comment_count=0,
            url=link,
            published_at=parse_timestamp(entry.get("published") or entry.get("updated")),
            author=author or "unknown",
            content=html_to_text(markup)[:MAX_CONTENT_LENGTH],
            collected_at=collected_at,
            source=self.name,
        )
