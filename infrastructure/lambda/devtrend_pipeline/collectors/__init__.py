"""Source collectors for the DevTrend pipeline.

This module provides collectors for trending repositories and posts:
- GitHubGraphQLCollector: Official GitHub GraphQL search (token required)
- GitHubTrendingCollector: Unofficial trending API with page scrape fallback
- RedditJSONCollector: Reddit listing JSON
- RedditRSSCollector: Reddit community feeds
- StaticFallbackCollector: Evergreen repositories, never fails
"""

from .base import BaseCollector, CollectOptions
from .github_graphql import GitHubGraphQLCollector
from .github_trending import GitHubTrendingCollector
from .reddit_json import RedditJSONCollector
from .reddit_rss import RedditRSSCollector
from .static import StaticFallbackCollector

__all__ = [
    "BaseCollector",
    "CollectOptions",
    "GitHubGraphQLCollector",
    "GitHubTrendingCollector",
    "RedditJSONCollector",
    "RedditRSSCollector",
    "StaticFallbackCollector",
]
