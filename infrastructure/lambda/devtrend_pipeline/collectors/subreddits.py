"""Community configuration shared by the Reddit collectors."""

from dataclasses import dataclass
from datetime import datetime, timezone

from dateutil.parser import parse as parse_date
from lxml import etree
from lxml import html as lxml_html

REDDIT_BASE_URL = "https://www.reddit.com"
MAX_POSTS_PER_SUBREDDIT = 15
MAX_CONTENT_LENGTH = 500

# Reddit's "t" parameter for each collection period
REDDIT_TIME_FILTER: dict[str, str] = {"daily": "day", "weekly": "week", "monthly": "month"}


@dataclass(frozen=True)
class SubredditConfig:
    """A community to watch and the keywords that make a post relevant."""

    name: str
    relevant_keywords: tuple[str, ...]


SUBREDDIT_CONFIGS: dict[str, SubredditConfig] = {
    config.name: config
    for config in (
        SubredditConfig(
            "programming",
            (
                "json", "api", "convert", "format", "encode", "decode", "tool",
                "utility", "developer", "productivity", "cli", "library", "framework",
            ),
        ),
        SubredditConfig(
            "webdev",
            (
                "tool", "utility", "developer", "productivity", "javascript",
                "typescript", "react", "nextjs", "frontend", "backend",
            ),
        ),
        SubredditConfig(
            "javascript",
            (
                "json", "typescript", "npm", "package", "library", "tool",
                "utility", "node", "react", "vue",
            ),
        ),
        SubredditConfig(
            "typescript",
            ("type", "utility", "tool", "library", "framework", "compiler", "config"),
        ),
        SubredditConfig(
            "node",
            (
                "npm", "package", "cli", "tool", "utility", "api", "server",
                "express", "fastify",
            ),
        ),
        SubredditConfig(
            "learnprogramming",
            ("beginner", "learn", "tutorial", "help", "question", "resource", "tool"),
        ),
    )
}


def resolve_subreddits(
    names: tuple[str, ...] | list[str] | None,
) -> tuple[list[SubredditConfig], list[str]]:
    """Look up the requested communities.

    Args:
        names: Community names, or None for every configured community

    Returns:
        Tuple of known configurations and warnings for unknown names
    """
    if names is None:
        return list(SUBREDDIT_CONFIGS.values()), []

    configs: list[SubredditConfig] = []
    warnings: list[str] = []
    for name in names:
        config = SUBREDDIT_CONFIGS.get(name.lower().removeprefix("r/"))
        if config is None:
            warnings.append(f"{name}: subreddit is not configured")
        else:
            configs.append(config)
    return configs, warnings


def is_relevant(config: SubredditConfig, title: str, content: str) -> bool:
    text = f"{title} {content}".lower()
    return any(keyword in text for keyword in config.relevant_keywords)


def html_to_text(markup: str | None) -> str:
    """Reduce an HTML fragment to whitespace-normalized text."""
    if not markup or not markup.strip():
        return ""
    try:
        fragment = lxml_html.fromstring(markup)
    except (etree.ParserError, ValueError):
        return " ".join(markup.split())
    for node in fragment.xpath(".//script|.//style"):
        node.drop_tree()
    return " ".join(fragment.text_content().split())


def parse_timestamp(value: str | float | int | None) -> datetime | None:
    """Parse an RFC 822/ISO date string or epoch seconds into UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        parsed = parse_date(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
