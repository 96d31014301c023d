"""Pure filtering and ranking helpers for collected repositories."""

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from ..models import TrendingRepo

T = TypeVar("T")

TOOL_KEYWORDS: tuple[str, ...] = (
    "tool",
    "cli",
    "utility",
    "converter",
    "formatter",
    "generator",
    "validator",
    "encoder",
    "decoder",
    "parser",
    "linter",
    "analyzer",
    "builder",
    "bundler",
    "compiler",
    "debugger",
    "profiler",
    "monitor",
    "dashboard",
)

TOOL_TOPICS: frozenset[str] = frozenset(
    {
        "cli",
        "tool",
        "utility",
        "developer-tools",
        "devtools",
        "command-line",
        "terminal",
        "productivity",
        "automation",
        "build-tool",
        "linter",
        "formatter",
        "converter",
        "generator",
        "parser",
        "compiler",
    }
)


def _search_text(repo: TrendingRepo) -> str:
    return f"{repo.name} {repo.description}".lower()


def filter_by_keywords(
    repos: Iterable[TrendingRepo], keywords: Iterable[str]
) -> list[TrendingRepo]:
    """Keep repositories whose name or description mentions any keyword."""
    lowered = [k.lower() for k in keywords]
    return [r for r in repos if any(k in _search_text(r) for k in lowered)]


def filter_developer_tools(repos: Iterable[TrendingRepo]) -> list[TrendingRepo]:
    return filter_by_keywords(repos, TOOL_KEYWORDS)


def filter_developer_tools_by_topics(repos: Iterable[TrendingRepo]) -> list[TrendingRepo]:
    """Keep repositories tagged with a tooling topic or described as one.

    Args:
        repos: Repositories to filter

    Returns:
        Repositories matching a tooling topic or keyword, in input order
    """
    result = []
    for repo in repos:
        text = _search_text(repo)
        if any(t.lower() in TOOL_TOPICS for t in repo.topics) or any(
            keyword in text for keyword in TOOL_TOPICS
        ):
            result.append(repo)
    return result


def top_by(items: Iterable[T], key: Callable[[T], Any], limit: int = 10) -> list[T]:
    """Return the top ``limit`` items by a sort key, highest first.

    The sort is stable, so ties keep their input order.
    """
    return sorted(items, key=key, reverse=True)[: max(limit, 0)]


def top_by_stars(repos: Iterable[TrendingRepo], limit: int = 10) -> list[TrendingRepo]:
    return top_by(repos, lambda r: r.stars, limit)


def top_by_stars_gained(
    repos: Iterable[TrendingRepo], limit: int = 10
) -> list[TrendingRepo]:
    return top_by(repos, lambda r: r.stars_gained, limit)


def partition_by_language(repos: Iterable[TrendingRepo]) -> dict[str, list[TrendingRepo]]:
    """Group repositories by lower-cased primary language, keeping input order."""
    groups: dict[str, list[TrendingRepo]] = {}
    for repo in repos:
        groups.setdefault(repo.language.lower(), []).append(repo)
    return groups
