"""Tests for source collectors."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from devtrend_pipeline.collectors import (
    CollectOptions,
    GitHubGraphQLCollector,
    GitHubTrendingCollector,
    RedditJSONCollector,
    RedditRSSCollector,
    StaticFallbackCollector,
)
from devtrend_pipeline.collectors.filters import (
    filter_developer_tools,
    filter_developer_tools_by_topics,
    partition_by_language,
    top_by,
    top_by_stars_gained,
)
from devtrend_pipeline.collectors.subreddits import (
    html_to_text,
    parse_timestamp,
    resolve_subreddits,
)
from devtrend_pipeline.error_handling import RetryPolicy
from devtrend_pipeline.models import TrendingRepo

COLLECTED_AT = datetime(2026, 1, 5, tzinfo=timezone.utc)


def make_response(status_code: int = 200, text: str = "", headers: dict | None = None) -> MagicMock:
    """Helper to create a mock HTTP response."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.text = text
    response.content = text.encode("utf-8")
    return response


def make_repo(full_name: str, **overrides) -> TrendingRepo:
    fields = {
        "full_name": full_name,
        "name": full_name.split("/")[-1],
        "description": "",
        "language": "Python",
        "url": f"https://github.com/{full_name}",
        "stars": 100,
        "stars_gained": 0,
        "forks": 0,
        "topics": (),
        "collected_at": COLLECTED_AT,
        "source": "github-graphql",
    }
    fields.update(overrides)
    return TrendingRepo(**fields)


def graphql_node(full_name: str, stars: int, **overrides) -> dict:
    node = {
        "name": full_name.split("/")[-1],
        "nameWithOwner": full_name,
        "description": f"{full_name} description",
        "url": f"https://github.com/{full_name}",
        "stargazerCount": stars,
        "forkCount": 10,
        "primaryLanguage": {"name": "Python"},
        "createdAt": "2026-01-01T10:00:00Z",
        "pushedAt": "2026-01-04T10:00:00Z",
        "isArchived": False,
        "isFork": False,
        "licenseInfo": {"spdxId": "MIT"},
        "repositoryTopics": {"nodes": [{"topic": {"name": "cli"}}]},
    }
    node.update(overrides)
    return node


def graphql_response(nodes: list) -> MagicMock:
    payload = {"data": {"search": {"repositoryCount": len(nodes), "nodes": nodes}}}
    return make_response(text=json.dumps(payload))


TRENDING_PAGE = """
<html><body>
<article class="Box-row">
  <h2 class="h3 lh-condensed">
    <a href="/astral-sh/uv"> astral-sh / <span>uv</span></a>
  </h2>
  <p class="col-9 color-fg-muted">
    An extremely fast Python package and project manager.
  </p>
  <div class="f6 color-fg-muted mt-2">
    <span itemprop="programmingLanguage">Rust</span>
    <a href="/astral-sh/uv/stargazers"> 45,210</a>
    <a href="/astral-sh/uv/forks"> 1,302</a>
    <span class="d-inline-block float-sm-right">1,024 stars this week</span>
  </div>
</article>
<article class="Box-row">
  <h2 class="h3 lh-condensed"><span>Sponsored</span></h2>
</article>
</body></html>
"""

ATOM_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>top scoring links : programming</title>
  <entry>
    <author><name>/u/rustacean</name></author>
    <content type="html">&lt;p&gt;I wrote a CLI tool that formats logs.&lt;/p&gt;</content>
    <id>t3_first</id>
    <link href="https://www.reddit.com/r/programming/comments/first/cli_tool/"/>
    <updated>2026-01-04T09:00:00+00:00</updated>
    <published>2026-01-04T09:00:00+00:00</published>
    <title>Show: a CLI tool for structured logs</title>
  </entry>
  <entry>
    <author><name>/u/chatty</name></author>
    <content type="html">&lt;p&gt;What is everyone up to?&lt;/p&gt;</content>
    <id>t3_second</id>
    <link href="https://www.reddit.com/r/programming/comments/second/weekly/"/>
    <published>2026-01-05T09:00:00+00:00</published>
    <title>Weekly off-topic thread</title>
  </entry>
</feed>
"""


def reddit_listing(children: list[dict]) -> MagicMock:
    payload = {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": c} for c in children]}}
    return make_response(text=json.dumps(payload))


class TestGitHubGraphQLCollector:
    """Test GitHubGraphQLCollector."""

    def test_collect_without_token_fails_not_configured(self) -> None:
        """A missing token is a not_configured failure, with no request."""
        with patch("requests.request") as mock_request:
            result = GitHubGraphQLCollector(access_token=None).collect()

        mock_request.assert_not_called()
        assert not result.success
        assert result.error.error_type == "not_configured"

    def test_collect_merges_both_searches(self) -> None:
        """New and active searches are merged, deduplicated and sorted by stars."""
        responses = [
            graphql_response(
                [graphql_node("acme/new-tool", 300), graphql_node("acme/shared", 2000)]
            ),
            graphql_response(
                [graphql_node("acme/shared", 2000), graphql_node("big/framework", 90000)]
            ),
        ]
        collector = GitHubGraphQLCollector(
            access_token="token", retry_policy=RetryPolicy.no_delay(), sleep_func=MagicMock()
        )

        with patch("requests.request", side_effect=responses) as mock_request:
            result = collector.collect("weekly")

        assert mock_request.call_count == 2
        assert result.success
        assert result.source == "github-graphql"
        assert [r.full_name for r in result.data] == [
            "big/framework",
            "acme/shared",
            "acme/new-tool",
        ]
        repo = result.data[0]
        assert repo.topics == ("cli",)
        assert repo.license == "MIT"
        assert repo.stars_gained == 0
        assert repo.created_at == datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_collect_sends_language_filter_and_token(self) -> None:
        """The language filter ends up in the search variables."""
        collector = GitHubGraphQLCollector(
            access_token="secret", retry_policy=RetryPolicy.no_delay(), sleep_func=MagicMock()
        )

        with patch("requests.request", return_value=graphql_response([])) as mock_request:
            collector.collect("daily", CollectOptions(language="python"))

        first_call = mock_request.call_args_list[0]
        search = first_call[1]["json"]["variables"]["searchQuery"]
        assert search.startswith("created:>")
        assert "stars:>50" in search
        assert "language:python" in search
        assert first_call[1]["headers"]["Authorization"] == "Bearer secret"
        second_search = mock_request.call_args_list[1][1]["json"]["variables"]["searchQuery"]
        assert second_search.startswith("pushed:>")
        assert "stars:>1000" in second_search

    def test_collect_skips_invalid_archived_and_forked_nodes(self) -> None:
        """Invalid nodes count as skipped; archived and forks are dropped."""
        nodes = [
            graphql_node("ok/repo", 500),
            graphql_node("old/repo", 800, isArchived=True),
            graphql_node("fork/repo", 900, isFork=True),
            {"nameWithOwner": None},
            "not a node",
            graphql_node("bad/stars", 1, stargazerCount="many"),
        ]
        collector = GitHubGraphQLCollector(
            access_token="token", retry_policy=RetryPolicy.no_delay(), sleep_func=MagicMock()
        )

        with patch(
            "requests.request", side_effect=[graphql_response(nodes), graphql_response([])]
        ):
            result = collector.collect()

        assert [r.full_name for r in result.data] == ["ok/repo"]
        assert result.skipped == 3

    def test_collect_skips_nodes_with_malformed_nested_fields(self) -> None:
        """A wrongly shaped nested field skips that node only."""
        nodes = [
            graphql_node("a/b", 500),
            graphql_node("c/d", 400, primaryLanguage="Python"),
            graphql_node("e/f", 300, licenseInfo=["MIT"]),
            graphql_node("g/h", 200, repositoryTopics={"nodes": "cli"}),
            graphql_node("i/j", 100, primaryLanguage=None, licenseInfo=None),
        ]
        collector = GitHubGraphQLCollector(
            access_token="token", retry_policy=RetryPolicy.no_delay(), sleep_func=MagicMock()
        )

        with patch(
            "requests.request", side_effect=[graphql_response(nodes), graphql_response([])]
        ):
            result = collector.collect()

        assert [r.full_name for r in result.data] == ["a/b", "i/j"]
        assert result.skipped == 3
        assert result.data[1].language == "Unknown"
        assert result.data[1].license is None

    def test_collect_graphql_errors_fail(self) -> None:
        """A GraphQL errors payload is a client_error failure."""
        body = json.dumps({"errors": [{"message": "Bad credentials"}]})
        collector = GitHubGraphQLCollector(
            access_token="token", retry_policy=RetryPolicy.no_delay(), sleep_func=MagicMock()
        )

        with patch("requests.request", return_value=make_response(text=body)):
            result = collector.collect()

        assert result.error.error_type == "client_error"
        assert "Bad credentials" in result.error.message

    def test_collect_rate_limited_fails_after_retries(self) -> None:
        """A persistent 429 ends in a rate_limit failure."""
        collector = GitHubGraphQLCollector(
            access_token="token", retry_policy=RetryPolicy.no_delay(2), sleep_func=MagicMock()
        )

        with patch("requests.request", return_value=make_response(429)) as mock_request:
            result = collector.collect()

        assert mock_request.call_count == 2
        assert result.error.error_type == "rate_limit"

    def test_collect_multi_language_waits_between_languages(self) -> None:
        """Each language is collected separately with a delay in between."""
        sleep = MagicMock()
        collector = GitHubGraphQLCollector(
            access_token="token",
            retry_policy=RetryPolicy.no_delay(),
            sleep_func=sleep,
            language_delay=2.0,
        )

        with patch("requests.request", return_value=graphql_response([])):
            results = collector.collect_multi_language(["python", "go"])

        assert list(results) == ["python", "go"]
        sleep.assert_called_once_with(2.0)

    def test_health_check_reports_remaining_quota(self) -> None:
        """A positive remaining quota is healthy."""
        body = json.dumps(
            {"data": {"rateLimit": {"remaining": 4999, "resetAt": "2026-01-05T13:00:00Z"}}}
        )
        collector = GitHubGraphQLCollector(access_token="token")

        with patch("requests.request", return_value=make_response(text=body)) as mock_request:
            result = collector.health_check()

        assert mock_request.call_count == 1
        assert mock_request.call_args[1]["timeout"] == 5
        assert result.healthy
        assert result.details["remaining"] == 4999

    def test_health_check_exhausted_quota_is_unhealthy(self) -> None:
        """Zero remaining quota is unhealthy."""
        body = json.dumps({"data": {"rateLimit": {"remaining": 0, "resetAt": None}}})
        collector = GitHubGraphQLCollector(access_token="token")

        with patch("requests.request", return_value=make_response(text=body)):
            result = collector.health_check()

        assert not result.healthy

    def test_health_check_without_token(self) -> None:
        """A missing token is unhealthy without a request."""
        with patch("requests.request") as mock_request:
            result = GitHubGraphQLCollector(access_token="").health_check()

        mock_request.assert_not_called()
        assert not result.healthy


class TestGitHubTrendingCollector:
    """Test GitHubTrendingCollector."""

    def test_collect_from_api(self) -> None:
        """The trending API is used when it returns repositories."""
        body = json.dumps(
            [
                {
                    "author": "astral-sh",
                    "name": "uv",
                    "description": "Fast package manager",
                    "language": "Rust",
                    "stars": 45210,
                    "forks": "1,302",
                    "currentPeriodStars": 1024,
                },
                {"name": "missing-author"},
            ]
        )
        collector = GitHubTrendingCollector(retry_policy=RetryPolicy.no_delay(1))

        with patch("requests.request", return_value=make_response(text=body)) as mock_request:
            result = collector.collect("weekly", CollectOptions(language="rust"))

        assert mock_request.call_count == 1
        assert mock_request.call_args[0][1] == "https://api.gitterapp.com/repositories"
        assert mock_request.call_args[1]["params"] == {"since": "weekly", "language": "rust"}
        assert result.source == "github-api"
        assert result.skipped == 1
        repo = result.data[0]
        assert repo.full_name == "astral-sh/uv"
        assert repo.stars_gained == 1024
        assert repo.forks == 1302

    def test_collect_falls_back_to_page_scrape(self) -> None:
        """An empty API response falls through to scraping the page."""
        responses = [make_response(text="[]"), make_response(text=TRENDING_PAGE)]
        collector = GitHubTrendingCollector(retry_policy=RetryPolicy.no_delay(1))

        with patch("requests.request", side_effect=responses) as mock_request:
            result = collector.collect("weekly")

        assert mock_request.call_args[0][1] == "https://github.com/trending"
        assert result.success
        assert result.source == "github-scrape"
        assert result.skipped == 1
        assert result.data[0].full_name == "astral-sh/uv"

    def test_api_failure_becomes_warning(self) -> None:
        """A failing API is reported as a warning when the scrape works."""
        responses = [make_response(500), make_response(text=TRENDING_PAGE)]
        collector = GitHubTrendingCollector(retry_policy=RetryPolicy.no_delay(1))

        with patch("requests.request", side_effect=responses):
            result = collector.collect("weekly")

        assert result.success
        assert result.warnings
        assert "trending API unavailable" in result.warnings[0]

    def test_collect_fails_when_both_paths_are_empty(self) -> None:
        """No repositories from either path is a parse_error failure."""
        responses = [make_response(text="<html>oops</html>"), make_response(text="<html></html>")]
        collector = GitHubTrendingCollector(retry_policy=RetryPolicy.no_delay(1))

        with patch("requests.request", side_effect=responses):
            result = collector.collect("weekly")

        assert result.error.error_type == "parse_error"

    def test_parse_trending_html(self) -> None:
        """Rows are parsed into repositories; rows without a link are skipped."""
        repos, skipped = GitHubTrendingCollector().parse_trending_html(TRENDING_PAGE)

        assert skipped == 1
        assert len(repos) == 1
        repo = repos[0]
        assert repo.full_name == "astral-sh/uv"
        assert repo.name == "uv"
        assert repo.description == "An extremely fast Python package and project manager."
        assert repo.language == "Rust"
        assert repo.stars == 45210
        assert repo.forks == 1302
        assert repo.stars_gained == 1024

    def test_parse_trending_html_empty(self) -> None:
        """Blank pages yield nothing."""
        assert GitHubTrendingCollector().parse_trending_html("   ") == ([], 0)


class TestRedditRSSCollector:
    """Test RedditRSSCollector."""

    def test_collect_parses_feed_and_filters_relevance(self) -> None:
        """Relevant entries become posts; off-topic entries are dropped."""
        collector = RedditRSSCollector(retry_policy=RetryPolicy.no_delay(1), sleep_func=MagicMock())

        with patch("requests.request", return_value=make_response(text=ATOM_FEED)) as mock_request:
            result = collector.collect("weekly", CollectOptions(subreddits=("programming",)))

        assert mock_request.call_args[0][1] == "https://www.reddit.com/r/programming/top.rss"
        assert mock_request.call_args[1]["params"] == {"t": "week", "limit": 50}
        assert result.success
        assert result.source == "reddit-rss"
        assert len(result.data) == 1
        post = result.data[0]
        assert post.title == "Show: a CLI tool for structured logs"
        assert post.author == "rustacean"
        assert post.content == "I wrote a CLI tool that formats logs."
        assert post.score == 0
        assert post.subreddit == "programming"
        assert post.published_at == datetime(2026, 1, 4, 9, 0, tzinfo=timezone.utc)

    def test_query_uses_search_feed_and_skips_keyword_filter(self) -> None:
        """A query searches the community and keeps every entry."""
        collector = RedditRSSCollector(retry_policy=RetryPolicy.no_delay(1), sleep_func=MagicMock())

        with patch("requests.request", return_value=make_response(text=ATOM_FEED)) as mock_request:
            result = collector.collect(
                "monthly", CollectOptions(subreddits=("programming",), query="logs")
            )

        assert mock_request.call_args[0][1] == "https://www.reddit.com/r/programming/search.rss"
        params = mock_request.call_args[1]["params"]
        assert params["q"] == "logs"
        assert params["t"] == "month"
        assert len(result.data) == 2
        # newest first
        assert result.data[0].title == "Weekly off-topic thread"

    def test_one_failing_community_is_a_warning(self) -> None:
        """A failing community does not fail the collection."""
        sleep = MagicMock()
        collector = RedditRSSCollector(
            retry_policy=RetryPolicy.no_delay(1), sleep_func=sleep, request_delay=2.0
        )
        responses = [make_response(503), make_response(text=ATOM_FEED)]

        with patch("requests.request", side_effect=responses):
            result = collector.collect(
                "weekly", CollectOptions(subreddits=("webdev", "programming"))
            )

        assert result.success
        assert len(result.data) == 1
        assert result.warnings[0].startswith("webdev:")
        sleep.assert_called_once_with(2.0)

    def test_all_communities_failing_fails(self) -> None:
        """When every community fails the collection fails."""
        collector = RedditRSSCollector(retry_policy=RetryPolicy.no_delay(1), sleep_func=MagicMock())

        with patch("requests.request", return_value=make_response(503)):
            result = collector.collect(
                "weekly", CollectOptions(subreddits=("webdev", "programming"))
            )

        assert not result.success
        assert result.error.error_type == "server_error"
        assert result.error.message.startswith("All subreddits failed")

    def test_unreadable_feed_is_parse_error(self) -> None:
        """A feed feedparser cannot read is a parse_error."""
        broken = MagicMock(bozo=1, entries=[])
        collector = RedditRSSCollector(retry_policy=RetryPolicy.no_delay(1), sleep_func=MagicMock())

        with (
            patch("requests.request", return_value=make_response(text="garbage")),
            patch("feedparser.parse", return_value=broken),
        ):
            result = collector.collect("weekly", CollectOptions(subreddits=("programming",)))

        assert result.error.error_type == "parse_error"

    def test_unknown_communities_fail_without_requests(self) -> None:
        """Only unconfigured communities is a client_error."""
        with patch("requests.request") as mock_request:
            result = RedditRSSCollector().collect(
                "weekly", CollectOptions(subreddits=("cooking",))
            )

        mock_request.assert_not_called()
        assert result.error.error_type == "client_error"
        assert "cooking" in result.error.message


class TestRedditJSONCollector:
    """Test RedditJSONCollector."""

    def test_collect_parses_listing(self) -> None:
        """Listing children become posts with score and comments."""
        listing = reddit_listing(
            [
                {
                    "name": "t3_a",
                    "title": "New TypeScript library for JSON schemas",
                    "subreddit": "javascript",
                    "score": 120,
                    "num_comments": 30,
                    "permalink": "/r/javascript/comments/a/new_typescript_library/",
                    "created_utc": 1767600000,
                    "author": "dev1",
                    "selftext": "It  validates\n\nJSON",
                },
                {
                    "name": "t3_b",
                    "title": "React 20 released",
                    "score": 900,
                    "num_comments": 200,
                    "permalink": "/r/javascript/comments/b/react_20/",
                    "created_utc": 1767700000,
                    "author": "dev2",
                    "selftext": "",
                },
                {"name": "t3_c", "title": ""},
            ]
        )
        collector = RedditJSONCollector(retry_policy=RetryPolicy.no_delay(1), sleep_func=MagicMock())

        with patch("requests.request", return_value=listing) as mock_request:
            result = collector.collect("daily", CollectOptions(subreddits=("javascript",)))

        assert mock_request.call_args[0][1] == "https://www.reddit.com/r/javascript/top.json"
        assert mock_request.call_args[1]["params"] == {"t": "day", "limit": 50}
        assert result.skipped == 1
        assert [p.id for p in result.data] == ["t3_b", "t3_a"]
        post = result.data[1]
        assert post.score == 120
        assert post.comment_count == 30
        assert post.url == "https://www.reddit.com/r/javascript/comments/a/new_typescript_library/"
        assert post.content == "It validates JSON"
        assert post.published_at == datetime.fromtimestamp(1767600000, tz=timezone.utc)

    def test_unexpected_shape_is_parse_error(self) -> None:
        """A body without data.children is a parse_error."""
        collector = RedditJSONCollector(retry_policy=RetryPolicy.no_delay(1), sleep_func=MagicMock())

        with patch("requests.request", return_value=make_response(text='{"kind": "Listing"}')):
            result = collector.collect("weekly", CollectOptions(subreddits=("node",)))

        assert result.error.error_type == "parse_error"

    def test_malformed_children_are_skipped(self) -> None:
        """Children with non-string titles are skipped, not fatal."""
        listing = reddit_listing(
            [
                {"name": "t3_ok", "title": "A new npm package manager", "selftext": ["not", "text"]},
                {"name": "t3_num", "title": 42},
                {"name": "t3_obj", "title": {"text": "nested"}},
            ]
        )
        collector = RedditJSONCollector(retry_policy=RetryPolicy.no_delay(1), sleep_func=MagicMock())

        with patch("requests.request", return_value=listing):
            result = collector.collect("weekly", CollectOptions(subreddits=("node",)))

        assert [p.id for p in result.data] == ["t3_ok"]
        assert result.data[0].content == ""
        assert result.skipped == 2

    def test_duplicates_across_communities_are_removed(self) -> None:
        """The same post seen in two communities appears once."""
        child = {
            "name": "t3_dup",
            "title": "A CLI tool for npm packages",
            "permalink": "/r/node/comments/dup/cli_tool/",
            "created_utc": 1767600000,
        }
        collector = RedditJSONCollector(retry_policy=RetryPolicy.no_delay(1), sleep_func=MagicMock())

        with patch(
            "requests.request", side_effect=[reddit_listing([child]), reddit_listing([child])]
        ):
            result = collector.collect(
                "weekly", CollectOptions(subreddits=("node", "javascript"))
            )

        assert len(result.data) == 1


class TestStaticFallbackCollector:
    """Test StaticFallbackCollector."""

    def test_collect_returns_evergreen_repos(self) -> None:
        """The static source always succeeds with a warning."""
        result = StaticFallbackCollector().collect()

        assert result.success
        assert len(result.data) == 12
        assert result.warnings == ("Using static fallback data",)
        assert all(r.source == "static-fallback" for r in result.data)

    def test_language_filter_is_case_insensitive(self) -> None:
        """A language filter keeps matching repositories."""
        result = StaticFallbackCollector().collect(options=CollectOptions(language="RUST"))

        assert {r.full_name for r in result.data} == {"denoland/deno", "rust-lang/rust"}

    def test_unmatched_language_returns_everything(self) -> None:
        """A language with no matches falls back to the full list."""
        result = StaticFallbackCollector().collect(options=CollectOptions(language="cobol"))

        assert len(result.data) == 12

    def test_health_check_is_always_healthy(self) -> None:
        """The static source is always healthy."""
        assert StaticFallbackCollector().health_check().healthy


class TestSubredditHelpers:
    """Test community helpers."""

    def test_resolve_subreddits_warns_about_unknown_names(self) -> None:
        """Unknown communities produce warnings; prefixes are tolerated."""
        configs, warnings = resolve_subreddits(["r/Programming", "cooking"])

        assert [c.name for c in configs] == ["programming"]
        assert warnings == ["cooking: subreddit is not configured"]

    def test_resolve_subreddits_none_means_all(self) -> None:
        """None selects every configured community."""
        configs, warnings = resolve_subreddits(None)

        assert len(configs) == 6
        assert warnings == []

    def test_html_to_text_drops_scripts(self) -> None:
        """Markup is reduced to text without script contents."""
        markup = "<div><p>Hello <b>world</b></p><script>alert(1)</script></div>"

        assert html_to_text(markup) == "Hello world"

    def test_parse_timestamp_formats(self) -> None:
        """RFC 822 strings, ISO strings and epoch seconds are accepted."""
        expected = datetime(2026, 1, 4, 9, 0, tzinfo=timezone.utc)

        assert parse_timestamp("Sun, 04 Jan 2026 09:00:00 +0000") == expected
        assert parse_timestamp("2026-01-04T09:00:00") == expected
        assert parse_timestamp(expected.timestamp()) == expected
        assert parse_timestamp("not a date") is None
        assert parse_timestamp(None) is None


class TestFilters:
    """Test filtering and ranking helpers."""

    def test_filter_developer_tools_by_keywords(self) -> None:
        """Names and descriptions are matched against tool keywords."""
        repos = [
            make_repo("a/json-formatter"),
            make_repo("b/blog", description="My personal blog"),
            make_repo("c/thing", description="A fast bundler for the web"),
        ]

        assert [r.full_name for r in filter_developer_tools(repos)] == [
            "a/json-formatter",
            "c/thing",
        ]

    def test_filter_developer_tools_by_topics(self) -> None:
        """Tooling topics qualify a repository."""
        repos = [
            make_repo("a/app", topics=("Developer-Tools",)),
            make_repo("b/site", topics=("website",)),
        ]

        assert [r.full_name for r in filter_developer_tools_by_topics(repos)] == ["a/app"]

    def test_top_by_is_stable(self) -> None:
        """Ties keep their input order."""
        repos = [
            make_repo("a/one", stars_gained=5),
            make_repo("b/two", stars_gained=9),
            make_repo("c/three", stars_gained=5),
        ]

        assert [r.full_name for r in top_by_stars_gained(repos, limit=3)] == [
            "b/two",
            "a/one",
            "c/three",
        ]
        assert top_by(repos, lambda r: r.stars, limit=0) == []

    def test_partition_by_language(self) -> None:
        """Repositories are grouped by lower-cased language."""
        repos = [make_repo("a/one", language="Go"), make_repo("b/two", language="go")]

        assert list(partition_by_language(repos)) == ["go"]
        assert len(partition_by_language(repos)["go"]) == 2
