"""GitHub trending collector (unofficial API with HTML scrape fallback)."""

import re
from datetime import datetime
from typing import Any
from urllib.parse import quote

from lxml import etree
from lxml import html as lxml_html

from ..config import CATEGORY_REPOS
from ..error_handling import lenient_json_parse
from ..logging_config import get_logger
from ..models import CollectionResult, HealthCheckResult, Period, SourceError, TrendingRepo, utc_now
from .base import BaseCollector, CollectOptions

logger = get_logger(__name__)

_NUMBER = re.compile(r"[\d,]+")
_PERIOD_STARS = re.compile(r"([\d,]+)\s+stars?\s+(?:today|this\s+week|this\s+month)", re.I)


def _to_int(value: Any) -> int:
    """Read a count that may arrive as an int, a float or a "1,234" string."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        match = _NUMBER.search(value)
        if match:
            return int(match.group(0).replace(",", ""))
    return 0


class GitHubTrendingCollector(BaseCollector):
    """Collector for the github.com trending list.

    Tries the unofficial trending JSON API first and scrapes the trending
    page when the API yields nothing. No authentication is needed.
    """

    API_URL = "https://api.gitterapp.com"
    TRENDING_URL = "https://github.com/trending"

    name = "github-trending"
    category = CATEGORY_REPOS

    def _collect(self, period: Period, options: CollectOptions) -> CollectionResult:
        api_error: str | None = None
        try:
            repos, skipped = self._collect_from_api(period, options.language)
        except SourceError as e:
            logger.warning(
                "trending_api_failed", source=self.name, error_type=e.error_type, error=e.message
            )
            repos, skipped = [], 0
            api_error = e.message

        source = "github-api"
        if not repos:
            repos, skipped = self._collect_from_page(period, options.language)
            source = "github-scrape"

        if not repos:
            message = "Trending API and page scrape both returned no repositories"
            if api_error:
                message = f"{message} (API: {api_error})"
            raise SourceError(source=self.name, error_type="parse_error", message=message)

        if options.limit is not None:
            repos = repos[: options.limit]

        logger.info(
            "collection_succeeded",
            source=source,
            language=options.language or "all",
            period=period,
            count=len(repos),
            skipped=skipped,
        )
        warnings = [f"trending API unavailable: {api_error}"] if api_error else []
        return CollectionResult.ok(source, repos, skipped=skipped, warnings=warnings)

    def health_check(self) -> HealthCheckResult:
        return self._probe("GET", self.API_URL)

    def _collect_from_api(
        self, period: Period, language: str | None
    ) -> tuple[list[TrendingRepo], int]:
        params = {"since": period}
        if language:
            params["language"] = language

        response = self._fetch(
            "GET",
            f"{self.API_URL}/repositories",
            params=params,
            headers={"Accept": "application/json"},
        ).raise_for_error(self.name)

        data = lenient_json_parse(response.text)
        if not isinstance(data, list):
            return [], 0

        collected_at = utc_now()
        repos: list[TrendingRepo] = []
        skipped = 0
        for entry in data:
            repo = self._parse_api_entry(entry, collected_at)
            if repo is None:
                skipped += 1
            else:
                repos.append(repo)
        return repos, skipped

    def _parse_api_entry(self, entry: Any, collected_at: datetime) -> TrendingRepo | None:
        if not isinstance(entry, dict):
            return None

        author = entry.get("author") or entry.get("username")
        name = entry.get("name") or entry.get("repositoryName")
        if not isinstance(author, str) or not isinstance(name, str) or not author or not name:
            return None

        full_name = f"{author}/{name}"
        return TrendingRepo(
            full_name=full_name,
            name=name,
            description=entry.get("description") or "",
            language=entry.get("language") or "Unknown",
            url=entry.get("url") or f"https://github.com/{full_name}",
            stars=_to_int(entry.get("stars")),
            stars_gained=_to_int(entry.get("currentPeriodStars")),
            forks=_to_int(entry.get("forks")),
            topics=(),
            collected_at=collected_at,
            source="github-api",
        )

    def _collect_from_page(
        self, period: Period, language: str | None
    ) -> tuple[list[TrendingRepo], int]:
        url = self.TRENDING_URL
        if language:
            url = f"{url}/{quote(language)}"

        response = self._fetch(
            "GET", url, params={"since": period}, headers={"Accept": "text/html"}
        ).raise_for_error(self.name)
        return self.parse_trending_html(response.text)

    def parse_trending_html(self, page: str) -> tuple[list[TrendingRepo], int]:
        """Parse the trending page into repositories.

        Args:
            page: HTML of https://github.com/trending

        Returns:
            Tuple of parsed repositories and the number of rows skipped
        """
        if not page or not page.strip():
            return [], 0
        try:
            tree = lxml_html.fromstring(page)
        except (etree.ParserError, ValueError) as e:
            logger.warning("trending_page_unparseable", source=self.name, error=str(e))
            return [], 0

        collected_at = utc_now()
        repos: list[TrendingRepo] = []
        skipped = 0
        for row in tree.xpath("//article[contains(concat(' ', @class, ' '), ' Box-row ')]"):
            repo = self._parse_row(row, collected_at)
            if repo is None:
                skipped += 1
            else:
                repos.append(repo)
        return repos, skipped

    def _parse_row(self, row: Any, collected_at: datetime) -> TrendingRepo | None:
        hrefs = row.xpath(".//h2//a/@href")
        if not hrefs:
            return None
        full_name = hrefs[0].strip().strip("/")
        parts = full_name.split("/")
        if len(parts) != 2 or not all(parts):
            return None

        description = " ".join(
            " ".join(row.xpath(".//p//text()")).split()
        )
        languages = row.xpath(".//*[@itemprop='programmingLanguage']/text()")
        stars = row.xpath(".//a[contains(@href, '/stargazers')]//text()")
        forks = row.xpath(".//a[contains(@href, '/forks')]//text()")
        period_stars = _PERIOD_STARS.search(row.text_content())

        return TrendingRepo(
            full_name=full_name,
            name=parts[1],
            description=description,
            language=languages[0].strip() if languages else "Unknown",
            url=f"https://github.com/{full_name}",
            stars=_to_int("".join(stars)),
            stars_gained=_to_int(period_stars.group(1)) if period_stars else 0,
            forks=_to_int("".join(forks)),
            topics=(),
            collected_at=collected_at,
            source="github-scrape",
        )
