"""Static fallback collector: evergreen popular repositories."""

from ..config import CATEGORY_REPOS
from ..logging_config import get_logger
from ..models import CollectionResult, HealthCheckResult, Period, TrendingRepo, utc_now
from .base import BaseCollector, CollectOptions

logger = get_logger(__name__)

# (full_name, description, language, stars, forks, topics)
EVERGREEN_REPOS: tuple[tuple[str, str, str, int, int, tuple[str, ...]], ...] = (
    (
        "freeCodeCamp/freeCodeCamp",
        "freeCodeCamp.org's open-source codebase and curriculum",
        "TypeScript", 385000, 35000, ("education", "javascript", "curriculum"),
    ),
    (
        "facebook/react",
        "A declarative, efficient, and flexible JavaScript library for building user interfaces",
        "JavaScript", 220000, 45000, ("react", "javascript", "frontend", "ui"),
    ),
    (
        "vuejs/vue",
        "A progressive framework for building user interfaces",
        "TypeScript", 207000, 34000, ("vue", "javascript", "frontend"),
    ),
    (
        "tensorflow/tensorflow",
        "An Open Source Machine Learning Framework for Everyone",
        "C++", 182000, 74000, ("machine-learning", "deep-learning", "tensorflow"),
    ),
    (
        "microsoft/vscode",
        "Visual Studio Code - Code editing. Redefined.",
        "TypeScript", 158000, 28000, ("editor", "typescript", "electron", "developer-tools"),
    ),
    (
        "vercel/next.js",
        "The React Framework for Production",
        "JavaScript", 120000, 26000, ("react", "nextjs", "javascript", "ssr"),
    ),
    (
        "golang/go",
        "The Go programming language",
        "Go", 118000, 17000, ("go", "programming-language"),
    ),
    (
        "nodejs/node",
        "Node.js JavaScript runtime",
        "JavaScript", 102000, 28000, ("nodejs", "javascript", "runtime"),
    ),
    (
        "microsoft/TypeScript",
        "TypeScript is a superset of JavaScript that compiles to clean JavaScript output",
        "TypeScript", 97000, 12000, ("typescript", "javascript", "compiler"),
    ),
    (
        "denoland/deno",
        "A modern runtime for JavaScript and TypeScript",
        "Rust", 93000, 5000, ("deno", "javascript", "typescript", "runtime"),
    ),
    (
        "rust-lang/rust",
        "Empowering everyone to build reliable and efficient software",
        "Rust", 92000, 12000, ("rust", "compiler", "systems-programming"),
    ),
    (
        "tailwindlabs/tailwindcss",
        "A utility-first CSS framework for rapid UI development",
        "CSS", 77000, 4000, ("css", "tailwindcss", "utility-first"),
    ),
)


class StaticFallbackCollector(BaseCollector):
    """Last-resort source that never fails.

    Returns a fixed list of long-standing popular repositories. A language
    filter that matches nothing returns the whole list.
    """

    name = "static-fallback"
    category = CATEGORY_REPOS
    enforce_minimum = False

    def _collect(self, period: Period, options: CollectOptions) -> CollectionResult:
        repos = self.evergreen_repos()
        if options.language:
            language = options.language.lower()
            matching = [r for r in repos if r.language.lower() == language]
            repos = matching or repos

        if options.limit is not None:
            repos = repos[: options.limit]

        logger.info(
            "static_fallback_used",
            source=self.name,
            language=options.language or "all",
            count=len(repos),
        )
        return CollectionResult.ok(
            self.name, repos, warnings=["Using static fallback data"]
        )

    def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(source=self.name, healthy=True, latency_ms=0.0)

    def evergreen_repos(self) -> list[TrendingRepo]:
        collected_at = utc_now()
        return [
            TrendingRepo(
                full_name=full_name,
                name=full_name.split("/")[1],
                description=description,
                language=language,
                url=f"https://github.com/{full_name}",
                stars=stars,
                stars_gained=0,
                forks=forks,
                topics=topics,
                collected_at=collected_at,
                source=self.name,
            )
            for full_name, description, language, stars, forks, topics in EVERGREEN_REPOS
        ]
