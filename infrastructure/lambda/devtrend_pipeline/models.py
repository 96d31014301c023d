"""Data models for the DevTrend pipeline.

This module defines the core data structures used throughout the pipeline:
- TrendingRepo / RedditPost: Immutable collected items
- CollectionResult: Tagged outcome of one collection attempt
- SourceError: Error raised inside a collector for a failed source
- SourceStatus / HealthCheckResult / PipelineStatus: Source health tracking
- WeeklyTrendReport / ReportSummary: Aggregated weekly output
- StorageMetadata: Bookkeeping for stored reports
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Generic, Literal, TypeVar

Period = Literal["daily", "weekly", "monthly"]
AttemptOutcome = Literal["success", "failed", "skipped"]
AlertLevel = Literal["green", "yellow", "red"]
ErrorType = Literal[
    "connection_error",
    "timeout",
    "rate_limit",
    "server_error",
    "client_error",
    "parse_error",
    "not_configured",
    "unhealthy",
    "insufficient_data",
    "exhausted",
    "internal_error",
]

TRANSIENT_ERROR_TYPES: frozenset[str] = frozenset(
    {"connection_error", "timeout", "rate_limit", "server_error"}
)

T = TypeVar("T")


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _to_iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_iso_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _serialize(value: Any) -> Any:
    """Recursively convert datetimes and tuples into JSON-friendly values."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value


@dataclass(frozen=True)
class TrendingRepo:
    """A repository observed as trending by one source.

    Attributes:
        full_name: "owner/name", the identifier used for deduplication
        name: Repository name without the owner
        description: Short description (empty string when missing)
        language: Primary language ("Unknown" when missing)
        url: Repository URL
        stars: Total stargazer count
        stars_gained: Stars gained over the collection period (0 if unknown)
        forks: Fork count
        topics: Topic tags
        collected_at: When this record was collected
        source: Source identity that produced the record
    """

    full_name: str
    name: str
    description: str
    language: str
    url: str
    stars: int
    stars_gained: int
    forks: int
    topics: tuple[str, ...]
    collected_at: datetime
    source: str
    license: str | None = None
    is_archived: bool = False
    is_fork: bool = False
    created_at: datetime | None = None
    pushed_at: datetime | None = None

    @property
    def identifier(self) -> str:
        return self.full_name

    def to_dict(self) -> dict[str, Any]:
        return _serialize(asdict(self))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrendingRepo":
        return cls(
            full_name=data["full_name"],
            name=data.get("name") or data["full_name"].split("/")[-1],
            description=data.get("description") or "",
            language=data.get("language") or "Unknown",
            url=data.get("url") or f"https://github.com/{data['full_name']}",
            stars=int(data.get("stars") or 0),
            stars_gained=int(data.get("stars_gained") or 0),
            forks=int(data.get("forks") or 0),
            topics=tuple(data.get("topics") or ()),
            collected_at=parse_iso_datetime(data.get("collected_at")) or utc_now(),
            source=data.get("source") or "unknown",
            license=data.get("license"),
            is_archived=bool(data.get("is_archived", False)),
            is_fork=bool(data.get("is_fork", False)),
            created_at=parse_iso_datetime(data.get("created_at")),
            pushed_at=parse_iso_datetime(data.get("pushed_at")),
        )


@dataclass(frozen=True)
class RedditPost:
    """A community post observed by one source.

    Attributes:
        id: Post identifier (Reddit fullname or feed entry id)
        title: Post title
        subreddit: Community the post belongs to
        score: Upvote score (0 for feed sources that do not expose it)
        comment_count: Number of comments (0 when unknown)
        url: Link to the post
        published_at: Publication timestamp
        author: Author name ("unknown" when missing)
        content: Plain-text excerpt of the body
        collected_at: When this record was collected
        source: Source identity that produced the record
    """

    id: str
    title: str
    subreddit: str
    score: int
    comment_count: int
    url: str
    published_at: datetime | None
    author: str
    content: str
    collected_at: datetime
    source: str

    @property
    def identifier(self) -> str:
        return self.id

    def to_dict(self) -> dict[str, Any]:
        return _serialize(asdict(self))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RedditPost":
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            subreddit=data.get("subreddit") or "",
            score=int(data.get("score") or 0),
            comment_count=int(data.get("comment_count") or 0),
            url=data.get("url") or "",
            published_at=parse_iso_datetime(data.get("published_at")),
            author=data.get("author") or "unknown",
            content=data.get("content") or "",
            collected_at=parse_iso_datetime(data.get("collected_at")) or utc_now(),
            source=data.get("source") or "unknown",
        )


class SourceError(Exception):
    """Error for a failed source fetch.

    Attributes:
        source: The source that failed
        error_type: Category of the error
        message: Human-readable error description
    """

    def __init__(self, source: str, error_type: ErrorType, message: str) -> None:
        self.source = source
        self.error_type = error_type
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class CollectionError:
    """Classification of a failed collection."""

    error_type: ErrorType
    message: str

    @property
    def transient(self) -> bool:
        return self.error_type in TRANSIENT_ERROR_TYPES


@dataclass(frozen=True)
class SourceAttempt:
    """What happened to one source during one orchestration run."""

    source: str
    outcome: AttemptOutcome
    error_type: ErrorType | None = None
    message: str | None = None
    latency_ms: float | None = None


@dataclass(frozen=True)
class CollectionResult(Generic[T]):
    """Outcome of one collection attempt.

    Exactly one of ``items`` and ``error`` is populated. Use the ``ok`` and
    ``fail`` constructors rather than building instances by hand.

    Attributes:
        source: Source identity that produced (or failed to produce) the data
        items: Collected items on success, None on failure
        error: Failure classification on failure, None on success
        latency_ms: Wall time spent collecting
        collected_at: When the attempt finished
        skipped: Upstream records dropped because they failed validation
        warnings: Non-fatal problems (e.g. one feed out of six failed)
        attempts: Every source tried, filled in by the orchestrator
    """

    source: str
    items: tuple[T, ...] | None = None
    error: CollectionError | None = None
    latency_ms: float = 0.0
    collected_at: datetime = field(default_factory=utc_now)
    skipped: int = 0
    warnings: tuple[str, ...] = ()
    attempts: tuple[SourceAttempt, ...] = ()

    def __post_init__(self) -> None:
        if (self.items is None) == (self.error is None):
            raise ValueError(
                "CollectionResult must carry exactly one of items or error"
            )

    @classmethod
    def ok(
        cls,
        source: str,
        items: list[T] | tuple[T, ...],
        latency_ms: float = 0.0,
        skipped: int = 0,
        warnings: list[str] | tuple[str, ...] = (),
    ) -> "CollectionResult[T]":
        return cls(
            source=source,
            items=tuple(items),
            latency_ms=latency_ms,
            skipped=skipped,
            warnings=tuple(warnings),
        )

    @classmethod
    def fail(
        cls,
        source: str,
        error_type: ErrorType,
        message: str,
        latency_ms: float = 0.0,
        attempts: list[SourceAttempt] | tuple[SourceAttempt, ...] = (),
        warnings: list[str] | tuple[str, ...] = (),
    ) -> "CollectionResult[T]":
        return cls(
            source=source,
            error=CollectionError(error_type=error_type, message=message),
            latency_ms=latency_ms,
            attempts=tuple(attempts),
            warnings=tuple(warnings),
        )

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def data(self) -> tuple[T, ...]:
        """Items on success, an empty tuple on failure."""
        return self.items if self.items is not None else ()

    def with_attempts(
        self, attempts: list[SourceAttempt] | tuple[SourceAttempt, ...]
    ) -> "CollectionResult[T]":
        return replace(self, attempts=tuple(attempts))


@dataclass(frozen=True)
class HealthCheckResult:
    """Verdict of one cheap liveness probe."""

    source: str
    healthy: bool
    checked_at: datetime = field(default_factory=utc_now)
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return _serialize(asdict(self))


@dataclass
class SourceStatus:
    """Health record for one upstream source.

    Mutated only by the orchestrator after each attempt.
    """

    name: str
    last_success_at: datetime | None = None
    last_failure_at: datetime | None = None
    last_failure_reason: str | None = None
    consecutive_failures: int = 0
    last_latency_ms: float | None = None

    @property
    def available(self) -> bool:
        return self.last_success_at is not None and self.consecutive_failures == 0

    def record_success(self, latency_ms: float | None = None) -> None:
        self.last_success_at = utc_now()
        self.consecutive_failures = 0
        self.last_latency_ms = latency_ms

    def record_failure(self, reason: str) -> None:
        self.last_failure_at = utc_now()
        self.last_failure_reason = reason
        self.consecutive_failures += 1

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(asdict(self))
        data["available"] = self.available
        return data


@dataclass(frozen=True)
class CategoryStatus:
    """Which source currently serves a category."""

    active_source: str | None
    using_fallback: bool
    last_run_at: datetime | None = None
    error: str | None = None


@dataclass(frozen=True)
class PipelineStatus:
    """Operator-facing snapshot of the whole pipeline."""

    generated_at: datetime
    categories: dict[str, CategoryStatus]
    sources: list[SourceStatus]
    health: dict[str, HealthCheckResult]
    alert_level: AlertLevel
    data_freshness: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": _to_iso(self.generated_at),
            "categories": {
                name: _serialize(asdict(status))
                for name, status in self.categories.items()
            },
            "sources": [status.to_dict() for status in self.sources],
            "health": {name: result.to_dict() for name, result in self.health.items()},
            "alert_level": self.alert_level,
            "data_freshness": self.data_freshness,
        }


@dataclass(frozen=True)
class EmergingTopic:
    """A topic whose frequency this week stands out against prior weeks."""

    topic: str
    count: int
    previous_average: float
    growth: float | None


@dataclass(frozen=True)
class WeeklyTrendReport:
    """Aggregate trend report for one ISO week.

    Attributes:
        week: Week identifier ("YYYY-Www"), derived from the date range
        start_date: Monday of the week
        end_date: Sunday of the week
        generated_at: When the report was produced
        repos: Deduplicated, ranked repositories across all languages
        repos_by_language: Ranked repositories per tracked language
        developer_tools: Repositories that look like developer tooling
        posts: Deduplicated, ranked community posts
        emerging_topics: Topics promoted by frequency analysis
        topic_frequencies: Raw topic counts, kept for later comparisons
        provenance: Category → source that supplied its data
        gaps: Category → reason, for categories with no data this week
    """

    week: str
    start_date: date
    end_date: date
    generated_at: datetime
    repos: tuple[TrendingRepo, ...] = ()
    repos_by_language: dict[str, tuple[TrendingRepo, ...]] = field(default_factory=dict)
    developer_tools: tuple[TrendingRepo, ...] = ()
    posts: tuple[RedditPost, ...] = ()
    emerging_topics: tuple[EmergingTopic, ...] = ()
    topic_frequencies: dict[str, int] = field(default_factory=dict)
    provenance: dict[str, str] = field(default_factory=dict)
    gaps: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return _serialize(asdict(self))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WeeklyTrendReport":
        return cls(
            week=data["week"],
            start_date=date.fromisoformat(data["start_date"]),
            end_date=date.fromisoformat(data["end_date"]),
            generated_at=parse_iso_datetime(data.get("generated_at")) or utc_now(),
            repos=tuple(TrendingRepo.from_dict(r) for r in data.get("repos", [])),
            repos_by_language={
                lang: tuple(TrendingRepo.from_dict(r) for r in repos)
                for lang, repos in data.get("repos_by_language", {}).items()
            },
            developer_tools=tuple(
                TrendingRepo.from_dict(r) for r in data.get("developer_tools", [])
            ),
            posts=tuple(RedditPost.from_dict(p) for p in data.get("posts", [])),
            emerging_topics=tuple(
                EmergingTopic(**topic) for topic in data.get("emerging_topics", [])
            ),
            topic_frequencies={
                topic: int(count)
                for topic, count in data.get("topic_frequencies", {}).items()
            },
            provenance=dict(data.get("provenance", {})),
            gaps=dict(data.get("gaps", {})),
        )


@dataclass(frozen=True)
class ReportSummary:
    """Condensed view of a report for operators."""

    week: str
    top_repo: TrendingRepo | None
    top_tool: TrendingRepo | None
    hot_topics: tuple[str, ...]
    language_highlights: dict[str, str]
    gaps: dict[str, str] = field(default_factory=dict)

    def to_text(self) -> str:
        """Render the summary as a short plain-text digest."""
        lines = [f"Weekly trend digest {self.week}"]
        if self.top_repo is not None:
            lines.append(
                f"Top repository: {self.top_repo.full_name} "
                f"(+{self.top_repo.stars_gained} stars, {self.top_repo.stars} total)"
            )
        else:
            lines.append("Top repository: n/a")
        if self.top_tool is not None:
            lines.append(f"Top developer tool: {self.top_tool.full_name}")
        if self.hot_topics:
            lines.append("Hot topics: " + ", ".join(self.hot_topics))
        for language, repo in sorted(self.language_highlights.items()):
            lines.append(f"  {language}: {repo}")
        for category, reason in sorted(self.gaps.items()):
            lines.append(f"No {category} data this week: {reason}")
        return "\n".join(lines)


@dataclass(frozen=True)
class ReportRecord:
    """Bookkeeping entry for one stored report."""

    created_at: datetime
    size_bytes: int


@dataclass
class StorageMetadata:
    """What reports exist, when they were written and how large they are."""

    version: str
    last_updated: datetime
    record_count: int
    reports: dict[str, ReportRecord] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return _serialize(asdict(self))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StorageMetadata":
        reports = {
            week: ReportRecord(
                created_at=parse_iso_datetime(record.get("created_at")) or utc_now(),
                size_bytes=int(record.get("size_bytes", 0)),
            )
            for week, record in data.get("reports", {}).items()
        }
        return cls(
            version=data.get("version", "1.0"),
            last_updated=parse_iso_datetime(data.get("last_updated")) or utc_now(),
            record_count=int(data.get("record_count", len(reports))),
            reports=reports,
        )
