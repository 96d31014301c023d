"""Trend report persistence on top of a key-value backend.

Reports are stored under "trend:<week>", cache snapshots under
"cache:<key>" and storage bookkeeping under "meta:storage".
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from ..config import (
    CACHE_TTL_SECONDS,
    KEY_PREFIX_CACHE,
    KEY_PREFIX_TREND_REPORT,
    KEY_STORAGE_METADATA,
    STORAGE_METADATA_VERSION,
)
from ..logging_config import get_logger
from ..models import ReportRecord, StorageMetadata, WeeklyTrendReport, utc_now
from ..periods import get_week_date_range, parse_week, week_sort_key
from .backends import KeyValueStore, StorageError

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetentionPolicy:
    """Which reports cleanup keeps.

    Attributes:
        keep_latest: Number of most recent weeks always kept
        max_age_weeks: Also delete weeks that ended more than this many
            weeks ago (no age limit when None)
    """

    keep_latest: int = 52
    max_age_weeks: int | None = None


class TrendStorage:
    """Stores weekly trend reports, cache snapshots and storage metadata.

    Backend failures surface as StorageError; they are never turned into
    empty results.
    """

    def __init__(
        self, store: KeyValueStore, clock: Callable[[], datetime] = utc_now
    ) -> None:
        """Initialize TrendStorage.

        Args:
            store: Key-value backend
            clock: Source of the current UTC time
        """
        self._store = store
        self._clock = clock

    # Generic cache payloads

    def save_to_storage(
        self, key: str, value: Any, ttl_seconds: int | None = CACHE_TTL_SECONDS
    ) -> None:
        self._store.set(f"{KEY_PREFIX_CACHE}{key}", value, ttl_seconds=ttl_seconds)

    def load_from_storage(self, key: str) -> Any | None:
        return self._store.get(f"{KEY_PREFIX_CACHE}{key}")

    def delete_from_storage(self, key: str) -> bool:
        return self._store.delete(f"{KEY_PREFIX_CACHE}{key}")

    # Weekly reports

    def save_trend_report(self, report: WeeklyTrendReport) -> None:
        """Store a report and record it in the storage metadata.

        Args:
            report: Report to store (overwrites an existing one for the week)

        Raises:
            StorageError: If the backend write fails
        """
        payload = report.to_dict()
        key = f"{KEY_PREFIX_TREND_REPORT}{report.week}"
        self._store.set(key, payload)

        size = len(json.dumps(payload, ensure_ascii=False).encode("utf-8"))
        metadata = self._load_metadata()
        metadata.reports[report.week] = ReportRecord(created_at=self._clock(), size_bytes=size)
        self._save_metadata(metadata)

        logger.info("trend_report_saved", week=report.week, size_bytes=size)

    def get_trend_report(self, week: str) -> WeeklyTrendReport | None:
        key = f"{KEY_PREFIX_TREND_REPORT}{week}"
        data = self._store.get(key)
        if data is None:
            return None
        try:
            return WeeklyTrendReport.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError("get", key, f"corrupt report: {e}") from e

    def get_latest_trend_report(self) -> WeeklyTrendReport | None:
        """Return the report for the most recent week, by week ordering."""
        weeks = self.list_trend_reports()
        if not weeks:
            return None
        return self.get_trend_report(weeks[0])

    def list_trend_reports(self) -> list[str]:
        """Return the stored week identifiers, most recent first."""
        weeks = []
        for key in self._store.list_keys(KEY_PREFIX_TREND_REPORT):
            week = key[len(KEY_PREFIX_TREND_REPORT):]
            try:
                parse_week(week)
            except ValueError:
                logger.warning("unexpected_report_key", key=key)
                continue
            weeks.append(week)
        return sorted(weeks, key=week_sort_key, reverse=True)

    def get_recent_reports(self, n: int = 12) -> list[WeeklyTrendReport]:
        """Return up to n of the most recent reports, most recent first."""
        reports = []
        for week in self.list_trend_reports()[: max(n, 0)]:
            report = self.get_trend_report(week)
            if report is not None:
                reports.append(report)
        return reports

    def report_exists(self, week: str) -> bool:
        return self._store.exists(f"{KEY_PREFIX_TREND_REPORT}{week}")

    def delete_trend_report(self, week: str) -> bool:
        """Delete one report and drop it from the metadata.

        Returns:
            True if a report was deleted, False if none was stored
        """
        deleted = self._store.delete(f"{KEY_PREFIX_TREND_REPORT}{week}")
        metadata = self._load_metadata()
        if metadata.reports.pop(week, None) is not None or deleted:
            self._save_metadata(metadata)
        if deleted:
            logger.info("trend_report_deleted", week=week)
        return deleted

    def cleanup_old_reports(
        self, policy: RetentionPolicy | None = None, today: date | None = None
    ) -> int:
        """Delete reports outside the retention policy.

        Running it twice in a row deletes nothing the second time.

        Args:
            policy: Retention policy (defaults to RetentionPolicy())
            today: Reference date for the age limit (defaults to today)

        Returns:
            Number of reports deleted
        """
        policy = policy or RetentionPolicy()
        today = today or self._clock().date()

        weeks = self.list_trend_reports()
        expired = set(weeks[max(policy.keep_latest, 0):])
        if policy.max_age_weeks is not None:
            for week in weeks:
                _, sunday = get_week_date_range(week)
                if (today - sunday).days > policy.max_age_weeks * 7:
                    expired.add(week)

        deleted = 0
        for week in sorted(expired, key=week_sort_key):
            if self.delete_trend_report(week):
                deleted += 1
        logger.info("trend_reports_cleaned_up", deleted=deleted, kept=len(weeks) - deleted)
        return deleted

    # Metadata

    def get_storage_metadata(self) -> StorageMetadata | None:
        data = self._store.get(KEY_STORAGE_METADATA)
        if data is None:
            return None
        try:
            return StorageMetadata.from_dict(data)
        except (AttributeError, TypeError, ValueError) as e:
            raise StorageError("get", KEY_STORAGE_METADATA, f"corrupt metadata: {e}") from e

    def _load_metadata(self) -> StorageMetadata:
        metadata = self.get_storage_metadata()
        if metadata is None:
            metadata = StorageMetadata(
                version=STORAGE_METADATA_VERSION,
                last_updated=self._clock(),
                record_count=0,
            )
        return metadata

    def _save_metadata(self, metadata: StorageMetadata) -> None:
        metadata.last_updated = self._clock()
        metadata.record_count = len(metadata.reports)
        self._store.set(KEY_STORAGE_METADATA, metadata.to_dict())
