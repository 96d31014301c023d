"""Short-lived cache of source health verdicts.

Health probes are cheap but not free. A verdict stays valid for a short
TTL so that status queries and repeated orchestration runs do not keep
re-probing an upstream that is already known to be up (or down).
"""

import time
from collections.abc import Callable

from .models import HealthCheckResult


class HealthCache:
    """Maps source names to health verdicts with a bounded TTL.

    Built once per pipeline and passed by reference into the orchestrator.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize HealthCache.

        Args:
            ttl_seconds: How long a verdict stays valid
            clock: Monotonic time source, injectable for tests
        """
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[HealthCheckResult, float]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, source: str) -> HealthCheckResult | None:
        """Return the cached verdict for a source, or None if absent/expired."""
        entry = self._entries.get(source)
        if entry is None:
            return None
        result, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[source]
            return None
        return result

    def set(self, result: HealthCheckResult) -> None:
        self._entries[result.source] = (result, self._clock() + self._ttl)

    def invalidate(self, source: str) -> None:
        self._entries.pop(source, None)

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> dict[str, HealthCheckResult]:
        """Return every verdict that has not expired yet."""
        return {
            source: result
            for source in list(self._entries)
            if (result := self.get(source)) is not None
        }
