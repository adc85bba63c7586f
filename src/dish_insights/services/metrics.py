"""In-memory cache performance metrics."""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime

from dish_insights.domain.cache import CacheMetrics, CacheOperation

DEFAULT_API_TIME_MS = 2000
MAX_OPERATIONS_LOG = 50

_logger = logging.getLogger(__name__)


@dataclass
class CacheMetricsRecorder:
    """Counts cache hits and misses and keeps a short operations log.

    State lives for the lifetime of the recorder; nothing is persisted.
    """

    avg_api_call_time_ms: int = DEFAULT_API_TIME_MS
    max_operations: int = MAX_OPERATIONS_LOG
    hits: int = 0
    misses: int = 0
    total_time_saved_ms: int = 0
    _operations: deque[CacheOperation] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._operations = deque(maxlen=self.max_operations)

    def record_hit(
        self, dish_name: str, estimated_api_time_ms: int | None = None
    ) -> None:
        """Record a cache hit and the API time it saved."""
        saved = (
            self.avg_api_call_time_ms
            if estimated_api_time_ms is None
            else estimated_api_time_ms
        )
        self.hits += 1
        self.total_time_saved_ms += saved
        self._log(
            CacheOperation(
                type="hit",
                dish_name=dish_name,
                timestamp=datetime.now(tz=UTC),
                api_time_saved_ms=saved,
                details=f"Cache HIT - saved ~{saved}ms",
            )
        )
        _logger.info("Cache hit: dish=%s saved_ms=%s", dish_name, saved)

    def record_miss(self, dish_name: str) -> None:
        """Record a cache miss."""
        self.misses += 1
        self._log(
            CacheOperation(
                type="miss",
                dish_name=dish_name,
                timestamp=datetime.now(tz=UTC),
                details="Cache MISS - API call required",
            )
        )
        _logger.info("Cache miss: dish=%s", dish_name)

    def record_store(self, dish_name: str) -> None:
        """Record a cache write. Does not affect hit or miss counts."""
        self._log(
            CacheOperation(
                type="store",
                dish_name=dish_name,
                timestamp=datetime.now(tz=UTC),
                details="Stored in cache",
            )
        )
        _logger.info("Cache store: dish=%s", dish_name)

    def hit_rate(self) -> int:
        """Return the hit rate as a whole percentage, 0 without lookups."""
        total = self.hits + self.misses
        if total == 0:
            return 0
        # Rounds halves up.
        return int(100 * self.hits / total + 0.5)

    def snapshot(self) -> CacheMetrics:
        """Return a copy of the current counters and log."""
        return CacheMetrics(
            hits=self.hits,
            misses=self.misses,
            total_time_saved_ms=self.total_time_saved_ms,
            avg_api_call_time_ms=self.avg_api_call_time_ms,
            operations=list(self._operations),
        )

    def recent_operations(self, count: int = 10) -> list[CacheOperation]:
        """Return the most recent operations, newest first."""
        return list(self._operations)[:count]

    def summary(self) -> str:
        """Return a human readable metrics summary."""
        total = self.hits + self.misses
        time_saved_sec = self.total_time_saved_ms / 1000
        return "\n".join(
            [
                "CACHE METRICS",
                f"Total lookups: {total}",
                f"Cache hits: {self.hits}",
                f"Cache misses: {self.misses}",
                f"Hit rate: {self.hit_rate()}%",
                f"Est. time saved: {time_saved_sec:.1f}s",
            ]
        )

    def reset(self) -> None:
        """Zero all counters and clear the operations log."""
        self.hits = 0
        self.misses = 0
        self.total_time_saved_ms = 0
        self._operations.clear()
        _logger.info("Cache metrics reset")

    def _log(self, operation: CacheOperation) -> None:
        self._operations.appendleft(operation)
