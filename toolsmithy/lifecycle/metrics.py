"""Per-agent execution counters."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


@dataclass
class LifecycleMetrics:
    """Counters mutated only by the owning lifecycle manager.

    ``total`` counts executed requests (successful + failed); cache hits and
    rate-limited submissions are tracked separately.
    """

    total: int = 0
    successful: int = 0
    failed: int = 0
    cache_hits: int = 0
    rate_limited: int = 0
    average_execution_time_ms: float = 0.0
    last_request_at: datetime | None = None

    def record_success(self, execution_time_ms: float) -> None:
        self.total += 1
        self.successful += 1
        # Running mean over successful executions
        n = self.successful
        self.average_execution_time_ms = (
            self.average_execution_time_ms * (n - 1) + execution_time_ms
        ) / n
        self.last_request_at = datetime.now(UTC)

    def record_failure(self) -> None:
        self.total += 1
        self.failed += 1
        self.last_request_at = datetime.now(UTC)

    def record_cache_hit(self) -> None:
        self.cache_hits += 1

    def record_rate_limited(self) -> None:
        self.rate_limited += 1

    def snapshot(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "cache_hits": self.cache_hits,
            "rate_limited": self.rate_limited,
            "average_execution_time_ms": self.average_execution_time_ms,
            "last_request_at": (
                self.last_request_at.isoformat() if self.last_request_at else None
            ),
        }
