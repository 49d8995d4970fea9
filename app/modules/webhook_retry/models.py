"""Read-side result types for the webhook retry module."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from infrastructure.resilience.retry.models import DeadLetterEntry


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class DLQStatus:
    """Counts over the dead-letter queue."""

    total: int = 0
    unreviewed: int = 0
    reviewed: int = 0
    by_resolution: Dict[str, int] = field(default_factory=dict)
    oldest_entry: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "unreviewed": self.unreviewed,
            "reviewed": self.reviewed,
            "by_resolution": dict(self.by_resolution),
            "oldest_entry": _iso(self.oldest_entry),
        }


@dataclass
class DLQPage:
    """One page of dead-letter entries, newest failure first."""

    entries: List[DeadLetterEntry]
    has_more: bool
    next_cursor: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [entry.to_summary() for entry in self.entries],
            "has_more": self.has_more,
            "next_cursor": self.next_cursor,
        }


@dataclass
class RetryQueueStatus:
    """Counts over the retry queue.

    ``pending`` entries are due now, ``scheduled`` entries are due later.
    """

    total: int = 0
    pending: int = 0
    scheduled: int = 0
    by_priority: Dict[str, int] = field(
        default_factory=lambda: {"high": 0, "normal": 0, "low": 0}
    )
    oldest_entry: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "pending": self.pending,
            "scheduled": self.scheduled,
            "by_priority": dict(self.by_priority),
            "oldest_entry": _iso(self.oldest_entry),
        }


@dataclass
class HealthThresholds:
    """Limits above which the retry system is reported unhealthy."""

    max_queue_size: int = 1000
    max_dlq_size: int = 500
    max_unreviewed: int = 100
    max_age: timedelta = timedelta(hours=24)


@dataclass
class HealthReport:
    healthy: bool
    issues: List[str]
    metrics: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "healthy": self.healthy,
            "issues": list(self.issues),
            "metrics": dict(self.metrics),
        }
