"""Dead-letter queue queries and retention cleanup.

The dead-letter store has no write path of its own beyond conversion by the
retry worker and the manual operations; this module only reads it and deletes
reviewed entries once they age out.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.models import DeadLetterEntry, utc_now
from infrastructure.resilience.retry.store import DeadLetterStore
from modules.webhook_retry.models import DLQPage, DLQStatus

logger = get_module_logger()

DEFAULT_PAGE_SIZE = 50
DEFAULT_RETENTION_DAYS = 90
MAX_CLEANUP_DELETES = 500


def _newest_first(entries: List[DeadLetterEntry]) -> List[DeadLetterEntry]:
    # Two passes: id ascending breaks ties, then failed_at descending (stable)
    entries = sorted(entries, key=lambda entry: entry.id)
    return sorted(entries, key=lambda entry: entry.failed_at, reverse=True)


def _sorts_after(entry: DeadLetterEntry, cursor: DeadLetterEntry) -> bool:
    """True if ``entry`` comes after ``cursor`` in newest-first order."""
    if entry.failed_at != cursor.failed_at:
        return entry.failed_at < cursor.failed_at
    return entry.id > cursor.id


class DeadLetterManager:
    """Read and maintenance operations over the dead-letter queue."""

    def __init__(
        self,
        store: DeadLetterStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.clock = clock

    def get_dlq_status(self) -> DLQStatus:
        """Summarize the dead-letter queue.

        ``oldest_entry`` is the earliest ``failed_at`` across all entries.
        """
        entries = self.store.list_entries()
        reviewed = [entry for entry in entries if entry.is_reviewed]
        by_resolution = Counter(
            entry.resolution.value for entry in reviewed if entry.resolution
        )
        return DLQStatus(
            total=len(entries),
            unreviewed=len(entries) - len(reviewed),
            reviewed=len(reviewed),
            by_resolution=dict(by_resolution),
            oldest_entry=min((entry.failed_at for entry in entries), default=None),
        )

    def list_dlq_entries(
        self,
        limit: int = DEFAULT_PAGE_SIZE,
        start_after: Optional[str] = None,
        only_unreviewed: bool = False,
    ) -> DLQPage:
        """List entries ordered by ``failed_at`` descending.

        Args:
            limit: Page size (must be at least 1)
            start_after: Id of the last entry of the previous page. The page
                resumes after its position even if it was since filtered
                out; an id that no longer exists restarts from the first page.
            only_unreviewed: Restrict to entries without a resolution

        Returns:
            DLQPage with ``next_cursor`` set to the last returned id

        Raises:
            ValueError: If limit is below 1
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")

        entries = _newest_first(self.store.list_entries(only_unreviewed=only_unreviewed))

        if start_after is not None:
            ids = [entry.id for entry in entries]
            if start_after in ids:
                entries = entries[ids.index(start_after) + 1 :]
            else:
                cursor = self.store.get(start_after)
                if cursor is None:
                    logger.info("dlq_cursor_not_found", start_after=start_after)
                else:
                    entries = [entry for entry in entries if _sorts_after(entry, cursor)]

        page = entries[:limit]
        return DLQPage(
            entries=page,
            has_more=len(entries) > limit,
            next_cursor=page[-1].id if page else None,
        )

    def cleanup_old_dlq_entries(
        self, older_than_days: int = DEFAULT_RETENTION_DAYS
    ) -> int:
        """Delete reviewed entries whose ``reviewed_at`` predates the cutoff.

        Unreviewed entries are never deleted, whatever their age. At most
        ``MAX_CLEANUP_DELETES`` entries are removed per call.

        Returns:
            Number of entries deleted
        """
        if older_than_days < 0:
            raise ValueError("older_than_days must not be negative")

        cutoff = self.clock() - timedelta(days=older_than_days)
        expired = [
            entry
            for entry in self.store.list_entries()
            if entry.reviewed_at is not None and entry.reviewed_at < cutoff
        ]
        expired.sort(key=lambda entry: entry.reviewed_at)

        deleted = 0
        for entry in expired[:MAX_CLEANUP_DELETES]:
            if self.store.delete(entry.id):
                deleted += 1

        logger.info(
            "dlq_cleanup_complete",
            deleted=deleted,
            older_than_days=older_than_days,
            cutoff=cutoff.isoformat(),
            remaining_expired=max(len(expired) - MAX_CLEANUP_DELETES, 0),
        )
        return deleted
