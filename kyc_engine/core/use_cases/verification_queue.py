"""
Use Case: Verification Queue

Read-side composition over the Document Store for reviewers:
  - list_queue: paginated worklist (oldest submission first) + status counts
  - get_stats:  dashboard statistics (rates, trends, reviewer throughput)

Never mutates anything.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable

from kyc_engine.core.entities.document import (
    Document,
    DocumentType,
    HistoryEntry,
    VerificationStatus,
    utcnow,
)
from kyc_engine.core.errors import ValidationFailedError
from kyc_engine.core.interfaces.document_store import DocumentQuery, IDocumentStore
from kyc_engine.core.use_cases.aggregate_status import round_half_up
from kyc_engine.core.use_cases.transition_manager import (
    DECISIONS,
    parse_document_type,
    parse_status,
)

logger = logging.getLogger(__name__)


@dataclass
class QueueFilter:
    document_type: DocumentType | str | None = None
    search_term: str | None = None
    statuses: Iterable[VerificationStatus | str] | None = None   # None → PENDING + UNDER_REVIEW


@dataclass
class QueuePage:
    items: list[Document]
    total: int
    status_counts: dict[str, int]
    page: int
    page_size: int

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1


@dataclass
class ReviewerStats:
    reviewer_id: str
    decided: int = 0
    verified: int = 0
    rejected: int = 0


@dataclass
class VerificationStats:
    total_documents: int
    status_counts: dict[str, int]
    type_counts: dict[str, int]
    verification_rate: int                 # % of all documents VERIFIED
    verified_last_24h: int
    verified_previous_24h: int
    daily_trend: int                       # % change vs previous 24h
    avg_verification_hours: float
    reviewers: list[ReviewerStats] = field(default_factory=list)


def decision_entry(document: Document) -> HistoryEntry | None:
    """The reviewer decision (VERIFIED/REJECTED) recorded in history, if any."""
    for entry in reversed(document.history):
        if entry.status in DECISIONS:
            return entry
    return None


class VerificationQueueService:
    """Use Case: fila de verificação para revisores."""

    def __init__(
        self,
        store: IDocumentStore,
        default_page_size: int = 20,
        max_page_size: int = 100,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._clock = clock

    def list_queue(
        self,
        queue_filter: QueueFilter | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> QueuePage:
        """
        Page through the reviewer worklist.

        Args:
            queue_filter: Optional type / search / explicit statuses.
            page: 1-based page number.
            page_size: Items per page (defaults to the configured size).

        Returns:
            QueuePage with items, total, and counts per status.
        """
        queue_filter = queue_filter or QueueFilter()
        page_size = page_size or self._default_page_size
        if page < 1:
            raise ValidationFailedError("page must be >= 1", details={"page": page})
        if not 1 <= page_size <= self._max_page_size:
            raise ValidationFailedError(
                f"page_size must be between 1 and {self._max_page_size}",
                details={"page_size": page_size},
            )

        query = self._build_query(queue_filter)
        items, total = self._store.query(query, offset=(page - 1) * page_size, limit=page_size)
        counts = self._store.status_counts(query)

        return QueuePage(
            items=items,
            total=total,
            status_counts={s.value: counts.get(s, 0) for s in VerificationStatus},
            page=page,
            page_size=page_size,
        )

    @staticmethod
    def _build_query(queue_filter: QueueFilter) -> DocumentQuery:
        doc_type = (
            parse_document_type(queue_filter.document_type)
            if queue_filter.document_type else None
        )
        search = (queue_filter.search_term or "").strip() or None
        if queue_filter.statuses:
            statuses = frozenset(parse_status(s) for s in queue_filter.statuses)
            return DocumentQuery(statuses=statuses, document_type=doc_type, search_term=search)
        return DocumentQuery(document_type=doc_type, search_term=search)

    def get_stats(self, now: datetime | None = None) -> VerificationStats:
        now = now or self._clock()
        day_ago = now - timedelta(days=1)
        two_days_ago = now - timedelta(days=2)

        counts = self._store.status_counts(DocumentQuery(include_retired=True))
        total = sum(counts.values())
        verified_now = counts.get(VerificationStatus.VERIFIED, 0)

        last_24h = previous_24h = 0
        hours: list[float] = []
        reviewers: dict[str, ReviewerStats] = {}
        for document in self._store.list_decided():
            entry = decision_entry(document)
            if entry is None:
                continue
            stats = reviewers.setdefault(entry.performed_by, ReviewerStats(entry.performed_by))
            stats.decided += 1
            if entry.status == VerificationStatus.REJECTED:
                stats.rejected += 1
                continue
            stats.verified += 1
            hours.append((entry.timestamp - document.submitted_at).total_seconds() / 3600)
            if entry.timestamp >= day_ago:
                last_24h += 1
            elif entry.timestamp >= two_days_ago:
                previous_24h += 1

        trend = round_half_up(100 * (last_24h - previous_24h) / previous_24h) if previous_24h else 0
        avg_hours = round(sum(hours) / len(hours), 1) if hours else 0.0

        return VerificationStats(
            total_documents=total,
            status_counts={s.value: counts.get(s, 0) for s in VerificationStatus},
            type_counts={t.value: n for t, n in self._store.count_by_type().items()},
            verification_rate=round_half_up(100 * verified_now / total) if total else 0,
            verified_last_24h=last_24h,
            verified_previous_24h=previous_24h,
            daily_trend=trend,
            avg_verification_hours=avg_hours,
            reviewers=sorted(reviewers.values(), key=lambda r: (-r.decided, r.reviewer_id)),
        )
