"""
Use Case: Expiry Sweep

Batch job (cron / scripts/run_expiry_sweep.py):
  1. expire_due      — VERIFIED documents past expires_at → EXPIRED
  2. notify_expiring — one DOCUMENT_EXPIRING notice per document inside the window

Safe to interrupt and re-run: each step is idempotent per document, so no
distributed lock is needed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from kyc_engine.core.entities.document import utcnow
from kyc_engine.core.errors import ConflictError
from kyc_engine.core.interfaces.document_store import IDocumentStore
from kyc_engine.core.use_cases.transition_manager import TransitionManager

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    scanned: int = 0
    expired: int = 0
    already_expired: int = 0
    conflicts_retried: int = 0
    notified: int = 0

    def to_dict(self) -> dict:
        return {
            "scanned": self.scanned,
            "expired": self.expired,
            "already_expired": self.already_expired,
            "conflicts_retried": self.conflicts_retried,
            "notified": self.notified,
        }


class ExpirySweepUseCase:
    """Use Case: varredura de expiração e avisos de vencimento."""

    def __init__(
        self,
        store: IDocumentStore,
        manager: TransitionManager,
        batch_size: int = 200,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._manager = manager
        self._batch_size = batch_size
        self._clock = clock

    def expire_due(self, now: datetime | None = None, report: SweepReport | None = None) -> SweepReport:
        now = now or self._clock()
        report = report or SweepReport()
        seen: set[str] = set()

        while True:
            batch = [d for d in self._store.list_expiry_due(now, self._batch_size) if d.id not in seen]
            if not batch:
                break
            for document in batch:
                seen.add(document.id)
                report.scanned += 1
                try:
                    _, won = self._manager.try_expire(document.id, now=now)
                except ConflictError:
                    # Touched by another writer; a no-op once EXPIRED.
                    report.conflicts_retried += 1
                    _, won = self._manager.try_expire(document.id, now=now)
                if won:
                    report.expired += 1
                else:
                    report.already_expired += 1

        logger.info(f"Expiry sweep at {now.isoformat()}: {report.expired} expired, {report.scanned} scanned")
        return report

    def notify_expiring(
        self,
        now: datetime | None = None,
        days: int = 30,
        report: SweepReport | None = None,
    ) -> SweepReport:
        now = now or self._clock()
        report = report or SweepReport()
        window_end = now + timedelta(days=days)
        seen: set[str] = set()

        while True:
            batch = [d for d in self._store.list_expiring(now, window_end, self._batch_size) if d.id not in seen]
            if not batch:
                break
            for document in batch:
                seen.add(document.id)
                try:
                    _, sent = self._manager.try_mark_expiry_notified(document.id, now=now)
                except ConflictError:
                    report.conflicts_retried += 1
                    _, sent = self._manager.try_mark_expiry_notified(document.id, now=now)
                if sent:
                    report.notified += 1

        logger.info(f"Expiring-soon notices: {report.notified} sent (window {days} days)")
        return report

    def run(self, now: datetime | None = None, days: int = 30) -> SweepReport:
        now = now or self._clock()
        report = self.expire_due(now)
        return self.notify_expiring(now, days=days, report=report)
