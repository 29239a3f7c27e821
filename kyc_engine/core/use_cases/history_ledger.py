"""
Use Case: History Ledger

Reviewer-facing queries over the append-only verification history.
Writes only ever happen through the Transition Manager.
"""

from datetime import datetime

from kyc_engine.core.entities.document import HistoryEntry, to_naive_utc
from kyc_engine.core.interfaces.document_store import IDocumentStore, LedgerRecord


class HistoryLedger:
    def __init__(self, store: IDocumentStore):
        self._store = store

    def get_history(self, document_id: str) -> tuple[HistoryEntry, ...]:
        """Entries of one document in commit order (raises NotFoundError)."""
        return self._store.get(document_id).history

    def reviewer_activity(self, reviewer_id: str, since: datetime | None = None) -> list[LedgerRecord]:
        """Entries recorded by a reviewer, oldest first; aware `since` values are read as UTC."""
        return self._store.list_history_by_actor(reviewer_id, since=to_naive_utc(since))
