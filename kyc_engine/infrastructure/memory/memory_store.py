"""
Adapter: In-Memory Document Store

Lock-guarded dict implementation of IDocumentStore — zero setup for tests
and local experiments. Same compare-and-swap semantics as the SQL store.
"""

import threading
from dataclasses import replace
from datetime import datetime

from kyc_engine.core.entities.document import Document, DocumentType, VerificationStatus, to_naive_utc
from kyc_engine.core.errors import ConflictError, NotFoundError
from kyc_engine.core.interfaces.document_store import DocumentQuery, IDocumentStore, LedgerRecord


def matches(document: Document, query: DocumentQuery, ignore_status: bool = False) -> bool:
    if not query.include_retired and document.is_retired:
        return False
    if not ignore_status and document.verification_status not in query.statuses:
        return False
    if query.document_type is not None and document.document_type != query.document_type:
        return False
    if query.search_term:
        term = query.search_term.lower()
        haystack = (document.id, document.owner_id, document.document_number or "")
        if not any(term in value.lower() for value in haystack):
            return False
    return True


def _queue_order(document: Document) -> tuple:
    return (document.submitted_at, document.id)


class InMemoryDocumentStore(IDocumentStore):
    """Store em memória (thread-safe)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._documents: dict[str, Document] = {}

    @staticmethod
    def _copy(document: Document) -> Document:
        return replace(document, metadata=dict(document.metadata))

    def get(self, document_id: str) -> Document:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                raise NotFoundError(f"Document not found with id of {document_id}", details={"document_id": document_id})
            return self._copy(document)

    def list_by_owner(self, owner_id: str, include_retired: bool = True) -> list[Document]:
        with self._lock:
            docs = [
                self._copy(d) for d in self._documents.values()
                if d.owner_id == owner_id and (include_retired or not d.is_retired)
            ]
        return sorted(docs, key=_queue_order)

    def insert(self, document: Document) -> Document:
        with self._lock:
            if document.id in self._documents:
                raise ConflictError(f"Document {document.id} already exists", details={"document_id": document.id})
            self._documents[document.id] = self._copy(document)
            return self._copy(document)

    def commit(self, document: Document, expected_version: int) -> Document:
        with self._lock:
            stored = self._documents.get(document.id)
            if stored is None:
                raise NotFoundError(f"Document not found with id of {document.id}", details={"document_id": document.id})
            if stored.version != expected_version:
                raise ConflictError(
                    f"Document {document.id} was modified concurrently; refresh and retry",
                    details={"document_id": document.id, "expected_version": expected_version, "actual_version": stored.version},
                )
            if document.history[: len(stored.history)] != stored.history:
                raise ConflictError(
                    f"History of document {document.id} diverged; refresh and retry",
                    details={"document_id": document.id},
                )
            committed = replace(document, version=expected_version + 1, metadata=dict(document.metadata))
            self._documents[document.id] = committed
            return self._copy(committed)

    def query(self, query: DocumentQuery, offset: int, limit: int) -> tuple[list[Document], int]:
        with self._lock:
            hits = sorted((d for d in self._documents.values() if matches(d, query)), key=_queue_order)
            return [self._copy(d) for d in hits[offset:offset + limit]], len(hits)

    def status_counts(self, query: DocumentQuery) -> dict[VerificationStatus, int]:
        counts: dict[VerificationStatus, int] = {}
        with self._lock:
            for d in self._documents.values():
                if matches(d, query, ignore_status=True):
                    counts[d.verification_status] = counts.get(d.verification_status, 0) + 1
        return counts

    def list_expiry_due(self, now: datetime, limit: int) -> list[Document]:
        with self._lock:
            due = sorted((d for d in self._documents.values() if d.is_expiry_due(now)), key=lambda d: (d.expires_at, d.id))
            return [self._copy(d) for d in due[:limit]]

    def list_expiring(self, start: datetime, end: datetime, limit: int) -> list[Document]:
        with self._lock:
            hits = sorted(
                (
                    d for d in self._documents.values()
                    if d.verification_status == VerificationStatus.VERIFIED
                    and not d.expiry_notified
                    and d.expires_at is not None
                    and start <= d.expires_at <= end
                ),
                key=lambda d: (d.expires_at, d.id),
            )
            return [self._copy(d) for d in hits[:limit]]

    def list_decided(self, since: datetime | None = None) -> list[Document]:
        with self._lock:
            return [
                self._copy(d) for d in self._documents.values()
                if d.decided_at is not None and (since is None or d.decided_at >= since)
            ]

    def count_by_type(self) -> dict[DocumentType, int]:
        counts: dict[DocumentType, int] = {}
        with self._lock:
            for d in self._documents.values():
                counts[d.document_type] = counts.get(d.document_type, 0) + 1
        return counts

    def list_history_by_actor(self, performed_by: str, since: datetime | None = None) -> list[LedgerRecord]:
        since = to_naive_utc(since)
        with self._lock:
            records = [
                LedgerRecord(d.id, d.owner_id, d.document_type, entry)
                for d in self._documents.values()
                for entry in d.history
                if entry.performed_by == performed_by and (since is None or entry.timestamp >= since)
            ]
        return sorted(records, key=lambda r: (r.entry.timestamp, r.document_id))
