"""
Document Repository — SQLAlchemy implementation of IDocumentStore.

Handles:
  - Storing documents and their append-only history
  - Compare-and-swap writes on the `version` column
  - Queue filtering/pagination and status counts
  - Ledger queries by actor
"""

import logging
from dataclasses import replace
from datetime import datetime

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Query, Session, sessionmaker

from kyc_engine.core.entities.document import Document, DocumentType, VerificationStatus, to_naive_utc
from kyc_engine.core.errors import ConflictError, NotFoundError
from kyc_engine.core.interfaces.document_store import DocumentQuery, IDocumentStore, LedgerRecord
from kyc_engine.infrastructure.db.database import get_db
from kyc_engine.infrastructure.db.models import (
    DocumentRecord,
    HistoryRecord,
    state_columns,
)

logger = logging.getLogger(__name__)


def _not_found(document_id: str) -> NotFoundError:
    return NotFoundError(f"Document not found with id of {document_id}", details={"document_id": document_id})


def _escape_like(term: str) -> str:
    """Search terms are literal substrings, not LIKE patterns."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlDocumentStore(IDocumentStore):
    """Repository for KYC documents."""

    def __init__(self, session_factory: sessionmaker | None = None):
        self._factory = session_factory

    def _session(self):
        return get_db(self._factory)

    # ── Reads ──

    def get(self, document_id: str) -> Document:
        with self._session() as db:
            record = db.get(DocumentRecord, document_id)
            if record is None:
                raise _not_found(document_id)
            return record.to_entity()

    def list_by_owner(self, owner_id: str, include_retired: bool = True) -> list[Document]:
        with self._session() as db:
            query = db.query(DocumentRecord).filter(DocumentRecord.owner_id == owner_id)
            if not include_retired:
                query = query.filter(DocumentRecord.retired_at.is_(None))
            records = query.order_by(DocumentRecord.submitted_at, DocumentRecord.id).all()
            return [r.to_entity() for r in records]

    # ── Writes ──

    def insert(self, document: Document) -> Document:
        with self._session() as db:
            if db.get(DocumentRecord, document.id) is not None:
                raise ConflictError(f"Document {document.id} already exists", details={"document_id": document.id})
            db.add(DocumentRecord.from_entity(document))
            db.flush()
            logger.debug(f"Inserted document {document.id} [{document.verification_status.value}]")
        return document

    def commit(self, document: Document, expected_version: int) -> Document:
        """
        Single conditional UPDATE on (id, version) plus the history INSERTs,
        inside one transaction. Zero rows updated → rollback + ConflictError.
        """
        next_version = expected_version + 1
        values = {getattr(DocumentRecord, name): value for name, value in state_columns(document).items()}
        values[DocumentRecord.version] = next_version
        with self._session() as db:
            result = db.execute(
                update(DocumentRecord)
                .where(DocumentRecord.id == document.id, DocumentRecord.version == expected_version)
                .values(values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                current = db.query(DocumentRecord.version).filter(DocumentRecord.id == document.id).scalar()
                if current is None:
                    raise _not_found(document.id)
                logger.warning(
                    f"Conflict on document {document.id}: expected v{expected_version}, found v{current}"
                )
                raise ConflictError(
                    f"Document {document.id} was modified concurrently; refresh and retry",
                    details={"document_id": document.id, "expected_version": expected_version, "actual_version": current},
                )

            stored = (
                db.query(func.count(HistoryRecord.id))
                .filter(HistoryRecord.document_id == document.id)
                .scalar()
            )
            for seq in range(stored, len(document.history)):
                db.add(HistoryRecord.from_entry(document.id, seq, document.history[seq]))

        return replace(document, version=next_version)

    # ── Queue ──

    @staticmethod
    def _filtered(db: Session, query: DocumentQuery, ignore_status: bool = False) -> Query:
        q = db.query(DocumentRecord)
        if not query.include_retired:
            q = q.filter(DocumentRecord.retired_at.is_(None))
        if not ignore_status:
            q = q.filter(DocumentRecord.verification_status.in_([s.value for s in query.statuses]))
        if query.document_type is not None:
            q = q.filter(DocumentRecord.document_type == query.document_type.value)
        if query.search_term:
            pattern = f"%{_escape_like(query.search_term)}%"
            q = q.filter(or_(
                DocumentRecord.id.ilike(pattern, escape="\\"),
                DocumentRecord.owner_id.ilike(pattern, escape="\\"),
                DocumentRecord.document_number.ilike(pattern, escape="\\"),
            ))
        return q

    def query(self, query: DocumentQuery, offset: int, limit: int) -> tuple[list[Document], int]:
        with self._session() as db:
            q = self._filtered(db, query)
            total = q.count()
            records = (
                q.order_by(DocumentRecord.submitted_at, DocumentRecord.id)
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [r.to_entity() for r in records], total

    def status_counts(self, query: DocumentQuery) -> dict[VerificationStatus, int]:
        with self._session() as db:
            rows = (
                self._filtered(db, query, ignore_status=True)
                .with_entities(DocumentRecord.verification_status, func.count(DocumentRecord.id))
                .group_by(DocumentRecord.verification_status)
                .all()
            )
            return {VerificationStatus(status): count for status, count in rows}

    # ── Expiry ──

    def list_expiry_due(self, now: datetime, limit: int) -> list[Document]:
        with self._session() as db:
            records = (
                db.query(DocumentRecord)
                .filter(
                    DocumentRecord.verification_status == VerificationStatus.VERIFIED.value,
                    DocumentRecord.expires_at.isnot(None),
                    DocumentRecord.expires_at <= now,
                )
                .order_by(DocumentRecord.expires_at, DocumentRecord.id)
                .limit(limit)
                .all()
            )
            return [r.to_entity() for r in records]

    def list_expiring(self, start: datetime, end: datetime, limit: int) -> list[Document]:
        with self._session() as db:
            records = (
                db.query(DocumentRecord)
                .filter(
                    DocumentRecord.verification_status == VerificationStatus.VERIFIED.value,
                    DocumentRecord.expiry_notified.is_(False),
                    DocumentRecord.expires_at >= start,
                    DocumentRecord.expires_at <= end,
                )
                .order_by(DocumentRecord.expires_at, DocumentRecord.id)
                .limit(limit)
                .all()
            )
            return [r.to_entity() for r in records]

    # ── Stats / ledger ──

    def list_decided(self, since: datetime | None = None) -> list[Document]:
        with self._session() as db:
            q = db.query(DocumentRecord).filter(DocumentRecord.decided_at.isnot(None))
            if since is not None:
                q = q.filter(DocumentRecord.decided_at >= since)
            return [r.to_entity() for r in q.all()]

    def count_by_type(self) -> dict[DocumentType, int]:
        with self._session() as db:
            rows = (
                db.query(DocumentRecord.document_type, func.count(DocumentRecord.id))
                .group_by(DocumentRecord.document_type)
                .all()
            )
            return {DocumentType(t): n for t, n in rows}

    def list_history_by_actor(self, performed_by: str, since: datetime | None = None) -> list[LedgerRecord]:
        since = to_naive_utc(since)
        with self._session() as db:
            q = (
                db.query(HistoryRecord, DocumentRecord.owner_id, DocumentRecord.document_type)
                .join(DocumentRecord, HistoryRecord.document_id == DocumentRecord.id)
                .filter(HistoryRecord.performed_by == performed_by)
            )
            if since is not None:
                q = q.filter(HistoryRecord.timestamp >= since)
            rows = q.order_by(HistoryRecord.timestamp, HistoryRecord.id).all()
            return [
                LedgerRecord(h.document_id, owner_id, DocumentType(doc_type), h.to_entry())
                for h, owner_id, doc_type in rows
            ]
