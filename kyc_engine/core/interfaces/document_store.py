"""
Contract: Document Store

Persistência dos documentos KYC e do histórico append-only.
Qualquer implementação (SQLAlchemy, memória, Mongo) deve respeitar
a semântica de compare-and-swap descrita em `commit`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from kyc_engine.core.entities.document import (
    OPEN_STATUSES,
    Document,
    DocumentType,
    HistoryEntry,
    VerificationStatus,
)


@dataclass(frozen=True)
class DocumentQuery:
    """Filtro de leitura para a fila de verificação."""
    statuses: frozenset[VerificationStatus] = field(default_factory=lambda: OPEN_STATUSES)
    document_type: DocumentType | None = None
    search_term: str | None = None      # matches id, owner id or document number
    include_retired: bool = False


@dataclass(frozen=True)
class LedgerRecord:
    """A history entry together with the document it belongs to."""
    document_id: str
    owner_id: str
    document_type: DocumentType
    entry: HistoryEntry


class IDocumentStore(ABC):
    """
    Port: Document Store

    The unit of contention is one document record. Writes are conditional on
    the `version` token the caller read; history rows are never updated or
    deleted.
    """

    @abstractmethod
    def get(self, document_id: str) -> Document:
        """
        Load a document with its full history.

        Raises:
            NotFoundError: unknown id.
        """
        ...

    @abstractmethod
    def list_by_owner(self, owner_id: str, include_retired: bool = True) -> list[Document]:
        """All documents of one person, oldest submission first."""
        ...

    @abstractmethod
    def insert(self, document: Document) -> Document:
        """Persist a brand new document (and its initial history)."""
        ...

    @abstractmethod
    def commit(self, document: Document, expected_version: int) -> Document:
        """
        Atomically write the next revision of a document.

        Fields and the history tail (entries beyond what is stored) are
        written in one transaction, only if the stored version still equals
        `expected_version`.

        Raises:
            ConflictError: the stored version moved on (lost update race).
            NotFoundError: unknown id.
        """
        ...

    @abstractmethod
    def query(self, query: DocumentQuery, offset: int, limit: int) -> tuple[list[Document], int]:
        """Page of matching documents (oldest submission first) and total count."""
        ...

    @abstractmethod
    def status_counts(self, query: DocumentQuery) -> dict[VerificationStatus, int]:
        """Count per status for `query`, ignoring its status filter."""
        ...

    @abstractmethod
    def list_expiry_due(self, now: datetime, limit: int) -> list[Document]:
        """VERIFIED documents whose expires_at <= now."""
        ...

    @abstractmethod
    def list_expiring(self, start: datetime, end: datetime, limit: int) -> list[Document]:
        """VERIFIED, not yet notified, with start <= expires_at <= end."""
        ...

    @abstractmethod
    def list_decided(self, since: datetime | None = None) -> list[Document]:
        """Documents with a decision (decided_at set), optionally since a date."""
        ...

    @abstractmethod
    def count_by_type(self) -> dict[DocumentType, int]:
        ...

    @abstractmethod
    def list_history_by_actor(self, performed_by: str, since: datetime | None = None) -> list[LedgerRecord]:
        """Ledger entries recorded by one actor, in commit order."""
        ...
