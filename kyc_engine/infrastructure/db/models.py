"""
Database Models — SQLAlchemy.

Tables:
  - kyc_documents: one row per submitted document (current state + version token)
  - kyc_document_history: append-only verification ledger, keyed by (document_id, seq)
  - kyc_notifications: events delivered to document owners
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from kyc_engine.core.entities.document import (
    Document,
    DocumentType,
    HistoryEntry,
    VerificationStatus,
    utcnow,
)


class Base(DeclarativeBase):
    pass


class DocumentRecord(Base):
    """Current state of a KYC document."""
    __tablename__ = "kyc_documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False, index=True)
    document_type = Column(String(40), nullable=False, index=True)
    verification_status = Column(String(20), nullable=False, index=True)
    file_ref = Column(Text, nullable=False)
    document_number = Column(String(64), nullable=True, index=True)
    extra = Column("metadata", JSON, default=dict)

    # Timeline
    submitted_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    decided_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Review
    rejection_reason = Column(Text, nullable=True)
    review_notes = Column(Text, nullable=True)
    claimed_by = Column(String(64), nullable=True)

    # Bookkeeping
    version = Column(Integer, nullable=False, default=1)
    retired_at = Column(DateTime, nullable=True)
    superseded_by = Column(String(36), nullable=True)
    expiry_notified = Column(Boolean, nullable=False, default=False)

    history = relationship(
        "HistoryRecord",
        back_populates="document",
        order_by="HistoryRecord.seq",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_kyc_documents_queue", "verification_status", "submitted_at"),
        Index("ix_kyc_documents_owner_type", "owner_id", "document_type"),
    )

    def __repr__(self):
        return f"<Document {self.id} [{self.document_type}/{self.verification_status}] v{self.version}>"

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentRecord":
        record = cls(
            id=document.id,
            version=document.version,
            history=[
                HistoryRecord.from_entry(document.id, seq, entry)
                for seq, entry in enumerate(document.history)
            ],
        )
        for name, value in state_columns(document).items():
            setattr(record, name, value)
        return record

    def to_entity(self) -> Document:
        return Document(
            id=self.id,
            owner_id=self.owner_id,
            document_type=DocumentType(self.document_type),
            verification_status=VerificationStatus(self.verification_status),
            file_ref=self.file_ref,
            submitted_at=self.submitted_at,
            decided_at=self.decided_at,
            expires_at=self.expires_at,
            rejection_reason=self.rejection_reason,
            review_notes=self.review_notes,
            document_number=self.document_number,
            metadata=dict(self.extra or {}),
            claimed_by=self.claimed_by,
            history=tuple(h.to_entry() for h in self.history),
            version=self.version,
            updated_at=self.updated_at,
            retired_at=self.retired_at,
            superseded_by=self.superseded_by,
            expiry_notified=bool(self.expiry_notified),
        )


def state_columns(document: Document) -> dict:
    """Mutable columns of a document revision (everything but id/version/history)."""
    return {
        "owner_id": document.owner_id,
        "document_type": document.document_type.value,
        "verification_status": document.verification_status.value,
        "file_ref": document.file_ref,
        "document_number": document.document_number,
        "extra": dict(document.metadata),
        "submitted_at": document.submitted_at,
        "decided_at": document.decided_at,
        "expires_at": document.expires_at,
        "updated_at": document.updated_at,
        "rejection_reason": document.rejection_reason,
        "review_notes": document.review_notes,
        "claimed_by": document.claimed_by,
        "retired_at": document.retired_at,
        "superseded_by": document.superseded_by,
        "expiry_notified": document.expiry_notified,
    }


class HistoryRecord(Base):
    """Append-only ledger row. Never updated, never deleted."""
    __tablename__ = "kyc_document_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(String(36), ForeignKey("kyc_documents.id"), nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    performed_by = Column(String(64), nullable=False, index=True)
    notes = Column(Text, default="")

    document = relationship("DocumentRecord", back_populates="history")

    __table_args__ = (
        UniqueConstraint("document_id", "seq", name="uq_kyc_history_document_seq"),
    )

    def __repr__(self):
        return f"<History {self.document_id}#{self.seq} {self.status} by {self.performed_by}>"

    @classmethod
    def from_entry(cls, document_id: str, seq: int, entry: HistoryEntry) -> "HistoryRecord":
        return cls(
            document_id=document_id,
            seq=seq,
            status=entry.status.value,
            timestamp=entry.timestamp,
            performed_by=entry.performed_by,
            notes=entry.notes or "",
        )

    def to_entry(self) -> HistoryEntry:
        return HistoryEntry(
            status=VerificationStatus(self.status),
            timestamp=self.timestamp,
            performed_by=self.performed_by,
            notes=self.notes or "",
        )


class NotificationRecord(Base):
    """Notification for a document owner (verified, rejected, expiring, KYC change)."""
    __tablename__ = "kyc_notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id = Column(String(64), nullable=False, index=True)
    type = Column(String(40), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, default=dict)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    __table_args__ = (
        Index("ix_kyc_notifications_unread", "recipient_id", "read"),
    )

    def __repr__(self):
        return f"<Notification {self.type} -> {self.recipient_id}>"
