"""
Entity: Document

Um documento de identidade/credencial submetido para verificação KYC.
Modelo puro — sem dependência de framework ou banco.

Lifecycle:
    PENDING → UNDER_REVIEW | VERIFIED | REJECTED
    UNDER_REVIEW → VERIFIED | REJECTED
    VERIFIED → EXPIRED (time-driven)
    REJECTED, EXPIRED: terminal (resubmission creates a new document)
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum


SYSTEM_ACTOR = "system"


def utcnow() -> datetime:
    """Naive UTC now. All engine timestamps are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class DocumentType(str, Enum):
    PASSPORT = "passport"
    NATIONAL_ID = "national_id"
    DRIVER_LICENSE = "driver_license"
    ADDRESS_PROOF = "address_proof"
    EDUCATION_CERTIFICATE = "education_certificate"
    PROFESSIONAL_CERTIFICATE = "professional_certificate"
    WORK_PERMIT = "work_permit"
    OTHER = "other"


class VerificationStatus(str, Enum):
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


ALLOWED_TRANSITIONS: dict[VerificationStatus, frozenset[VerificationStatus]] = {
    VerificationStatus.PENDING: frozenset({
        VerificationStatus.UNDER_REVIEW,
        VerificationStatus.VERIFIED,
        VerificationStatus.REJECTED,
    }),
    VerificationStatus.UNDER_REVIEW: frozenset({
        VerificationStatus.VERIFIED,
        VerificationStatus.REJECTED,
    }),
    VerificationStatus.VERIFIED: frozenset({VerificationStatus.EXPIRED}),
    VerificationStatus.REJECTED: frozenset(),
    VerificationStatus.EXPIRED: frozenset(),
}

TERMINAL_STATUSES = frozenset({VerificationStatus.REJECTED, VerificationStatus.EXPIRED})
OPEN_STATUSES = frozenset({VerificationStatus.PENDING, VerificationStatus.UNDER_REVIEW})


def can_transition(current: VerificationStatus, target: VerificationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class HistoryEntry:
    """Uma entrada imutável do histórico de verificação."""
    status: VerificationStatus
    timestamp: datetime
    performed_by: str                 # reviewer id, owner id or "system"
    notes: str = ""


@dataclass
class Document:
    """Entidade de domínio: Documento KYC."""
    id: str
    owner_id: str
    document_type: DocumentType
    verification_status: VerificationStatus = VerificationStatus.PENDING
    file_ref: str = ""                    # reference in file storage (URL/path)
    submitted_at: datetime = field(default_factory=utcnow)
    decided_at: datetime | None = None
    expires_at: datetime | None = None
    rejection_reason: str | None = None
    review_notes: str | None = None
    document_number: str | None = None
    metadata: dict = field(default_factory=dict)
    claimed_by: str | None = None
    history: tuple[HistoryEntry, ...] = ()

    # Concurrency + retirement
    version: int = 1
    updated_at: datetime = field(default_factory=utcnow)
    retired_at: datetime | None = None
    superseded_by: str | None = None
    expiry_notified: bool = False

    @property
    def is_retired(self) -> bool:
        return self.retired_at is not None

    @property
    def is_terminal(self) -> bool:
        return self.verification_status in TERMINAL_STATUSES

    def is_expiry_due(self, now: datetime) -> bool:
        return (
            self.verification_status == VerificationStatus.VERIFIED
            and self.expires_at is not None
            and self.expires_at <= now
        )

    def with_transition(self, entry: HistoryEntry, **changes) -> "Document":
        """
        Return the next revision of this document with `entry` appended.

        The caller's copy is never mutated; history only grows at the tail.
        """
        return replace(
            self,
            verification_status=entry.status,
            history=self.history + (entry,),
            version=self.version + 1,
            updated_at=entry.timestamp,
            **changes,
        )

    def with_changes(self, now: datetime, **changes) -> "Document":
        """Next revision for non-status bookkeeping (retirement, notices)."""
        return replace(self, version=self.version + 1, updated_at=now, **changes)
