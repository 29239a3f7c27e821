"""
Use Case: Transition Manager — máquina de estados por documento.

Every status change goes through here:
  validate input → check lifecycle → build next revision (status + history
  entry) → conditional write on the version token → emit events.

A failed validation, an illegal transition or a lost race never writes
anything. Events are published only after the write committed.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from kyc_engine.core.entities.aggregate_status import AggregateStatus
from kyc_engine.core.entities.document import (
    OPEN_STATUSES,
    SYSTEM_ACTOR,
    Document,
    DocumentType,
    HistoryEntry,
    VerificationStatus,
    can_transition,
    to_naive_utc,
    utcnow,
)
from kyc_engine.core.entities.events import EventType, VerificationEvent
from kyc_engine.core.errors import (
    ConflictError,
    InvalidTransitionError,
    InvalidTypeError,
    ValidationFailedError,
)
from kyc_engine.core.interfaces.document_store import IDocumentStore
from kyc_engine.core.interfaces.event_sink import IEventSink
from kyc_engine.core.interfaces.requirement_catalog import IRequirementCatalog
from kyc_engine.core.use_cases.aggregate_status import aggregate

logger = logging.getLogger(__name__)

DECISIONS = frozenset({VerificationStatus.VERIFIED, VerificationStatus.REJECTED})

_DECISION_EVENTS = {
    VerificationStatus.VERIFIED: EventType.DOCUMENT_VERIFIED,
    VerificationStatus.REJECTED: EventType.DOCUMENT_REJECTED,
}

# Retirement only races with other bookkeeping writes on a terminal record.
_RETIRE_ATTEMPTS = 3


@dataclass
class SubmissionPayload:
    """O que o upload entrega ao engine (nunca os bytes do arquivo)."""
    file_ref: str
    expires_at: datetime | None = None
    document_number: str | None = None
    metadata: dict = field(default_factory=dict)


def parse_document_type(value: DocumentType | str) -> DocumentType:
    if isinstance(value, DocumentType):
        return value
    try:
        return DocumentType(str(value).strip().lower())
    except ValueError:
        raise InvalidTypeError(
            f"Unknown document type '{value}'",
            details={"document_type": str(value)},
        ) from None


def parse_status(value: VerificationStatus | str) -> VerificationStatus:
    if isinstance(value, VerificationStatus):
        return value
    try:
        return VerificationStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationFailedError(
            f"Invalid verification status '{value}'",
            details={"status": str(value)},
        ) from None


def _require_id(value: str | None, name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationFailedError(f"{name} is required", details={"field": name})
    return str(value).strip()


class TransitionManager:
    """
    Use Case: transições de status + ledger de auditoria.

    Dependency Injection: store, catalog and sink come through the
    constructor; `clock` and `id_factory` are injectable for tests.
    """

    def __init__(
        self,
        store: IDocumentStore,
        catalog: IRequirementCatalog,
        event_sink: IEventSink | None = None,
        purpose: str = "identity_kyc",
        rejection_reason_min_length: int = 5,
        rejection_reason_max_length: int = 500,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._store = store
        self._catalog = catalog
        self._sink = event_sink
        self._purpose = purpose
        self._reason_min = rejection_reason_min_length
        self._reason_max = rejection_reason_max_length
        self._clock = clock
        self._new_id = id_factory
        # Fail fast on a misconfigured purpose.
        self._catalog.resolve(purpose)

    # ── Submission ─────────────────────────────────────

    def submit(
        self,
        owner_id: str,
        document_type: DocumentType | str,
        payload: SubmissionPayload,
    ) -> Document:
        """
        Create a new PENDING document for `owner_id`.

        A previous document of the same type that ended REJECTED or EXPIRED
        is logically retired (kept for audit, superseded by the new one).

        Raises:
            InvalidTypeError: type unknown to the active catalog.
            ValidationFailedError: missing owner or file reference.
        """
        owner_id = _require_id(owner_id, "owner_id")
        doc_type = parse_document_type(document_type)
        if doc_type not in self._catalog.known_document_types():
            raise InvalidTypeError(
                f"Document type '{doc_type.value}' is not accepted by catalog "
                f"{self._catalog.active_version}",
                details={"document_type": doc_type.value, "catalog_version": self._catalog.active_version},
            )
        file_ref = _require_id(payload.file_ref, "file_ref")

        previous = self._store.list_by_owner(owner_id)
        before = self._aggregate(previous)

        now = self._clock()
        document = Document(
            id=self._new_id(),
            owner_id=owner_id,
            document_type=doc_type,
            verification_status=VerificationStatus.PENDING,
            file_ref=file_ref,
            submitted_at=now,
            expires_at=to_naive_utc(payload.expires_at),
            document_number=payload.document_number,
            metadata=dict(payload.metadata or {}),
            history=(HistoryEntry(VerificationStatus.PENDING, now, owner_id, "Document submitted"),),
            version=1,
            updated_at=now,
        )
        document = self._store.insert(document)
        logger.info(f"Submitted {doc_type.value} document {document.id} for owner {owner_id}")

        for prior in previous:
            if prior.document_type == doc_type and prior.is_terminal and not prior.is_retired:
                self._retire(prior, superseded_by=document.id, now=now)

        self._publish(VerificationEvent(
            event_type=EventType.DOCUMENT_SUBMITTED,
            owner_id=owner_id,
            document_id=document.id,
            old_status=None,
            new_status=VerificationStatus.PENDING.value,
            timestamp=now,
            details={"document_type": doc_type.value},
        ))
        self._publish_aggregate_change(owner_id, before, now)
        return document

    def _retire(self, prior: Document, superseded_by: str, now: datetime) -> None:
        current = prior
        for _ in range(_RETIRE_ATTEMPTS):
            if current.is_retired:
                return
            try:
                self._store.commit(
                    current.with_changes(now, retired_at=now, superseded_by=superseded_by),
                    expected_version=current.version,
                )
                logger.info(f"Retired document {current.id}, superseded by {superseded_by}")
                return
            except ConflictError:
                current = self._store.get(current.id)
        raise ConflictError(
            f"Could not retire document {prior.id}; it keeps changing concurrently",
            details={"document_id": prior.id},
        )

    # ── Review claims ──────────────────────────────────

    def claim_for_review(self, document_id: str, reviewer_id: str) -> Document:
        """
        PENDING → UNDER_REVIEW, held by `reviewer_id`.

        Idempotent for the reviewer already holding the claim. A released
        UNDER_REVIEW document can be claimed by anyone.

        Raises:
            ConflictError: claimed by another reviewer, or lost the write race.
            InvalidTransitionError: document is not PENDING/UNDER_REVIEW.
        """
        reviewer_id = _require_id(reviewer_id, "reviewer_id")
        document = self._store.get(document_id)
        status = document.verification_status

        if status == VerificationStatus.UNDER_REVIEW:
            if document.claimed_by == reviewer_id:
                return document
            if document.claimed_by is not None:
                raise ConflictError(
                    f"Document {document_id} is already under review by another reviewer",
                    details={"document_id": document_id, "claimed_by": document.claimed_by},
                )
        elif status != VerificationStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot claim a document in status {status.value}",
                details={"document_id": document_id, "status": status.value},
            )

        now = self._clock()
        entry = HistoryEntry(VerificationStatus.UNDER_REVIEW, now, reviewer_id, "Review claimed")
        updated = self._store.commit(
            document.with_transition(entry, claimed_by=reviewer_id),
            expected_version=document.version,
        )
        logger.info(f"Document {document_id}: {status.value} -> UNDER_REVIEW by {reviewer_id}")
        self._publish(VerificationEvent(
            event_type=EventType.DOCUMENT_CLAIMED,
            owner_id=updated.owner_id,
            document_id=document_id,
            old_status=status.value,
            new_status=VerificationStatus.UNDER_REVIEW.value,
            timestamp=now,
            details={"reviewer_id": reviewer_id},
        ))
        return updated

    def release_claim(self, document_id: str, reviewer_id: str) -> Document:
        """Give up a review claim; the document stays UNDER_REVIEW, unclaimed."""
        reviewer_id = _require_id(reviewer_id, "reviewer_id")
        document = self._store.get(document_id)
        if document.verification_status != VerificationStatus.UNDER_REVIEW:
            raise InvalidTransitionError(
                f"Cannot release a document in status {document.verification_status.value}",
                details={"document_id": document_id, "status": document.verification_status.value},
            )
        if document.claimed_by is None:
            return document
        if document.claimed_by != reviewer_id:
            raise ConflictError(
                f"Document {document_id} is claimed by another reviewer",
                details={"document_id": document_id, "claimed_by": document.claimed_by},
            )

        now = self._clock()
        entry = HistoryEntry(VerificationStatus.UNDER_REVIEW, now, reviewer_id, "Review claim released")
        updated = self._store.commit(
            document.with_transition(entry, claimed_by=None),
            expected_version=document.version,
        )
        logger.info(f"Document {document_id}: claim released by {reviewer_id}")
        self._publish(VerificationEvent(
            event_type=EventType.DOCUMENT_CLAIM_RELEASED,
            owner_id=updated.owner_id,
            document_id=document_id,
            old_status=VerificationStatus.UNDER_REVIEW.value,
            new_status=VerificationStatus.UNDER_REVIEW.value,
            timestamp=now,
            details={"reviewer_id": reviewer_id},
        ))
        return updated

    # ── Decisions ──────────────────────────────────────

    def decide(
        self,
        document_id: str,
        reviewer_id: str,
        decision: VerificationStatus | str,
        notes: str | None = None,
        rejection_reason: str | None = None,
        expires_at: datetime | None = None,
    ) -> Document:
        """
        Record a reviewer decision (VERIFIED or REJECTED).

        Args:
            document_id: Document being decided.
            reviewer_id: Opaque reviewer id, recorded in history.
            decision: VERIFIED or REJECTED.
            notes: Optional review notes.
            rejection_reason: Required for REJECTED.
            expires_at: Optional validity end set by the reviewer on VERIFIED.

        Raises:
            ValidationFailedError: bad decision or missing/short rejection reason.
            InvalidTransitionError: document already decided or terminal.
            ConflictError: claimed by another reviewer, or lost the write race.
        """
        reviewer_id = _require_id(reviewer_id, "reviewer_id")
        target = parse_status(decision)
        if target not in DECISIONS:
            raise ValidationFailedError(
                f"Decision must be VERIFIED or REJECTED, got {target.value}",
                details={"decision": target.value},
            )

        reason = (rejection_reason or "").strip()
        if target == VerificationStatus.REJECTED:
            if not reason:
                raise ValidationFailedError(
                    "Rejection reason required",
                    details={"field": "rejection_reason"},
                )
            if not self._reason_min <= len(reason) <= self._reason_max:
                raise ValidationFailedError(
                    f"Rejection reason must be {self._reason_min}-{self._reason_max} characters",
                    details={"field": "rejection_reason", "length": len(reason)},
                )

        document = self._store.get(document_id)
        current = document.verification_status
        if current not in OPEN_STATUSES or not can_transition(current, target):
            raise InvalidTransitionError(
                f"Cannot move document {document_id} from {current.value} to {target.value}",
                details={"document_id": document_id, "status": current.value, "target": target.value},
            )
        if document.claimed_by is not None and document.claimed_by != reviewer_id:
            raise ConflictError(
                f"Document {document_id} is under review by another reviewer",
                details={"document_id": document_id, "claimed_by": document.claimed_by},
            )

        before = self._aggregate(self._store.list_by_owner(document.owner_id))

        now = self._clock()
        changes = {
            "decided_at": now,
            "claimed_by": None,
            "review_notes": notes,
            "rejection_reason": reason if target == VerificationStatus.REJECTED else None,
        }
        if target == VerificationStatus.VERIFIED and expires_at is not None:
            changes["expires_at"] = to_naive_utc(expires_at)
        entry = HistoryEntry(target, now, reviewer_id, notes or "")

        updated = self._store.commit(document.with_transition(entry, **changes), expected_version=document.version)
        logger.info(f"Document {document_id}: {current.value} -> {target.value} by {reviewer_id}")

        details = {"reviewer_id": reviewer_id, "document_type": updated.document_type.value}
        if target == VerificationStatus.REJECTED:
            details["rejection_reason"] = reason
        self._publish(VerificationEvent(
            event_type=_DECISION_EVENTS[target],
            owner_id=updated.owner_id,
            document_id=document_id,
            old_status=current.value,
            new_status=target.value,
            timestamp=now,
            details=details,
        ))
        self._publish_aggregate_change(updated.owner_id, before, now)
        return updated

    # ── Time-driven ────────────────────────────────────

    def expire(self, document_id: str, now: datetime | None = None) -> Document:
        """
        VERIFIED → EXPIRED once `expires_at` has passed (performed by "system").

        Re-running on an already EXPIRED document is a no-op.
        """
        return self.try_expire(document_id, now)[0]

    def try_expire(self, document_id: str, now: datetime | None = None) -> tuple[Document, bool]:
        """
        Same as expire(), also telling whether this call performed the write
        (False when the document was already EXPIRED).

        Raises:
            InvalidTransitionError: not VERIFIED, or not yet due.
            ConflictError: lost the write race (re-run to settle).
        """
        now = now or self._clock()
        document = self._store.get(document_id)
        current = document.verification_status
        if current == VerificationStatus.EXPIRED:
            return document, False
        if current != VerificationStatus.VERIFIED:
            raise InvalidTransitionError(
                f"Only VERIFIED documents can expire, document {document_id} is {current.value}",
                details={"document_id": document_id, "status": current.value},
            )
        if not document.is_expiry_due(now):
            raise InvalidTransitionError(
                f"Document {document_id} is not due to expire",
                details={
                    "document_id": document_id,
                    "expires_at": document.expires_at.isoformat() if document.expires_at else None,
                },
            )

        before = self._aggregate(self._store.list_by_owner(document.owner_id))
        entry = HistoryEntry(
            VerificationStatus.EXPIRED, now, SYSTEM_ACTOR,
            f"Validity ended {document.expires_at.isoformat()}",
        )
        updated = self._store.commit(document.with_transition(entry), expected_version=document.version)
        logger.info(f"Document {document_id}: VERIFIED -> EXPIRED by {SYSTEM_ACTOR}")

        self._publish(VerificationEvent(
            event_type=EventType.DOCUMENT_EXPIRED,
            owner_id=updated.owner_id,
            document_id=document_id,
            old_status=current.value,
            new_status=VerificationStatus.EXPIRED.value,
            timestamp=now,
            details={"document_type": updated.document_type.value},
        ))
        self._publish_aggregate_change(updated.owner_id, before, now)
        return updated, True

    def mark_expiry_notified(self, document_id: str, now: datetime | None = None) -> Document:
        """Emit DOCUMENT_EXPIRING once per document; no-op if already sent."""
        return self.try_mark_expiry_notified(document_id, now)[0]

    def try_mark_expiry_notified(self, document_id: str, now: datetime | None = None) -> tuple[Document, bool]:
        now = now or self._clock()
        document = self._store.get(document_id)
        if document.expiry_notified or document.verification_status != VerificationStatus.VERIFIED:
            return document, False

        updated = self._store.commit(
            document.with_changes(now, expiry_notified=True),
            expected_version=document.version,
        )
        self._publish(VerificationEvent(
            event_type=EventType.DOCUMENT_EXPIRING,
            owner_id=updated.owner_id,
            document_id=document_id,
            old_status=VerificationStatus.VERIFIED.value,
            new_status=VerificationStatus.VERIFIED.value,
            timestamp=now,
            details={
                "document_type": updated.document_type.value,
                "expires_at": updated.expires_at.isoformat() if updated.expires_at else None,
            },
        ))
        return updated, True

    # ── Re-aggregation + events ────────────────────────

    def _aggregate(self, documents: list[Document]) -> AggregateStatus:
        return aggregate(documents, self._catalog.resolve(self._purpose))

    def _publish_aggregate_change(self, owner_id: str, before: AggregateStatus, now: datetime) -> None:
        after = self._aggregate(self._store.list_by_owner(owner_id))
        if after.status == before.status:
            return
        logger.info(f"KYC status for owner {owner_id}: {before.status.value} -> {after.status.value}")
        self._publish(VerificationEvent(
            event_type=EventType.KYC_STATUS_CHANGED,
            owner_id=owner_id,
            old_status=before.status.value,
            new_status=after.status.value,
            timestamp=now,
            details={
                "purpose": self._purpose,
                "completion_percentage": after.completion_percentage,
                "missing_requirements": list(after.missing_requirements),
            },
        ))

    def _publish(self, event: VerificationEvent) -> None:
        if self._sink is None:
            return
        try:
            self._sink.publish(event)
        except Exception as e:
            # Write already committed.
            logger.warning(f"Event delivery failed for {event.event_type.value} ({event.document_id}): {e}")
