"""
Use Case: Aggregate Status

Status Aggregator — função pura: documentos + catálogo → status agregado.

1. Keep, per document type, only the most recent non-retired document
2. Score each requirement group (FULL / PARTIAL / UNSATISFIED)
3. Completion % over required groups only
4. Overall status by precedence (first match wins):
   REJECTED → EXPIRED → NOT_STARTED → INCOMPLETE → PENDING_REVIEW → VERIFIED
"""

import hashlib
import math
from typing import Iterable

from kyc_engine.core.entities.aggregate_status import (
    AggregateState,
    AggregateStatus,
    GroupProgress,
    GroupSatisfaction,
)
from kyc_engine.core.entities.document import (
    OPEN_STATUSES,
    Document,
    DocumentType,
    VerificationStatus,
)
from kyc_engine.core.entities.requirements import RequirementGroup, SatisfactionMode
from kyc_engine.core.interfaces.document_store import IDocumentStore
from kyc_engine.core.interfaces.requirement_catalog import IRequirementCatalog

_UPLOADED = OPEN_STATUSES | {VerificationStatus.VERIFIED}


def current_documents(documents: Iterable[Document]) -> dict[DocumentType, Document]:
    """Most recent non-retired document per type."""
    latest: dict[DocumentType, Document] = {}
    for doc in documents:
        if doc.is_retired:
            continue
        held = latest.get(doc.document_type)
        if held is None or _recency(doc) > _recency(held):
            latest[doc.document_type] = doc
    return latest


def _recency(doc: Document) -> tuple:
    return (doc.submitted_at, doc.updated_at, doc.id)


def generation_stamp(documents: Iterable[Document]) -> str:
    """Stable stamp of a document set; changes whenever any document is written."""
    digest = hashlib.sha256()
    for token in sorted(f"{d.id}:{d.version}" for d in documents):
        digest.update(token.encode("utf-8"))
        digest.update(b"|")
    return digest.hexdigest()[:16]


def _score_group(
    group: RequirementGroup,
    statuses: dict[DocumentType, VerificationStatus | None],
) -> GroupSatisfaction:
    values = list(statuses.values())
    if group.satisfaction_mode == SatisfactionMode.ONE_OF:
        if any(s == VerificationStatus.VERIFIED for s in values):
            return GroupSatisfaction.FULL
        if any(s in OPEN_STATUSES for s in values):
            return GroupSatisfaction.PARTIAL
        return GroupSatisfaction.UNSATISFIED

    if values and all(s == VerificationStatus.VERIFIED for s in values):
        return GroupSatisfaction.FULL
    if values and all(s in _UPLOADED for s in values):
        return GroupSatisfaction.PARTIAL
    return GroupSatisfaction.UNSATISFIED


def _blocking_statuses(
    group: RequirementGroup,
    satisfaction: GroupSatisfaction,
    statuses: dict[DocumentType, VerificationStatus | None],
) -> set[VerificationStatus]:
    # A rejected/expired ONE_OF member is masked while a sibling still carries the group.
    if group.satisfaction_mode == SatisfactionMode.ONE_OF and satisfaction != GroupSatisfaction.UNSATISFIED:
        return set()
    return {s for s in statuses.values() if s is not None}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def aggregate(documents: list[Document], catalog: list[RequirementGroup]) -> AggregateStatus:
    """
    Compute the aggregate verification status of one person.

    Deterministic and side-effect free: identical inputs always give an
    identical AggregateStatus.

    Args:
        documents: Every document of the person (retired ones are ignored).
        catalog: Requirement groups resolved for the verification purpose.

    Returns:
        AggregateStatus with status, completion percentage and missing groups.
    """
    latest = current_documents(documents)

    progress: list[GroupProgress] = []
    blocking: set[VerificationStatus] = set()
    for group in catalog:
        statuses = {
            doc_type: (latest[doc_type].verification_status if doc_type in latest else None)
            for doc_type in sorted(group.document_types, key=lambda t: t.value)
        }
        satisfaction = _score_group(group, statuses)
        progress.append(GroupProgress(
            group_id=group.group_id,
            optional=group.optional,
            satisfaction=satisfaction,
            member_statuses=statuses,
        ))
        if group.required:
            blocking |= _blocking_statuses(group, satisfaction, statuses)

    required = [p for p in progress if not p.optional]
    fully = sum(1 for p in required if p.satisfaction == GroupSatisfaction.FULL)
    percentage = round_half_up(100 * fully / len(required)) if required else 100
    missing = tuple(p.group_id for p in required if p.satisfaction != GroupSatisfaction.FULL)

    if VerificationStatus.REJECTED in blocking:
        state = AggregateState.REJECTED
    elif VerificationStatus.EXPIRED in blocking:
        state = AggregateState.EXPIRED
    elif not latest:
        state = AggregateState.NOT_STARTED
    elif any(p.satisfaction == GroupSatisfaction.UNSATISFIED for p in required):
        state = AggregateState.INCOMPLETE
    elif any(p.satisfaction == GroupSatisfaction.PARTIAL for p in required):
        state = AggregateState.PENDING_REVIEW
    else:
        state = AggregateState.VERIFIED

    return AggregateStatus(
        status=state,
        completion_percentage=percentage,
        missing_requirements=missing,
        groups=tuple(progress),
        generation=generation_stamp(documents),
    )


class GetAggregateStatusUseCase:
    """
    Use Case: status agregado de uma pessoa (GET /users/:id/kyc-status).

    Read-only composition of store + catalog + aggregate(). It tolerates a
    slightly stale document set; the next read recomputes from scratch.
    """

    def __init__(self, store: IDocumentStore, catalog: IRequirementCatalog, default_purpose: str):
        self._store = store
        self._catalog = catalog
        self._default_purpose = default_purpose

    def execute(self, owner_id: str, purpose: str | None = None) -> AggregateStatus:
        groups = self._catalog.resolve(purpose or self._default_purpose)
        documents = self._store.list_by_owner(owner_id)
        return aggregate(documents, groups)
