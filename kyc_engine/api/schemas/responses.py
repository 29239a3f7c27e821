"""
Pydantic schemas — Response models para a API.
"""

from datetime import datetime

from pydantic import BaseModel

from kyc_engine.core.entities.aggregate_status import AggregateStatus
from kyc_engine.core.entities.document import Document, HistoryEntry
from kyc_engine.core.entities.requirements import RequirementGroup
from kyc_engine.core.interfaces.document_store import LedgerRecord
from kyc_engine.core.use_cases.verification_queue import QueuePage, VerificationStats


class HistoryEntryResponse(BaseModel):
    status: str
    timestamp: datetime
    performed_by: str
    notes: str = ""

    @classmethod
    def from_entry(cls, entry: HistoryEntry) -> "HistoryEntryResponse":
        return cls(
            status=entry.status.value,
            timestamp=entry.timestamp,
            performed_by=entry.performed_by,
            notes=entry.notes,
        )


class DocumentResponse(BaseModel):
    id: str
    owner_id: str
    document_type: str
    verification_status: str
    file_ref: str
    submitted_at: datetime
    decided_at: datetime | None = None
    expires_at: datetime | None = None
    rejection_reason: str | None = None
    review_notes: str | None = None
    document_number: str | None = None
    metadata: dict = {}
    claimed_by: str | None = None
    version: int
    updated_at: datetime
    retired_at: datetime | None = None
    superseded_by: str | None = None
    history: list[HistoryEntryResponse] = []

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            owner_id=document.owner_id,
            document_type=document.document_type.value,
            verification_status=document.verification_status.value,
            file_ref=document.file_ref,
            submitted_at=document.submitted_at,
            decided_at=document.decided_at,
            expires_at=document.expires_at,
            rejection_reason=document.rejection_reason,
            review_notes=document.review_notes,
            document_number=document.document_number,
            metadata=document.metadata,
            claimed_by=document.claimed_by,
            version=document.version,
            updated_at=document.updated_at,
            retired_at=document.retired_at,
            superseded_by=document.superseded_by,
            history=[HistoryEntryResponse.from_entry(h) for h in document.history],
        )


class QueueResponse(BaseModel):
    items: list[DocumentResponse]
    total: int
    page: int
    page_size: int
    has_next: bool
    has_prev: bool
    status_counts: dict[str, int]

    @classmethod
    def from_page(cls, page: QueuePage) -> "QueueResponse":
        return cls(
            items=[DocumentResponse.from_entity(d) for d in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            has_next=page.has_next,
            has_prev=page.has_prev,
            status_counts=page.status_counts,
        )


class GroupProgressResponse(BaseModel):
    group_id: str
    optional: bool
    satisfaction: str
    member_statuses: dict[str, str | None]


class KycStatusResponse(BaseModel):
    owner_id: str
    purpose: str
    catalog_version: str
    status: str
    completion_percentage: int
    missing_requirements: list[str]
    groups: list[GroupProgressResponse]
    generation: str

    @classmethod
    def build(cls, owner_id: str, purpose: str, catalog_version: str, result: AggregateStatus) -> "KycStatusResponse":
        data = result.to_dict()
        return cls(owner_id=owner_id, purpose=purpose, catalog_version=catalog_version, **data)


class ReviewerStatsResponse(BaseModel):
    reviewer_id: str
    decided: int
    verified: int
    rejected: int


class VerificationStatsResponse(BaseModel):
    total_documents: int
    status_counts: dict[str, int]
    type_counts: dict[str, int]
    verification_rate: int
    verified_last_24h: int
    verified_previous_24h: int
    daily_trend: int
    avg_verification_hours: float
    reviewers: list[ReviewerStatsResponse]

    @classmethod
    def from_stats(cls, stats: VerificationStats) -> "VerificationStatsResponse":
        return cls(
            total_documents=stats.total_documents,
            status_counts=stats.status_counts,
            type_counts=stats.type_counts,
            verification_rate=stats.verification_rate,
            verified_last_24h=stats.verified_last_24h,
            verified_previous_24h=stats.verified_previous_24h,
            daily_trend=stats.daily_trend,
            avg_verification_hours=stats.avg_verification_hours,
            reviewers=[ReviewerStatsResponse(**vars(r)) for r in stats.reviewers],
        )


class RequirementGroupResponse(BaseModel):
    group_id: str
    document_types: list[str]
    satisfaction_mode: str
    optional: bool
    label: str = ""

    @classmethod
    def from_group(cls, group: RequirementGroup) -> "RequirementGroupResponse":
        return cls(
            group_id=group.group_id,
            document_types=sorted(t.value for t in group.document_types),
            satisfaction_mode=group.satisfaction_mode.value,
            optional=group.optional,
            label=group.label,
        )


class RequirementsResponse(BaseModel):
    purpose: str
    catalog_version: str
    groups: list[RequirementGroupResponse]


class LedgerRecordResponse(BaseModel):
    document_id: str
    owner_id: str
    document_type: str
    entry: HistoryEntryResponse

    @classmethod
    def from_record(cls, record: LedgerRecord) -> "LedgerRecordResponse":
        return cls(
            document_id=record.document_id,
            owner_id=record.owner_id,
            document_type=record.document_type.value,
            entry=HistoryEntryResponse.from_entry(record.entry),
        )
