"""
Routes: /documents — submission, review workflow, verification queue.
"""

from fastapi import APIRouter, Depends, Query

from kyc_engine.api.schemas.requests import (
    ReviewerRequest,
    SubmitDocumentRequest,
    VerifyDocumentRequest,
)
from kyc_engine.api.schemas.responses import (
    DocumentResponse,
    HistoryEntryResponse,
    QueueResponse,
    VerificationStatsResponse,
)
from kyc_engine.api.services import KycServices, get_services
from kyc_engine.core.entities.document import VerificationStatus
from kyc_engine.core.errors import ValidationFailedError
from kyc_engine.core.use_cases.transition_manager import DECISIONS, SubmissionPayload, parse_status
from kyc_engine.core.use_cases.verification_queue import QueueFilter

router = APIRouter()


@router.post("/documents", response_model=DocumentResponse, status_code=201)
def submit_document(req: SubmitDocumentRequest, services: KycServices = Depends(get_services)):
    """Register an uploaded document (file already stored, `fileRef` points at it)."""
    document = services.manager.submit(
        req.owner_id,
        req.document_type,
        SubmissionPayload(
            file_ref=req.file_ref,
            expires_at=req.expires_at,
            document_number=req.document_number,
            metadata=req.metadata,
        ),
    )
    return DocumentResponse.from_entity(document)


# Static paths must be registered before /documents/{document_id}.
@router.get("/documents/verification-queue", response_model=QueueResponse)
def verification_queue(
    document_type: str | None = Query(None, alias="documentType"),
    search: str | None = None,
    status: list[str] | None = Query(None),
    page: int = 1,
    limit: int | None = None,
    services: KycServices = Depends(get_services),
):
    """
    Reviewer worklist, oldest submission first.

    Defaults to PENDING + UNDER_REVIEW; pass `status` (repeatable) to widen it.
    """
    result = services.queue.list_queue(
        QueueFilter(document_type=document_type, search_term=search, statuses=status),
        page=page,
        page_size=limit,
    )
    return QueueResponse.from_page(result)


@router.get("/documents/verification-stats", response_model=VerificationStatsResponse)
def verification_stats(services: KycServices = Depends(get_services)):
    return VerificationStatsResponse.from_stats(services.queue.get_stats())


@router.get("/documents/{document_id}", response_model=DocumentResponse)
def get_document(document_id: str, services: KycServices = Depends(get_services)):
    return DocumentResponse.from_entity(services.store.get(document_id))


@router.get("/documents/{document_id}/history", response_model=list[HistoryEntryResponse])
def get_document_history(document_id: str, services: KycServices = Depends(get_services)):
    """Full audit trail, oldest first."""
    return [HistoryEntryResponse.from_entry(e) for e in services.ledger.get_history(document_id)]


@router.post("/documents/{document_id}/claim", response_model=DocumentResponse)
def claim_document(document_id: str, req: ReviewerRequest, services: KycServices = Depends(get_services)):
    return DocumentResponse.from_entity(services.manager.claim_for_review(document_id, req.reviewer_id))


@router.post("/documents/{document_id}/release", response_model=DocumentResponse)
def release_document(document_id: str, req: ReviewerRequest, services: KycServices = Depends(get_services)):
    return DocumentResponse.from_entity(services.manager.release_claim(document_id, req.reviewer_id))


@router.put("/documents/{document_id}/verify", response_model=DocumentResponse)
def verify_document(document_id: str, req: VerifyDocumentRequest, services: KycServices = Depends(get_services)):
    """
    Reviewer action.

    - status=UNDER_REVIEW → claim the document
    - status=VERIFIED / REJECTED → record the decision (REJECTED needs `rejectionReason`)
    """
    target = parse_status(req.status)
    if target == VerificationStatus.UNDER_REVIEW:
        document = services.manager.claim_for_review(document_id, req.reviewer_id)
    elif target in DECISIONS:
        document = services.manager.decide(
            document_id,
            req.reviewer_id,
            target,
            notes=req.notes,
            rejection_reason=req.rejection_reason,
            expires_at=req.expires_at,
        )
    else:
        raise ValidationFailedError(
            "Invalid verification status",
            details={"status": target.value, "allowed": ["UNDER_REVIEW", "VERIFIED", "REJECTED"]},
        )
    return DocumentResponse.from_entity(document)
