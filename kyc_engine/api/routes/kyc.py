"""
Routes: aggregate KYC status, requirement catalog, reviewer activity.
"""

from datetime import datetime

from fastapi import APIRouter, Depends

from kyc_engine.api.schemas.responses import (
    KycStatusResponse,
    LedgerRecordResponse,
    RequirementGroupResponse,
    RequirementsResponse,
)
from kyc_engine.api.services import KycServices, get_services

router = APIRouter()


@router.get("/users/{owner_id}/kyc-status", response_model=KycStatusResponse)
def get_kyc_status(owner_id: str, purpose: str | None = None, services: KycServices = Depends(get_services)):
    """Aggregate trust state for one person, recomputed from their documents."""
    purpose = purpose or services.settings.default_purpose
    result = services.status.execute(owner_id, purpose)
    return KycStatusResponse.build(owner_id, purpose, services.catalog.active_version, result)


@router.get("/requirements/{purpose}", response_model=RequirementsResponse)
def get_requirements(purpose: str, services: KycServices = Depends(get_services)):
    groups = services.catalog.resolve(purpose)
    return RequirementsResponse(
        purpose=purpose,
        catalog_version=services.catalog.active_version,
        groups=[RequirementGroupResponse.from_group(g) for g in groups],
    )


@router.get("/reviewers/{reviewer_id}/activity", response_model=list[LedgerRecordResponse])
def reviewer_activity(reviewer_id: str, since: datetime | None = None, services: KycServices = Depends(get_services)):
    """Every history entry recorded by this reviewer, oldest first."""
    return [LedgerRecordResponse.from_record(r) for r in services.ledger.reviewer_activity(reviewer_id, since)]
