"""
Pydantic schemas — Request bodies.

Bodies accept both camelCase (existing web client) and snake_case.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubmitDocumentRequest(_Body):
    owner_id: str
    document_type: str
    file_ref: str
    expires_at: datetime | None = None
    document_number: str | None = None
    metadata: dict = {}


class ReviewerRequest(_Body):
    reviewer_id: str


class VerifyDocumentRequest(_Body):
    """PUT /documents/:id/verify — {status, notes, rejectionReason?}."""
    status: str
    reviewer_id: str
    notes: str | None = None
    rejection_reason: str | None = None
    expires_at: datetime | None = None
