"""
Entity: Verification Event

Emitted after every committed transition and every aggregate status change.
Delivery (WebSocket push, email, notification rows) belongs to the sink.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class EventType(str, Enum):
    DOCUMENT_SUBMITTED = "DOCUMENT_SUBMITTED"
    DOCUMENT_CLAIMED = "DOCUMENT_CLAIMED"
    DOCUMENT_CLAIM_RELEASED = "DOCUMENT_CLAIM_RELEASED"
    DOCUMENT_VERIFIED = "DOCUMENT_VERIFIED"
    DOCUMENT_REJECTED = "DOCUMENT_REJECTED"
    DOCUMENT_EXPIRED = "DOCUMENT_EXPIRED"
    DOCUMENT_EXPIRING = "DOCUMENT_EXPIRING"
    KYC_STATUS_CHANGED = "KYC_STATUS_CHANGED"


@dataclass(frozen=True)
class VerificationEvent:
    event_type: EventType
    owner_id: str
    old_status: str | None
    new_status: str
    timestamp: datetime
    document_id: str | None = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "event_type": self.event_type.value,
            "owner_id": self.owner_id,
            "document_id": self.document_id,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }
