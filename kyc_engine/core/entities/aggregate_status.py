"""
Entity: Aggregate Status

Derived trust state for a person, computed from all their documents against
a requirement catalog. Never persisted; recomputed on demand.
"""

from dataclasses import dataclass, field
from enum import Enum

from kyc_engine.core.entities.document import DocumentType, VerificationStatus


class AggregateState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    INCOMPLETE = "INCOMPLETE"
    PENDING_REVIEW = "PENDING_REVIEW"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class GroupSatisfaction(str, Enum):
    FULL = "FULL"              # every needed member VERIFIED
    PARTIAL = "PARTIAL"        # uploaded, waiting on review
    UNSATISFIED = "UNSATISFIED"


@dataclass(frozen=True)
class GroupProgress:
    """Per-group breakdown, used by progress/steps UIs."""
    group_id: str
    optional: bool
    satisfaction: GroupSatisfaction
    member_statuses: dict[DocumentType, VerificationStatus | None] = field(default_factory=dict)


@dataclass(frozen=True)
class AggregateStatus:
    status: AggregateState
    completion_percentage: int                      # 0..100
    missing_requirements: tuple[str, ...] = ()      # group ids not fully satisfied
    groups: tuple[GroupProgress, ...] = ()
    generation: str = ""                            # stamp of the document set used

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "completion_percentage": self.completion_percentage,
            "missing_requirements": list(self.missing_requirements),
            "generation": self.generation,
            "groups": [
                {
                    "group_id": g.group_id,
                    "optional": g.optional,
                    "satisfaction": g.satisfaction.value,
                    "member_statuses": {
                        t.value: (s.value if s else None)
                        for t, s in g.member_statuses.items()
                    },
                }
                for g in self.groups
            ],
        }
