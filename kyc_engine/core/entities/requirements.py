"""
Entity: Requirement Groups

Describe which document types satisfy one verification requirement and how
(ALL_OF every member, or ONE_OF any member). Read-only at runtime.
"""

from dataclasses import dataclass
from enum import Enum

from kyc_engine.core.entities.document import DocumentType


class SatisfactionMode(str, Enum):
    ALL_OF = "ALL_OF"
    ONE_OF = "ONE_OF"


@dataclass(frozen=True)
class RequirementGroup:
    """Um grupo de requisitos (ex: passaporte OU identidade nacional)."""
    group_id: str
    document_types: frozenset[DocumentType]
    satisfaction_mode: SatisfactionMode = SatisfactionMode.ALL_OF
    optional: bool = False
    label: str = ""

    @property
    def required(self) -> bool:
        return not self.optional


@dataclass(frozen=True)
class CatalogVersion:
    """A versioned set of requirement groups keyed by verification purpose."""
    version: str
    purposes: dict[str, tuple[RequirementGroup, ...]]

    def document_types(self) -> frozenset[DocumentType]:
        return frozenset(
            doc_type
            for groups in self.purposes.values()
            for group in groups
            for doc_type in group.document_types
        )
