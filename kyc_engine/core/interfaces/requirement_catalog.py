"""
Contract: Requirement Catalog

Descrição estática e versionada dos documentos exigidos por finalidade
de verificação (ex: "identity_kyc").
"""

from abc import ABC, abstractmethod

from kyc_engine.core.entities.document import DocumentType
from kyc_engine.core.entities.requirements import RequirementGroup


class IRequirementCatalog(ABC):
    """
    Port: Requirement Catalog

    Changing the active version only alters aggregation going forward; it
    never touches the status of already-decided documents.
    """

    @property
    @abstractmethod
    def active_version(self) -> str:
        ...

    @abstractmethod
    def resolve(self, purpose: str) -> list[RequirementGroup]:
        """
        Requirement groups for a purpose in the active version.

        Raises:
            NotFoundError: unknown purpose.
        """
        ...

    @abstractmethod
    def purposes(self) -> list[str]:
        ...

    @abstractmethod
    def known_document_types(self) -> frozenset[DocumentType]:
        """Every document type referenced by the active version."""
        ...
