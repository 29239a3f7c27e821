"""
Adapter: Static Requirement Catalog

Built-in, versioned KYC requirements. A JSON file with the same shape can
replace them (settings.catalog_path):

    {
      "versions": [
        {"version": "kyc-v1.0",
         "purposes": {"identity_kyc": [
            {"group_id": "identity", "mode": "ONE_OF",
             "document_types": ["passport", "national_id"], "optional": false}
         ]}}
      ]
    }
"""

import json
import logging
from pathlib import Path

from kyc_engine.core.entities.document import DocumentType
from kyc_engine.core.entities.requirements import (
    CatalogVersion,
    RequirementGroup,
    SatisfactionMode,
)
from kyc_engine.core.errors import CatalogDefinitionError, NotFoundError
from kyc_engine.core.interfaces.requirement_catalog import IRequirementCatalog

logger = logging.getLogger(__name__)


# ── Built-in versions ──────────────────────────────────────────────

_IDENTITY = RequirementGroup(
    group_id="identity",
    document_types=frozenset({DocumentType.PASSPORT, DocumentType.NATIONAL_ID}),
    satisfaction_mode=SatisfactionMode.ONE_OF,
    label="Identity document",
)
_ADDRESS = RequirementGroup(
    group_id="address",
    document_types=frozenset({DocumentType.ADDRESS_PROOF}),
    satisfaction_mode=SatisfactionMode.ALL_OF,
    label="Proof of address",
)
_PROFESSIONAL = RequirementGroup(
    group_id="professional_documents",
    document_types=frozenset({DocumentType.EDUCATION_CERTIFICATE, DocumentType.PROFESSIONAL_CERTIFICATE}),
    satisfaction_mode=SatisfactionMode.ALL_OF,
    optional=True,
    label="Qualifications",
)

KYC_V1 = CatalogVersion(
    version="kyc-v1.0",
    purposes={
        "identity_kyc": (_IDENTITY, _ADDRESS, _PROFESSIONAL),
    },
)

KYC_V1_1 = CatalogVersion(
    version="kyc-v1.1",
    purposes={
        "identity_kyc": (_IDENTITY, _ADDRESS, _PROFESSIONAL),
        "professional_kyc": (
            _IDENTITY,
            _ADDRESS,
            RequirementGroup(
                group_id="professional_documents",
                document_types=frozenset({DocumentType.EDUCATION_CERTIFICATE, DocumentType.PROFESSIONAL_CERTIFICATE}),
                satisfaction_mode=SatisfactionMode.ONE_OF,
                label="Qualifications",
            ),
            RequirementGroup(
                group_id="work_authorization",
                document_types=frozenset({DocumentType.WORK_PERMIT}),
                optional=True,
                label="Work permit",
            ),
        ),
    },
)

BUILTIN_VERSIONS = (KYC_V1, KYC_V1_1)


def validate_version(version: CatalogVersion) -> None:
    """
    Each document type may belong to at most one group per purpose, and
    group ids are unique per purpose.
    """
    for purpose, groups in version.purposes.items():
        owners: dict[DocumentType, str] = {}
        ids: set[str] = set()
        for group in groups:
            if group.group_id in ids:
                raise CatalogDefinitionError(
                    f"Duplicate group '{group.group_id}' in {version.version}/{purpose}",
                    details={"version": version.version, "purpose": purpose},
                )
            ids.add(group.group_id)
            if not group.document_types:
                raise CatalogDefinitionError(
                    f"Group '{group.group_id}' in {version.version}/{purpose} has no document types",
                    details={"version": version.version, "purpose": purpose},
                )
            for doc_type in group.document_types:
                if doc_type in owners:
                    raise CatalogDefinitionError(
                        f"Document type '{doc_type.value}' is required by both "
                        f"'{owners[doc_type]}' and '{group.group_id}' in {version.version}/{purpose}",
                        details={"version": version.version, "purpose": purpose, "document_type": doc_type.value},
                    )
                owners[doc_type] = group.group_id


class StaticRequirementCatalog(IRequirementCatalog):
    """Catálogo em memória com múltiplas versões; uma versão ativa."""

    def __init__(self, versions: tuple[CatalogVersion, ...] = BUILTIN_VERSIONS, active_version: str | None = None):
        if not versions:
            raise CatalogDefinitionError("Catalog needs at least one version")
        self._versions: dict[str, CatalogVersion] = {}
        for version in versions:
            validate_version(version)
            self._versions[version.version] = version

        active = active_version or versions[-1].version
        if active not in self._versions:
            raise NotFoundError(f"Unknown catalog version '{active}'", details={"version": active})
        self._active = self._versions[active]
        logger.info(f"Requirement catalog active version: {active}")

    @classmethod
    def from_json(cls, path: str | Path, active_version: str | None = None) -> "StaticRequirementCatalog":
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        versions = []
        try:
            for v in raw["versions"]:
                purposes = {
                    purpose: tuple(
                        RequirementGroup(
                            group_id=g["group_id"],
                            document_types=frozenset(DocumentType(t) for t in g["document_types"]),
                            satisfaction_mode=SatisfactionMode(g.get("mode", "ALL_OF")),
                            optional=bool(g.get("optional", False)),
                            label=g.get("label", ""),
                        )
                        for g in groups
                    )
                    for purpose, groups in v["purposes"].items()
                }
                versions.append(CatalogVersion(version=v["version"], purposes=purposes))
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogDefinitionError(f"Invalid catalog file {path}: {e}") from e
        return cls(tuple(versions), active_version=active_version)

    @property
    def active_version(self) -> str:
        return self._active.version

    def versions(self) -> list[str]:
        return list(self._versions)

    def resolve(self, purpose: str) -> list[RequirementGroup]:
        groups = self._active.purposes.get(purpose)
        if groups is None:
            raise NotFoundError(
                f"Unknown verification purpose '{purpose}'",
                details={"purpose": purpose, "catalog_version": self._active.version},
            )
        return list(groups)

    def purposes(self) -> list[str]:
        return list(self._active.purposes)

    def known_document_types(self) -> frozenset[DocumentType]:
        return self._active.document_types()
