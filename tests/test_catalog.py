"""
Tests for the Requirement Catalog (built-in versions + JSON loading).
"""

import json

import pytest

from kyc_engine.core.entities.document import DocumentType
from kyc_engine.core.entities.requirements import CatalogVersion, RequirementGroup, SatisfactionMode
from kyc_engine.core.errors import CatalogDefinitionError, NotFoundError
from kyc_engine.infrastructure.catalog.static_catalog import StaticRequirementCatalog


def _version(*groups, version="test-v1", purpose="identity_kyc"):
    return CatalogVersion(version=version, purposes={purpose: tuple(groups)})


def _group(group_id, *types, mode=SatisfactionMode.ALL_OF, optional=False):
    return RequirementGroup(
        group_id=group_id,
        document_types=frozenset(DocumentType(t) for t in types),
        satisfaction_mode=mode,
        optional=optional,
    )


# ============================================================================
# BUILT-IN CATALOG
# ============================================================================

def test_latest_version_is_active_by_default(catalog):
    assert catalog.active_version == "kyc-v1.1"
    assert catalog.versions() == ["kyc-v1.0", "kyc-v1.1"]
    assert set(catalog.purposes()) == {"identity_kyc", "professional_kyc"}


def test_identity_kyc_groups(catalog):
    groups = {g.group_id: g for g in catalog.resolve("identity_kyc")}

    assert groups["identity"].satisfaction_mode == SatisfactionMode.ONE_OF
    assert groups["identity"].document_types == {DocumentType.PASSPORT, DocumentType.NATIONAL_ID}
    assert groups["address"].required
    assert groups["professional_documents"].optional


def test_unknown_purpose_is_not_found(catalog):
    with pytest.raises(NotFoundError) as exc_info:
        catalog.resolve("mortgage")

    assert exc_info.value.details["purpose"] == "mortgage"


def test_pinned_older_version():
    catalog = StaticRequirementCatalog(active_version="kyc-v1.0")

    assert catalog.purposes() == ["identity_kyc"]
    with pytest.raises(NotFoundError):
        catalog.resolve("professional_kyc")


def test_unknown_version_is_not_found():
    with pytest.raises(NotFoundError):
        StaticRequirementCatalog(active_version="kyc-v9")


def test_known_document_types(catalog):
    known = catalog.known_document_types()

    assert DocumentType.WORK_PERMIT in known
    assert DocumentType.DRIVER_LICENSE not in known
    assert DocumentType.OTHER not in known


def test_resolve_returns_a_copy(catalog):
    catalog.resolve("identity_kyc").clear()

    assert len(catalog.resolve("identity_kyc")) == 3


# ============================================================================
# CATALOG RULES
# ============================================================================

def test_type_in_two_groups_is_rejected():
    version = _version(
        _group("identity", "passport", "national_id", mode=SatisfactionMode.ONE_OF),
        _group("travel", "passport"),
    )

    with pytest.raises(CatalogDefinitionError) as exc_info:
        StaticRequirementCatalog((version,))

    assert "passport" in str(exc_info.value)


def test_same_type_in_different_purposes_is_allowed():
    version = CatalogVersion(
        version="test-v1",
        purposes={
            "a": (_group("identity", "passport"),),
            "b": (_group("identity", "passport"),),
        },
    )

    catalog = StaticRequirementCatalog((version,))

    assert catalog.resolve("b")[0].group_id == "identity"


def test_duplicate_group_id_is_rejected():
    version = _version(_group("identity", "passport"), _group("identity", "national_id"))

    with pytest.raises(CatalogDefinitionError):
        StaticRequirementCatalog((version,))


def test_empty_group_is_rejected():
    with pytest.raises(CatalogDefinitionError):
        StaticRequirementCatalog((_version(_group("empty")),))


def test_catalog_needs_a_version():
    with pytest.raises(CatalogDefinitionError):
        StaticRequirementCatalog(())


# ============================================================================
# JSON FILES
# ============================================================================

def test_from_json(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({
        "versions": [
            {
                "version": "custom-v1",
                "purposes": {
                    "identity_kyc": [
                        {"group_id": "identity", "mode": "ONE_OF", "document_types": ["passport", "driver_license"]},
                        {"group_id": "extras", "document_types": ["other"], "optional": True, "label": "Extras"},
                    ]
                },
            }
        ]
    }))

    catalog = StaticRequirementCatalog.from_json(path)

    identity, extras = catalog.resolve("identity_kyc")
    assert catalog.active_version == "custom-v1"
    assert identity.satisfaction_mode == SatisfactionMode.ONE_OF
    assert DocumentType.DRIVER_LICENSE in catalog.known_document_types()
    assert extras.optional and extras.label == "Extras"


@pytest.mark.parametrize("payload", [
    {},
    {"versions": [{"version": "v1"}]},
    {"versions": [{"version": "v1", "purposes": {"p": [{"group_id": "g", "document_types": ["selfie"]}]}}]},
    {"versions": [{"version": "v1", "purposes": {"p": [{"group_id": "g", "mode": "ANY", "document_types": ["passport"]}]}}]},
])
def test_invalid_json_catalog(tmp_path, payload):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(payload))

    with pytest.raises(CatalogDefinitionError):
        StaticRequirementCatalog.from_json(path)
