"""
Tests for the Status Aggregator.

Validates:
- Precedence REJECTED → EXPIRED → NOT_STARTED → INCOMPLETE → PENDING_REVIEW → VERIFIED
- ONE_OF groups count as one unit; a rejected member is masked by a live sibling
- Optional groups never demote the status nor enter the percentage
- Only the most recent non-retired document per type is considered
- Determinism
"""

import random
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from kyc_engine.core.entities.aggregate_status import AggregateState, GroupSatisfaction
from kyc_engine.core.entities.document import Document, DocumentType, VerificationStatus
from kyc_engine.core.entities.requirements import RequirementGroup, SatisfactionMode
from kyc_engine.core.use_cases.aggregate_status import aggregate, current_documents, round_half_up

BASE = datetime(2025, 1, 1, 12, 0, 0)

P = VerificationStatus.PENDING
R = VerificationStatus.UNDER_REVIEW
V = VerificationStatus.VERIFIED
X = VerificationStatus.REJECTED
E = VerificationStatus.EXPIRED

_ids = iter(range(1, 10_000))


def doc(doc_type: str, status: VerificationStatus, minutes: int = 0, retired: bool = False) -> Document:
    n = next(_ids)
    submitted = BASE + timedelta(minutes=minutes)
    return Document(
        id=f"d{n:04d}",
        owner_id="owner-1",
        document_type=DocumentType(doc_type),
        verification_status=status,
        file_ref=f"f{n}",
        submitted_at=submitted,
        updated_at=submitted,
        rejection_reason="unreadable scan" if status == X else None,
        retired_at=submitted + timedelta(days=1) if retired else None,
    )


@pytest.fixture
def groups(catalog):
    return catalog.resolve("identity_kyc")


# ============================================================================
# KYC SCENARIOS
# ============================================================================

def test_no_documents_is_not_started(groups):
    result = aggregate([], groups)

    assert result.status == AggregateState.NOT_STARTED
    assert result.completion_percentage == 0
    assert result.missing_requirements == ("identity", "address")


def test_verified_passport_and_address_is_verified(groups):
    result = aggregate([doc("passport", V), doc("address_proof", V)], groups)

    assert result.status == AggregateState.VERIFIED
    assert result.completion_percentage == 100
    assert result.missing_requirements == ()


def test_pending_passport_alone_is_incomplete(groups):
    """Address group wholly missing wins over the pending passport."""
    result = aggregate([doc("passport", P)], groups)

    assert result.status == AggregateState.INCOMPLETE
    assert result.completion_percentage == 0
    assert "address" in result.missing_requirements


def test_everything_uploaded_waiting_on_review(groups):
    result = aggregate([doc("passport", R), doc("address_proof", P)], groups)

    assert result.status == AggregateState.PENDING_REVIEW
    assert result.completion_percentage == 0


def test_partial_progress_percentage(groups):
    result = aggregate([doc("passport", V), doc("address_proof", P)], groups)

    assert result.status == AggregateState.PENDING_REVIEW
    assert result.completion_percentage == 50
    assert result.missing_requirements == ("address",)


def test_rejection_in_optional_group_does_not_demote(groups):
    documents = [doc("passport", V), doc("address_proof", V), doc("education_certificate", X)]

    result = aggregate(documents, groups)

    assert result.status == AggregateState.VERIFIED
    assert result.completion_percentage == 100


# ============================================================================
# PRECEDENCE
# ============================================================================

def test_required_rejection_is_fatal(groups):
    result = aggregate([doc("passport", V), doc("address_proof", X)], groups)

    assert result.status == AggregateState.REJECTED
    assert result.completion_percentage == 50


def test_required_expiry(groups):
    result = aggregate([doc("passport", E), doc("address_proof", V)], groups)

    assert result.status == AggregateState.EXPIRED
    assert result.missing_requirements == ("identity",)


def test_rejected_wins_over_expired(groups):
    result = aggregate([doc("passport", E), doc("address_proof", X)], groups)

    assert result.status == AggregateState.REJECTED


def test_uncatalogued_document_only_is_incomplete(groups):
    result = aggregate([doc("driver_license", V)], groups)

    assert result.status == AggregateState.INCOMPLETE
    assert result.completion_percentage == 0


# ============================================================================
# ONE_OF GROUPS
# ============================================================================

def test_rejected_member_masked_by_pending_sibling(groups):
    documents = [doc("passport", X), doc("national_id", P), doc("address_proof", V)]

    result = aggregate(documents, groups)

    assert result.status == AggregateState.PENDING_REVIEW
    identity = next(g for g in result.groups if g.group_id == "identity")
    assert identity.satisfaction == GroupSatisfaction.PARTIAL


def test_rejected_member_masked_by_verified_sibling(groups):
    documents = [doc("passport", X), doc("national_id", V), doc("address_proof", V)]

    result = aggregate(documents, groups)

    assert result.status == AggregateState.VERIFIED
    assert result.completion_percentage == 100


def test_rejected_member_without_sibling_is_rejected(groups):
    result = aggregate([doc("passport", X), doc("address_proof", V)], groups)

    assert result.status == AggregateState.REJECTED


def test_one_of_counts_a_single_unit(groups):
    documents = [doc("passport", V), doc("national_id", V)]

    result = aggregate(documents, groups)

    assert result.completion_percentage == 50
    assert result.status == AggregateState.INCOMPLETE


def test_all_of_with_missing_member_is_unsatisfied():
    group = RequirementGroup(
        group_id="qualifications",
        document_types=frozenset({DocumentType.EDUCATION_CERTIFICATE, DocumentType.PROFESSIONAL_CERTIFICATE}),
        satisfaction_mode=SatisfactionMode.ALL_OF,
    )

    result = aggregate([doc("education_certificate", V)], [group])

    assert result.status == AggregateState.INCOMPLETE
    assert result.groups[0].satisfaction == GroupSatisfaction.UNSATISFIED
    assert result.groups[0].member_statuses[DocumentType.PROFESSIONAL_CERTIFICATE] is None


# ============================================================================
# DOCUMENT SELECTION
# ============================================================================

def test_most_recent_document_per_type_wins(groups):
    documents = [
        doc("passport", X, minutes=0),
        doc("passport", P, minutes=30),
        doc("address_proof", V),
    ]

    result = aggregate(documents, groups)

    assert result.status == AggregateState.PENDING_REVIEW


def test_retired_documents_are_ignored(groups):
    result = aggregate([doc("passport", X, retired=True)], groups)

    assert result.status == AggregateState.NOT_STARTED


def test_current_documents_keeps_latest():
    older = doc("passport", X, minutes=0)
    newer = doc("passport", P, minutes=5)

    latest = current_documents([newer, older])

    assert latest[DocumentType.PASSPORT].id == newer.id


# ============================================================================
# PERCENTAGE / DETERMINISM
# ============================================================================

def test_no_required_groups_is_complete():
    optional = RequirementGroup(
        group_id="extras",
        document_types=frozenset({DocumentType.OTHER}),
        optional=True,
    )

    result = aggregate([], [optional])

    assert result.completion_percentage == 100
    assert result.missing_requirements == ()


def test_percentage_rounding():
    groups = [
        RequirementGroup(group_id=t.value, document_types=frozenset({t}))
        for t in (DocumentType.PASSPORT, DocumentType.ADDRESS_PROOF, DocumentType.WORK_PERMIT)
    ]

    one = aggregate([doc("passport", V)], groups)
    two = aggregate([doc("passport", V), doc("address_proof", V)], groups)

    assert one.completion_percentage == 33
    assert two.completion_percentage == 67


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(0.49) == 0


def test_aggregate_is_deterministic(groups):
    documents = [doc("passport", X), doc("national_id", P), doc("address_proof", V), doc("work_permit", R)]
    shuffled = list(documents)
    random.Random(7).shuffle(shuffled)

    first = aggregate(documents, groups)
    second = aggregate(documents, groups)
    third = aggregate(shuffled, groups)

    assert first == second
    assert first == third


def test_generation_changes_with_any_write(groups):
    passport = doc("passport", P)
    before = aggregate([passport], groups)

    after = aggregate([replace(passport, version=passport.version + 1)], groups)

    assert before.generation != after.generation
    assert before.status == after.status
