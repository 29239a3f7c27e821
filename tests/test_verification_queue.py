"""
Tests for the Verification Queue Service (worklist, counts, stats).
"""

from datetime import timedelta

import pytest

from kyc_engine.core.entities.document import VerificationStatus
from kyc_engine.core.errors import InvalidTypeError, ValidationFailedError
from kyc_engine.core.use_cases.verification_queue import QueueFilter, VerificationQueueService


@pytest.fixture
def queue(store, clock):
    return VerificationQueueService(store, default_page_size=20, max_page_size=50, clock=clock)


@pytest.fixture
def mixed(submit, manager, clock):
    """One document per status (except EXPIRED), submitted a minute apart."""
    docs = {}
    docs["pending"] = submit("alice", "passport", document_number="P-111")
    clock.advance(minutes=1)
    docs["review"] = submit("bob", "national_id", document_number="ID-222")
    manager.claim_for_review(docs["review"].id, "rev-1")
    clock.advance(minutes=1)
    docs["verified"] = submit("carol", "address_proof")
    manager.decide(docs["verified"].id, "rev-1", "VERIFIED")
    clock.advance(minutes=1)
    docs["rejected"] = submit("dave", "passport")
    manager.decide(docs["rejected"].id, "rev-2", "REJECTED", rejection_reason="Unreadable scan")
    clock.advance(minutes=1)
    return docs


# ============================================================================
# WORKLIST
# ============================================================================

def test_default_queue_is_pending_and_under_review(queue, mixed):
    page = queue.list_queue()

    assert [d.id for d in page.items] == [mixed["pending"].id, mixed["review"].id]
    assert page.total == 2


def test_status_counts_cover_every_status(queue, mixed):
    page = queue.list_queue()

    assert page.status_counts == {
        "PENDING": 1,
        "UNDER_REVIEW": 1,
        "VERIFIED": 1,
        "REJECTED": 1,
        "EXPIRED": 0,
    }


def test_explicit_statuses_widen_the_queue(queue, mixed):
    page = queue.list_queue(QueueFilter(statuses=["verified", "REJECTED"]))

    assert {d.id for d in page.items} == {mixed["verified"].id, mixed["rejected"].id}


def test_filter_by_document_type(queue, mixed):
    page = queue.list_queue(QueueFilter(document_type="national_id"))

    assert [d.id for d in page.items] == [mixed["review"].id]
    assert page.status_counts["PENDING"] == 0


@pytest.mark.parametrize("term", ["ALICE", "p-111", "  alice "])
def test_search_by_owner_or_document_number(queue, mixed, term):
    page = queue.list_queue(QueueFilter(search_term=term))

    assert [d.id for d in page.items] == [mixed["pending"].id]


def test_pagination(queue, submit, clock):
    ids = []
    for i in range(5):
        ids.append(submit(f"owner-{i}", "passport").id)
        clock.advance(minutes=1)

    first = queue.list_queue(page=1, page_size=2)
    last = queue.list_queue(page=3, page_size=2)

    assert [d.id for d in first.items] == ids[:2]
    assert first.has_next and not first.has_prev
    assert [d.id for d in last.items] == ids[4:]
    assert last.has_prev and not last.has_next
    assert last.total == 5


def test_oldest_submission_first(queue, submit, clock):
    later = submit("owner-b", "passport")
    clock.advance(minutes=-30)
    earlier = submit("owner-a", "passport")

    page = queue.list_queue()

    assert [d.id for d in page.items] == [earlier.id, later.id]


def test_retired_documents_leave_the_queue(queue, submit, manager, clock):
    old = submit("owner-1", "passport")
    manager.decide(old.id, "rev-1", "REJECTED", rejection_reason="Cropped image")
    clock.advance(minutes=1)
    submit("owner-1", "passport")

    page = queue.list_queue(QueueFilter(statuses=["REJECTED"]))

    assert page.items == []


@pytest.mark.parametrize("page, size", [(0, 10), (1, -1), (1, 51)])
def test_invalid_paging(queue, page, size):
    with pytest.raises(ValidationFailedError):
        queue.list_queue(page=page, page_size=size)


def test_invalid_filter_type(queue):
    with pytest.raises(InvalidTypeError):
        queue.list_queue(QueueFilter(document_type="selfie"))


def test_listing_never_mutates(queue, mixed, store):
    versions = {key: store.get(d.id).version for key, d in mixed.items()}

    queue.list_queue(QueueFilter(statuses=list(VerificationStatus)))

    assert {key: store.get(d.id).version for key, d in mixed.items()} == versions


# ============================================================================
# STATS
# ============================================================================

def test_stats(queue, submit, manager, clock):
    first = submit("owner-1", "passport")
    clock.advance(hours=2)
    manager.decide(first.id, "rev-1", "VERIFIED")
    second = submit("owner-2", "address_proof")
    clock.advance(hours=4)
    manager.decide(second.id, "rev-1", "VERIFIED")
    third = submit("owner-3", "passport")
    manager.decide(third.id, "rev-2", "REJECTED", rejection_reason="Wrong person")
    submit("owner-4", "national_id")

    stats = queue.get_stats(now=clock.now)

    assert stats.total_documents == 4
    assert stats.status_counts["VERIFIED"] == 2
    assert stats.type_counts == {"passport": 2, "address_proof": 1, "national_id": 1}
    assert stats.verification_rate == 50
    assert stats.verified_last_24h == 2
    assert stats.avg_verification_hours == 3.0
    assert [(r.reviewer_id, r.verified, r.rejected) for r in stats.reviewers] == [("rev-1", 2, 0), ("rev-2", 0, 1)]


def test_stats_daily_trend(queue, submit, manager, clock):
    old = submit("owner-1", "passport")
    manager.decide(old.id, "rev-1", "VERIFIED")
    clock.advance(hours=30)
    for i in range(2):
        document = submit(f"owner-{i + 2}", "passport")
        manager.decide(document.id, "rev-1", "VERIFIED")

    stats = queue.get_stats(now=clock.now + timedelta(hours=1))

    assert stats.verified_last_24h == 2
    assert stats.verified_previous_24h == 1
    assert stats.daily_trend == 100


def test_stats_on_empty_store(queue):
    stats = queue.get_stats()

    assert stats.total_documents == 0
    assert stats.verification_rate == 0
    assert stats.avg_verification_hours == 0.0
