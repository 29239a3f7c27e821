"""
Demo data — a handful of owners in different KYC states.

Goes through the Transition Manager so every demo document has a real
history trail. Used by the API startup (LOAD_DEMO_DATA=true) and by
scripts/seed_demo.py.
"""

import logging
from datetime import timedelta

from kyc_engine.api.services import KycServices
from kyc_engine.core.entities.document import utcnow
from kyc_engine.core.interfaces.document_store import DocumentQuery
from kyc_engine.core.use_cases.transition_manager import SubmissionPayload

logger = logging.getLogger(__name__)

DEMO_REVIEWER = "demo-reviewer"


def load_demo_data(services: KycServices) -> int:
    """Seed demo owners; returns the number of documents created (0 if the store is not empty)."""
    existing = sum(services.store.status_counts(DocumentQuery(include_retired=True)).values())
    if existing > 0:
        logger.info(f"Store already has {existing} documents, skipping demo load")
        return 0

    manager = services.manager
    now = utcnow()
    created = 0

    def submit(owner: str, doc_type: str, number: str, expires_in_days: int | None = None):
        nonlocal created
        expires = now + timedelta(days=expires_in_days) if expires_in_days is not None else None
        created += 1
        return manager.submit(owner, doc_type, SubmissionPayload(
            file_ref=f"uploads/{owner}/{doc_type}.pdf",
            expires_at=expires,
            document_number=number,
        ))

    # Fully verified
    for doc_type, number in (("passport", "P1234567"), ("address_proof", "UTIL-2024-001")):
        doc = submit("demo-owner-verified", doc_type, number, expires_in_days=365)
        manager.claim_for_review(doc.id, DEMO_REVIEWER)
        manager.decide(doc.id, DEMO_REVIEWER, "VERIFIED", notes="Demo: all checks passed")

    # Waiting on the queue
    submit("demo-owner-pending", "national_id", "ID-998877")
    submit("demo-owner-pending", "address_proof", "BANK-STMT-12")

    # Rejected identity, verified address
    doc = submit("demo-owner-rejected", "passport", "X0000000")
    manager.decide(doc.id, DEMO_REVIEWER, "REJECTED", rejection_reason="Document image is unreadable")
    doc = submit("demo-owner-rejected", "address_proof", "LEASE-77")
    manager.decide(doc.id, DEMO_REVIEWER, "VERIFIED")

    # Verified passport about to expire
    doc = submit("demo-owner-expiring", "passport", "P7654321", expires_in_days=10)
    manager.decide(doc.id, DEMO_REVIEWER, "VERIFIED", notes="Demo: expires soon")

    logger.info(f"Loaded {created} demo documents")
    return created
