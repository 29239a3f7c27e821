"""
Adapters: Event Sinks

  - LoggingEventSink:      structured log line per event
  - RecordingEventSink:    keeps events in memory (tests, local debugging)
  - SqlNotificationSink:   writes owner-facing notifications to kyc_notifications
  - CompositeEventSink:    fan-out to several sinks
"""

import logging
import threading

from sqlalchemy.orm import sessionmaker

from kyc_engine.core.entities.events import EventType, VerificationEvent
from kyc_engine.core.interfaces.event_sink import IEventSink
from kyc_engine.infrastructure.db.database import get_db
from kyc_engine.infrastructure.db.models import NotificationRecord

logger = logging.getLogger(__name__)


class LoggingEventSink(IEventSink):
    def __init__(self, level: int = logging.INFO):
        self._level = level

    def publish(self, event: VerificationEvent) -> None:
        logger.log(
            self._level,
            f"[{event.event_type.value}] owner={event.owner_id} document={event.document_id} "
            f"{event.old_status} -> {event.new_status}",
        )


class RecordingEventSink(IEventSink):
    def __init__(self):
        self._lock = threading.Lock()
        self.events: list[VerificationEvent] = []

    def publish(self, event: VerificationEvent) -> None:
        with self._lock:
            self.events.append(event)

    def of_type(self, event_type: EventType) -> list[VerificationEvent]:
        with self._lock:
            return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()


def _readable(document_type: str | None) -> str:
    return (document_type or "document").replace("_", " ")


def build_notification(event: VerificationEvent) -> tuple[str, str] | None:
    """(title, message) shown to the owner, or None for reviewer-only events."""
    doc = _readable(event.details.get("document_type"))
    if event.event_type == EventType.DOCUMENT_VERIFIED:
        return "Document Verified", f"Your {doc} document has been verified."
    if event.event_type == EventType.DOCUMENT_REJECTED:
        reason = event.details.get("rejection_reason", "")
        return (
            "Document Rejected",
            f"Your {doc} document has been rejected: {reason}. Please upload a new document.",
        )
    if event.event_type == EventType.DOCUMENT_EXPIRED:
        return "Document Expired", f"Your {doc} document has expired. Please upload a new document."
    if event.event_type == EventType.DOCUMENT_EXPIRING:
        return "Document Expiring Soon", f"Your {doc} document expires on {event.details.get('expires_at')}."
    if event.event_type == EventType.KYC_STATUS_CHANGED:
        if event.new_status == "VERIFIED":
            return "KYC Completed", "Your identity verification is complete."
        return "KYC Status Updated", f"Your verification status is now {event.new_status.replace('_', ' ').lower()}."
    return None


class SqlNotificationSink(IEventSink):
    """Persist owner notifications (the UI / mailer reads them from the table)."""

    def __init__(self, session_factory: sessionmaker | None = None):
        self._factory = session_factory

    def publish(self, event: VerificationEvent) -> None:
        content = build_notification(event)
        if content is None:
            return
        title, message = content
        with get_db(self._factory) as db:
            db.add(NotificationRecord(
                recipient_id=event.owner_id,
                type=event.event_type.value,
                title=title,
                message=message,
                data=event.to_dict(),
                created_at=event.timestamp,
            ))

    def list_for(self, recipient_id: str, unread_only: bool = False) -> list[dict]:
        with get_db(self._factory) as db:
            q = db.query(NotificationRecord).filter(NotificationRecord.recipient_id == recipient_id)
            if unread_only:
                q = q.filter(NotificationRecord.read.is_(False))
            return [
                {
                    "id": n.id,
                    "type": n.type,
                    "title": n.title,
                    "message": n.message,
                    "data": n.data,
                    "read": n.read,
                    "created_at": n.created_at.isoformat(),
                }
                for n in q.order_by(NotificationRecord.created_at).all()
            ]


class CompositeEventSink(IEventSink):
    """Fan-out; one failing sink does not starve the others."""

    def __init__(self, sinks: list[IEventSink]):
        self._sinks = list(sinks)

    def publish(self, event: VerificationEvent) -> None:
        failures = []
        for sink in self._sinks:
            try:
                sink.publish(event)
            except Exception as e:
                logger.warning(f"{type(sink).__name__} failed for {event.event_type.value}: {e}")
                failures.append(e)
        if failures and len(failures) == len(self._sinks):
            raise failures[0]
