"""
Service wiring — build use cases with concrete adapters.

Routes get a KycServices bundle through FastAPI's Depends(get_services);
tests swap it with app.dependency_overrides.
"""

from dataclasses import dataclass

from sqlalchemy.orm import sessionmaker

from kyc_engine.config.settings import Settings, get_settings
from kyc_engine.core.interfaces.document_store import IDocumentStore
from kyc_engine.core.interfaces.event_sink import IEventSink
from kyc_engine.core.interfaces.requirement_catalog import IRequirementCatalog
from kyc_engine.core.use_cases.aggregate_status import GetAggregateStatusUseCase
from kyc_engine.core.use_cases.expiry_sweep import ExpirySweepUseCase
from kyc_engine.core.use_cases.history_ledger import HistoryLedger
from kyc_engine.core.use_cases.transition_manager import TransitionManager
from kyc_engine.core.use_cases.verification_queue import VerificationQueueService
from kyc_engine.infrastructure.catalog.static_catalog import StaticRequirementCatalog
from kyc_engine.infrastructure.db.repository import SqlDocumentStore
from kyc_engine.infrastructure.events.sinks import (
    CompositeEventSink,
    LoggingEventSink,
    SqlNotificationSink,
)


@dataclass
class KycServices:
    store: IDocumentStore
    catalog: IRequirementCatalog
    manager: TransitionManager
    queue: VerificationQueueService
    status: GetAggregateStatusUseCase
    ledger: HistoryLedger
    sweep: ExpirySweepUseCase
    settings: Settings


def build_catalog(settings: Settings) -> StaticRequirementCatalog:
    active = settings.catalog_version or None
    if settings.catalog_path:
        return StaticRequirementCatalog.from_json(settings.catalog_path, active_version=active)
    return StaticRequirementCatalog(active_version=active)


def build_services(
    settings: Settings,
    store: IDocumentStore | None = None,
    catalog: IRequirementCatalog | None = None,
    event_sink: IEventSink | None = None,
    session_factory: sessionmaker | None = None,
) -> KycServices:
    """Factory — every collaborator can be replaced (tests pass in-memory ones)."""
    store = store or SqlDocumentStore(session_factory)
    catalog = catalog or build_catalog(settings)
    if event_sink is None:
        event_sink = CompositeEventSink([LoggingEventSink(), SqlNotificationSink(session_factory)])

    manager = TransitionManager(
        store=store,
        catalog=catalog,
        event_sink=event_sink,
        purpose=settings.default_purpose,
        rejection_reason_min_length=settings.rejection_reason_min_length,
        rejection_reason_max_length=settings.rejection_reason_max_length,
    )
    return KycServices(
        store=store,
        catalog=catalog,
        manager=manager,
        queue=VerificationQueueService(
            store,
            default_page_size=settings.queue_default_page_size,
            max_page_size=settings.queue_max_page_size,
        ),
        status=GetAggregateStatusUseCase(store, catalog, default_purpose=settings.default_purpose),
        ledger=HistoryLedger(store),
        sweep=ExpirySweepUseCase(store, manager, batch_size=settings.sweep_batch_size),
        settings=settings,
    )


# Lazy singleton
_services: KycServices | None = None


def get_services() -> KycServices:
    global _services
    if _services is None:
        _services = build_services(get_settings())
    return _services
