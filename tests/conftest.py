"""
Shared fixtures: fixed clock, built-in catalog, in-memory and SQLite stores,
a recording event sink and an API client wired to in-memory services.
"""

import itertools
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from kyc_engine.api.main import app
from kyc_engine.api.services import build_services, get_services
from kyc_engine.config.settings import Settings
from kyc_engine.core.use_cases.transition_manager import SubmissionPayload, TransitionManager
from kyc_engine.infrastructure.catalog.static_catalog import StaticRequirementCatalog
from kyc_engine.infrastructure.db.database import build_session_factory, create_db_engine, init_db
from kyc_engine.infrastructure.db.repository import SqlDocumentStore
from kyc_engine.infrastructure.events.sinks import RecordingEventSink
from kyc_engine.infrastructure.memory.memory_store import InMemoryDocumentStore

T0 = datetime(2025, 3, 1, 9, 0, 0)


class FakeClock:
    """Callable clock frozen at `now` until advanced."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return StaticRequirementCatalog()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def sink():
    return RecordingEventSink()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"doc-{next(counter):03d}"


@pytest.fixture
def manager(store, catalog, sink, clock, id_factory):
    return TransitionManager(store, catalog, event_sink=sink, clock=clock, id_factory=id_factory)


@pytest.fixture
def submit(manager):
    """submit(owner, doc_type, **payload) with a default file reference."""

    def _submit(owner_id: str, document_type: str, **payload):
        payload.setdefault("file_ref", f"uploads/{owner_id}/{document_type}.pdf")
        return manager.submit(owner_id, document_type, SubmissionPayload(**payload))

    return _submit


# ── SQLite ──

@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SqlDocumentStore(session_factory)


# ── API ──

@pytest.fixture
def services(store, catalog, sink):
    return build_services(Settings(database_url="sqlite://"), store=store, catalog=catalog, event_sink=sink)


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()
