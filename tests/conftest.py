import itertools

import pytest

from lifelog.server.api.event.service import EventService
from tests.fixtures.memory_store import MemoryGateway, MemoryRowStore


@pytest.fixture
def store():
    return MemoryRowStore()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"evt-{next(counter):04d}"


@pytest.fixture
def service(store, id_factory):
    return EventService(
        connection_factory=store.connect,
        gateway_factory=MemoryGateway,
        id_factory=id_factory,
    )


@pytest.fixture
def postgres_env(monkeypatch, tmp_path):
    """Mandatory database variables plus an isolated (empty) env file."""
    monkeypatch.setenv("LIFELOG_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("POSTGRES_USER", "lifelog")
    monkeypatch.setenv("POSTGRES_PASSWORD", "secret")
    monkeypatch.setenv("POSTGRES_DB", "lifelog")
    monkeypatch.setenv("POSTGRES_HOST", "localhost")
    monkeypatch.setenv("POSTGRES_PORT", "5432")
    for name in ("LIFELOG_PORT", "LIFELOG_SCHEMA", "LIFELOG_DEBUG", "LIFELOG_STATEMENT_TIMEOUT_MS",
                 "LIFELOG_OPERATION_TIMEOUT", "LIFELOG_POOL_MIN_SIZE", "LIFELOG_POOL_MAX_SIZE"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
