"""Shared fixtures for TaskFlow tests."""
from pathlib import Path

import pytest
import pytest_asyncio

from taskflow.api import TaskFlowAPI
from taskflow.core import ServiceContainer, bootstrap, shutdown
from taskflow.database import LocalCache
from taskflow.events import EventBus
from taskflow.services.persistence import CacheBackend, FallbackCoordinator, RemoteBackend
from taskflow.services.task_store import TaskStore

from .fakes import FakeRemoteStore


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest_asyncio.fixture
async def cache() -> LocalCache:
    """A fresh in-memory SQLite cache per test."""
    cache = LocalCache(":memory:")
    yield cache
    await cache.close()


@pytest.fixture
def coordinator(remote: FakeRemoteStore, cache: LocalCache) -> FallbackCoordinator:
    return FallbackCoordinator(RemoteBackend(remote), CacheBackend(cache))


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store(event_bus: EventBus) -> TaskStore:
    return TaskStore(event_bus)


@pytest_asyncio.fixture
async def services(remote: FakeRemoteStore) -> ServiceContainer:
    """A fully wired container over the fake remote and an in-memory cache."""
    svc = await bootstrap(db_path=Path(":memory:"), remote=remote)
    yield svc
    await shutdown(svc)


@pytest.fixture
def api(services: ServiceContainer) -> TaskFlowAPI:
    return TaskFlowAPI(services)
