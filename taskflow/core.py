"""Headless bootstrap for TaskFlow services.

Builds an explicitly constructed service container: nothing is global, so
tests and multi-account hosts can run several isolated containers side by
side.

Usage:
    from taskflow.core import bootstrap, shutdown

    svc = await bootstrap(db_path=Path("my.db"))
    await svc.session.set_identity("user-123")
    svc.store.create(TaskDraft(title="Pay invoice", due_date=date.today()))
    await shutdown(svc)
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from taskflow import config
from taskflow.database import LocalCache
from taskflow.events import EventBus
from taskflow.remote import RemoteStoreClient, RestRemoteClient, UnconfiguredRemoteClient
from taskflow.services.change_feed import ChangeFeedSubscriber
from taskflow.services.persistence import CacheBackend, FallbackCoordinator, RemoteBackend
from taskflow.services.session import TaskSession
from taskflow.services.task_store import TaskStore


@dataclass
class ServiceContainer:
    """Container holding all initialized services for one session."""
    event_bus: EventBus
    cache: LocalCache
    remote: RemoteStoreClient
    coordinator: FallbackCoordinator
    feed: ChangeFeedSubscriber
    store: TaskStore
    session: TaskSession


def default_remote_client() -> RemoteStoreClient:
    """Remote client from the environment, or one that always fails if unset."""
    if not config.REMOTE_URL:
        return UnconfiguredRemoteClient()
    return RestRemoteClient(config.REMOTE_URL, config.REMOTE_KEY)


async def bootstrap(
    db_path: Optional[Path] = None,
    remote: Optional[RemoteStoreClient] = None,
) -> ServiceContainer:
    """Initialize the service layer.

    Args:
        db_path: Local cache database path. Uses config.DB_PATH if None.
        remote: Remote store client. Built from the environment if None.

    Returns:
        ServiceContainer with all services wired and an anonymous session.
    """
    event_bus = EventBus()
    cache = LocalCache(db_path if db_path is not None else config.DB_PATH)
    remote = remote if remote is not None else default_remote_client()

    coordinator = FallbackCoordinator(RemoteBackend(remote), CacheBackend(cache))
    feed = ChangeFeedSubscriber(remote)
    store = TaskStore(event_bus)
    session = TaskSession(store, coordinator, feed, event_bus)

    return ServiceContainer(
        event_bus=event_bus,
        cache=cache,
        remote=remote,
        coordinator=coordinator,
        feed=feed,
        store=store,
        session=session,
    )


async def shutdown(services: ServiceContainer) -> None:
    """End the session and close the cache connection."""
    await services.session.close()
    await services.cache.close()
