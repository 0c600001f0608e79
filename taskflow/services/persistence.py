"""Persistence backends and the fallback coordinator.

Two interchangeable strategies load and save a user's task collection:
``RemoteBackend`` (the networked store of record) and ``CacheBackend`` (the
device-local fallback). Both report outcomes as ``Ok``/``Err`` results. The
``FallbackCoordinator`` prefers the remote store and degrades to the cache
without ever surfacing a persistence failure to its caller.
"""
import asyncio
import itertools
import logging
from typing import Dict, List, Sequence

from taskflow.config import REMOTE_ORDER_BY, cache_key_for
from taskflow.database import DatabaseError, LocalCache
from taskflow.database.helpers import _deserialize_tasks, _serialize_tasks
from taskflow.models.entities import Identity, Task
from taskflow.remote import RemoteStoreClient, RemoteStoreError
from taskflow.results import Err, Ok, Result

logger = logging.getLogger(__name__)


class CacheBackend:
    """Tasks stored as one JSON document per identity in the local cache."""

    def __init__(self, cache: LocalCache) -> None:
        self.cache = cache

    async def load(self, identity: str) -> Result[List[Task]]:
        try:
            payload = await self.cache.read(cache_key_for(identity))
        except DatabaseError as e:
            return Err(f"Cache read failed: {e}", e)
        if payload is None:
            return Ok([])
        try:
            return Ok([Task.from_dict(d) for d in _deserialize_tasks(payload)])
        except (ValueError, KeyError, TypeError) as e:
            return Err(f"Corrupt cache entry: {e}", e)

    async def save(self, identity: str, tasks: Sequence[Task]) -> Result[None]:
        try:
            await self.cache.write(
                cache_key_for(identity),
                _serialize_tasks([t.to_dict() for t in tasks]),
            )
        except DatabaseError as e:
            return Err(f"Cache write failed: {e}", e)
        return Ok(None)

    async def purge(self, identity: str) -> Result[None]:
        try:
            await self.cache.remove(cache_key_for(identity))
        except DatabaseError as e:
            return Err(f"Cache purge failed: {e}", e)
        return Ok(None)


class RemoteBackend:
    """Tasks stored as rows of the remote table, owned by the identity."""

    def __init__(self, client: RemoteStoreClient) -> None:
        self.client = client

    async def load(self, identity: str) -> Result[List[Task]]:
        try:
            rows = await self.client.query(identity, REMOTE_ORDER_BY)
        except RemoteStoreError as e:
            return Err(f"Remote query failed: {e}", e)
        try:
            return Ok([Task.from_record(r) for r in rows])
        except (ValueError, KeyError, TypeError) as e:
            return Err(f"Malformed remote row: {e}", e)

    async def save(self, identity: str, tasks: Sequence[Task]) -> Result[None]:
        """Upsert the snapshot, then delete the identity's rows it no longer holds."""
        keep = {t.id for t in tasks}
        try:
            await self.client.upsert([t.to_record(identity) for t in tasks])
            rows = await self.client.query(identity, REMOTE_ORDER_BY)
            stale = [str(r["id"]) for r in rows if str(r["id"]) not in keep]
            for task_id in stale:
                await self.client.delete(task_id, identity)
        except RemoteStoreError as e:
            return Err(f"Remote save failed: {e}", e)
        except (KeyError, TypeError) as e:
            return Err(f"Malformed remote row: {e}", e)
        return Ok(None)


class FallbackCoordinator:
    """Loads and saves a user's tasks, remote first, local cache on failure.

    Saves are serialized per identity and tagged with a sequence number: a
    save superseded by a newer request is skipped, and nothing older than the
    last committed save is ever written.
    """

    def __init__(self, remote: RemoteBackend, cache: CacheBackend) -> None:
        self.remote = remote
        self.cache = cache
        self._sequence = itertools.count(1)
        self._requested: Dict[str, int] = {}
        self._committed: Dict[str, int] = {}
        self._save_locks: Dict[str, asyncio.Lock] = {}

    async def load(self, identity: Identity) -> List[Task]:
        """Return the identity's tasks, newest first when they come from the remote."""
        if identity is None:
            return []

        result = await self.remote.load(identity)
        if isinstance(result, Ok):
            mirrored = await self.cache.save(identity, result.value)
            if isinstance(mirrored, Err):
                logger.warning(f"Could not refresh local cache for {identity}: {mirrored.reason}")
            return result.value

        logger.warning(f"Remote load for {identity} failed ({result.reason}); falling back to local cache")
        cached = await self.cache.load(identity)
        if isinstance(cached, Ok):
            return cached.value
        logger.error(f"Local cache load for {identity} failed: {cached.reason}")
        return []

    async def save(self, identity: Identity, tasks: Sequence[Task]) -> None:
        if identity is None:
            return

        snapshot = list(tasks)
        seq = next(self._sequence)
        self._requested[identity] = seq
        lock = self._save_locks.setdefault(identity, asyncio.Lock())

        async with lock:
            if seq < self._requested[identity] or seq <= self._committed.get(identity, 0):
                logger.debug(f"Save #{seq} for {identity} superseded by a newer snapshot")
                return

            result = await self.remote.save(identity, snapshot)
            if isinstance(result, Err):
                logger.warning(f"Remote save for {identity} failed ({result.reason}); writing local cache")
            cached = await self.cache.save(identity, snapshot)
            if isinstance(cached, Err):
                logger.error(f"Local cache save for {identity} failed: {cached.reason}")
            self._committed[identity] = seq

    async def purge(self, identity: Identity) -> None:
        """Remove the identity's local cache entry entirely."""
        if identity is None:
            return
        result = await self.cache.purge(identity)
        if isinstance(result, Err):
            logger.error(f"Could not purge local cache for {identity}: {result.reason}")
