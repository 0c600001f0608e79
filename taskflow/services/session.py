"""Identity-scoped session tying the task store to persistence.

The session owns the lifecycle of one signed-in user: it loads their tasks,
writes every store mutation through to the fallback coordinator, and keeps a
change-feed subscription that triggers authoritative reloads.

Every identity switch bumps an epoch token. Loads and feed callbacks carry the
epoch they were started under and are discarded if it is no longer current,
so a slow load for a previous user can never leak into the new user's view.
"""
import asyncio
import logging
from typing import Callable, List, Optional, Protocol, Set

from taskflow.events import AppEvent, EventBus, MUTATION_EVENTS, Subscription
from taskflow.models.entities import Identity
from taskflow.services.change_feed import ChangeFeedSubscriber, FeedHandle
from taskflow.services.persistence import FallbackCoordinator
from taskflow.services.task_store import TaskStore

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    """External auth collaborator."""

    @property
    def current(self) -> Identity: ...

    def on_change(self, callback: Callable[[Identity], None]) -> Callable[[], None]: ...


class TaskSession:

    def __init__(
        self,
        store: TaskStore,
        coordinator: FallbackCoordinator,
        feed: ChangeFeedSubscriber,
        event_bus: EventBus,
    ) -> None:
        self.store = store
        self.coordinator = coordinator
        self.feed = feed
        self.event_bus = event_bus

        self._identity: Identity = None
        self._requested: Identity = None
        self._switch: Optional[asyncio.Task] = None
        self._replaced_before_ready = False
        self._epoch = 0
        self._ready = False
        self._reload_generation = 0
        self._feed_handle: Optional[FeedHandle] = None
        self._pending_saves: Set[asyncio.Task] = set()
        self._reloads: Set[asyncio.Task] = set()
        self._provider_unsubscribe: Optional[Callable[[], None]] = None
        self._subscriptions: List[Subscription] = [
            event_bus.subscribe(event, self._on_store_mutated) for event in MUTATION_EVENTS
        ]
        self._subscriptions.append(
            event_bus.subscribe(AppEvent.TASKS_REPLACED, self._on_store_replaced)
        )

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def ready(self) -> bool:
        """True once the current identity's initial load has been applied."""
        return self._ready

    # ---- identity lifecycle ----

    async def set_identity(self, identity: Identity) -> None:
        """Switch to ``identity`` (None signs out). Same identity is a no-op."""
        self._requested = identity
        if identity == self._identity:
            return

        self._epoch += 1
        epoch = self._epoch
        self._teardown_feed()
        self._cancel_reloads()
        self._identity = identity
        self._ready = False
        self._replaced_before_ready = False
        self.store.hydrate([])
        self.event_bus.emit(AppEvent.IDENTITY_CHANGED, identity)

        if identity is None:
            self._ready = True
            self.event_bus.emit(AppEvent.REFRESH_UI)
            return

        self._feed_handle = self.feed.subscribe(identity, lambda: self._on_remote_change(epoch))
        await self._initial_load(identity, epoch)

    def follow(self, provider: IdentityProvider) -> None:
        """Track an identity provider: adopt its current identity and every change."""
        self._unfollow()
        self._provider_unsubscribe = provider.on_change(self._on_identity_changed)
        self._on_identity_changed(provider.current)

    def _on_identity_changed(self, identity: Identity) -> None:
        if identity == self._requested:
            return
        self._requested = identity
        if self._switch is not None:
            self._switch.cancel()
        task = asyncio.get_running_loop().create_task(self.set_identity(identity))
        self._switch = task
        self._reloads.add(task)
        task.add_done_callback(self._reloads.discard)

    def _unfollow(self) -> None:
        if self._provider_unsubscribe is not None:
            self._provider_unsubscribe()
            self._provider_unsubscribe = None

    async def _initial_load(self, identity: str, epoch: int) -> None:
        revision = self.store.revision
        tasks = await self.coordinator.load(identity)
        if epoch != self._epoch:
            logger.info(f"Discarding load for {identity}: identity changed while loading")
            return

        if self.store.revision != revision and self._replaced_before_ready:
            # The collection was replaced wholesale (import, clear) while loading
            self._ready = True
            self._schedule_save()
        elif self.store.revision != revision:
            # Tasks created before the load finished go on top of the loaded ones
            local = self.store.tasks
            local_ids = {t.id for t in local}
            self.store.hydrate(local + [t for t in tasks if t.id not in local_ids])
            self._ready = True
            self._schedule_save()
        else:
            self.store.hydrate(tasks)
            self._ready = True
        logger.debug(f"Loaded {len(self.store)} tasks for {identity}")
        self.event_bus.emit(AppEvent.REFRESH_UI)

    # ---- change feed ----

    def _on_remote_change(self, epoch: int) -> None:
        if epoch != self._epoch:
            logger.debug("Ignoring change notification from a previous identity")
            return
        self._reload_generation += 1
        task = asyncio.get_running_loop().create_task(
            self._reload(self._identity, epoch, self._reload_generation)
        )
        self._reloads.add(task)
        task.add_done_callback(self._reloads.discard)

    async def _reload(self, identity: str, epoch: int, generation: int) -> None:
        """Re-fetch the authoritative list after our own pending writes landed."""
        await self.flush()
        revision = self.store.revision
        tasks = await self.coordinator.load(identity)
        if epoch != self._epoch or generation != self._reload_generation:
            logger.debug(f"Discarding superseded reload for {identity}")
            return
        if self.store.revision != revision:
            # A local write is in flight; its echo will trigger a fresh reload
            logger.debug(f"Discarding reload for {identity}: store changed meanwhile")
            return
        self.store.hydrate(tasks)
        self.event_bus.emit(AppEvent.REFRESH_UI)

    def _teardown_feed(self) -> None:
        if self._feed_handle is not None:
            self._feed_handle.unsubscribe()
            self._feed_handle = None

    def _cancel_reloads(self) -> None:
        for task in list(self._reloads):
            if task is not asyncio.current_task():
                task.cancel()

    # ---- write-through ----

    def _on_store_replaced(self, _data) -> None:
        if self._identity is not None and not self._ready:
            self._replaced_before_ready = True

    def _on_store_mutated(self, _data) -> None:
        if self._identity is None or not self._ready:
            # Anonymous: nothing to persist to. Not loaded yet: merged on load.
            return
        self._schedule_save()

    def _schedule_save(self) -> None:
        task = asyncio.get_running_loop().create_task(
            self.coordinator.save(self._identity, self.store.snapshot())
        )
        self._pending_saves.add(task)
        task.add_done_callback(self._save_done)

    def _save_done(self, task: asyncio.Task) -> None:
        self._pending_saves.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Unexpected error while saving tasks: {task.exception()!r}")

    async def flush(self) -> None:
        """Wait until every scheduled save has finished."""
        while self._pending_saves:
            await asyncio.wait(list(self._pending_saves))

    async def wait_idle(self) -> None:
        """Wait for in-flight identity switches, reloads and saves."""
        while self._reloads or self._pending_saves:
            await asyncio.wait(list(self._reloads | self._pending_saves))

    # ---- bulk operations ----

    async def clear_all(self) -> None:
        """Delete every task and purge the local fallback copy."""
        self.store.replace_all([])
        await self.flush()
        await self.coordinator.purge(self._identity)
        self.event_bus.emit(AppEvent.DATA_RESET)

    async def close(self) -> None:
        """End the session: no dangling subscriptions or background work."""
        self._unfollow()
        self._epoch += 1
        self._teardown_feed()
        self._cancel_reloads()
        await self.flush()
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()
