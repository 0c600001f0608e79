"""Tests for the in-memory task store mutation API."""
from datetime import date

import pytest

from taskflow.config import TaskStatus
from taskflow.events import AppEvent, EventBus
from taskflow.models.entities import TaskDraft, TaskValidationError
from taskflow.services.task_store import TaskStore

from .fakes import make_task


class EventCollector:
    """Subscribe to events and record them for assertions."""

    def __init__(self, bus: EventBus, *events: AppEvent):
        self.received: list[tuple[AppEvent, object]] = []
        self._subs = [
            bus.subscribe(ev, lambda data, _ev=ev: self.received.append((_ev, data)))
            for ev in events
        ]

    def count(self, event: AppEvent) -> int:
        return sum(1 for ev, _ in self.received if ev == event)

    def cleanup(self):
        for sub in self._subs:
            sub.unsubscribe()


def draft(title="Write docs", **kwargs) -> TaskDraft:
    kwargs.setdefault("due_date", date(2025, 6, 1))
    return TaskDraft(title=title, **kwargs)


class TestCreate:
    def test_assigns_id_and_created_at(self, store: TaskStore):
        task = store.create(draft())
        assert task.id
        assert task.created_at.tzinfo is not None
        assert task.status == TaskStatus.PENDING

    def test_newest_first(self, store: TaskStore):
        first = store.create(draft("First"))
        second = store.create(draft("Second"))
        assert [t.id for t in store.tasks] == [second.id, first.id]

    def test_unique_ids(self, store: TaskStore):
        ids = {store.create(draft()).id for _ in range(20)}
        assert len(ids) == 20

    def test_rejects_empty_title(self, store: TaskStore):
        with pytest.raises(TaskValidationError):
            store.create(draft("   "))
        assert len(store) == 0

    def test_rejects_negative_amount(self, store: TaskStore):
        with pytest.raises(TaskValidationError):
            store.create(draft(amount=-5))

    def test_accepts_iso_due_date_with_time(self, store: TaskStore):
        task = store.create(draft(due_date="2025-03-04T18:30:00.000Z"))
        assert task.due_date == date(2025, 3, 4)

    def test_emits_task_created(self, store: TaskStore, event_bus: EventBus):
        collector = EventCollector(event_bus, AppEvent.TASK_CREATED)
        store.create(draft())
        assert collector.count(AppEvent.TASK_CREATED) == 1
        collector.cleanup()


class TestUpdate:
    def test_merges_fields_in_place(self, store: TaskStore):
        task = store.create(draft())
        store.update(task.id, title="Renamed", amount=75, due_date="2025-07-01")
        assert task.title == "Renamed"
        assert task.amount == 75
        assert task.due_date == date(2025, 7, 1)

    def test_missing_id_is_silent_noop(self, store: TaskStore, event_bus: EventBus):
        store.replace_all([make_task("a")])
        before = store.snapshot()
        collector = EventCollector(event_bus, AppEvent.TASK_UPDATED)
        store.update("missing-id", title="x")
        assert store.tasks == before
        assert collector.count(AppEvent.TASK_UPDATED) == 0
        collector.cleanup()

    def test_rejects_immutable_fields(self, store: TaskStore):
        task = store.create(draft())
        with pytest.raises(TaskValidationError):
            store.update(task.id, id="other")
        with pytest.raises(TaskValidationError):
            store.update(task.id, created_at="2020-01-01")

    def test_invalid_value_leaves_task_untouched(self, store: TaskStore):
        task = store.create(draft())
        with pytest.raises(TaskValidationError):
            store.update(task.id, title="New", amount=-1)
        assert task.title == "Write docs"

    def test_bumps_revision(self, store: TaskStore):
        task = store.create(draft())
        revision = store.revision
        store.update(task.id, category="Home")
        assert store.revision == revision + 1


class TestRemoveAndToggle:
    def test_remove(self, store: TaskStore):
        task = store.create(draft())
        store.remove(task.id)
        assert store.get(task.id) is None

    def test_remove_missing_is_noop(self, store: TaskStore):
        store.replace_all([make_task("a")])
        store.remove("nope")
        assert len(store) == 1

    def test_toggle_flips_both_ways(self, store: TaskStore, event_bus: EventBus):
        collector = EventCollector(event_bus, AppEvent.TASK_COMPLETED, AppEvent.TASK_UNCOMPLETED)
        task = store.create(draft())
        store.toggle_status(task.id)
        assert task.status == TaskStatus.COMPLETED
        store.toggle_status(task.id)
        assert task.status == TaskStatus.PENDING
        assert collector.count(AppEvent.TASK_COMPLETED) == 1
        assert collector.count(AppEvent.TASK_UNCOMPLETED) == 1
        collector.cleanup()

    def test_toggle_missing_is_noop(self, store: TaskStore):
        store.toggle_status("ghost")
        assert len(store) == 0


class TestReplaceAndHydrate:
    def test_replace_all_emits_and_counts_as_mutation(self, store: TaskStore, event_bus: EventBus):
        collector = EventCollector(event_bus, AppEvent.TASKS_REPLACED)
        store.replace_all([make_task("a"), make_task("b")])
        assert [t.id for t in store.tasks] == ["a", "b"]
        assert store.revision == 1
        assert collector.count(AppEvent.TASKS_REPLACED) == 1
        collector.cleanup()

    def test_hydrate_is_not_a_mutation(self, store: TaskStore, event_bus: EventBus):
        collector = EventCollector(event_bus, AppEvent.TASKS_LOADED, AppEvent.TASKS_REPLACED)
        store.hydrate([make_task("a")])
        assert store.revision == 0
        assert collector.count(AppEvent.TASKS_LOADED) == 1
        assert collector.count(AppEvent.TASKS_REPLACED) == 0
        collector.cleanup()

    def test_snapshot_is_detached(self, store: TaskStore):
        task = store.create(draft())
        snap = store.snapshot()
        store.update(task.id, title="Changed")
        assert snap[0].title == "Write docs"
