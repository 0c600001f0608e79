"""Tests for the event bus."""
import gc

from taskflow.events import AppEvent, EventBus


class Listener:
    def __init__(self):
        self.calls = []

    def on_event(self, data):
        self.calls.append(data)


def test_emit_reaches_subscribers():
    bus = EventBus()
    listener = Listener()
    bus.subscribe(AppEvent.TASK_CREATED, listener.on_event)
    bus.emit(AppEvent.TASK_CREATED, "payload")
    assert listener.calls == ["payload"]


def test_unsubscribe_is_idempotent():
    bus = EventBus()
    seen = []
    sub = bus.subscribe(AppEvent.REFRESH_UI, lambda data: seen.append(data))
    sub.unsubscribe()
    sub.unsubscribe()
    bus.emit(AppEvent.REFRESH_UI, 1)
    assert seen == []
    assert not sub.active


def test_bound_method_subscription_dies_with_owner():
    bus = EventBus()
    listener = Listener()
    bus.subscribe(AppEvent.TASK_DELETED, listener.on_event)
    del listener
    gc.collect()
    bus.emit(AppEvent.TASK_DELETED)
    assert bus.subscriber_count(AppEvent.TASK_DELETED) == 0


def test_failing_handler_does_not_block_others():
    bus = EventBus()
    seen = []

    def broken(_data):
        raise RuntimeError("boom")

    bus.subscribe(AppEvent.TASK_UPDATED, broken)
    bus.subscribe(AppEvent.TASK_UPDATED, lambda data: seen.append(data))
    bus.emit(AppEvent.TASK_UPDATED, 7)
    assert seen == [7]


def test_buses_are_isolated():
    first, second = EventBus(), EventBus()
    seen = []
    sub = first.subscribe(AppEvent.DATA_RESET, lambda data: seen.append("first"))
    second.emit(AppEvent.DATA_RESET)
    assert seen == []
    sub.unsubscribe()
