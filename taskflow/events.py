from enum import Enum, auto
from typing import Callable, Dict, Any, Optional
import uuid
import weakref
import inspect
import logging

logger = logging.getLogger(__name__)


class AppEvent(Enum):
    """Events emitted by the task store and the session."""
    TASK_CREATED = auto()
    TASK_UPDATED = auto()
    TASK_DELETED = auto()
    TASK_COMPLETED = auto()
    TASK_UNCOMPLETED = auto()
    TASKS_REPLACED = auto()
    TASKS_LOADED = auto()
    IDENTITY_CHANGED = auto()
    DATA_RESET = auto()
    REFRESH_UI = auto()


# Events that change the canonical collection and must be written through
MUTATION_EVENTS = (
    AppEvent.TASK_CREATED,
    AppEvent.TASK_UPDATED,
    AppEvent.TASK_DELETED,
    AppEvent.TASK_COMPLETED,
    AppEvent.TASK_UNCOMPLETED,
    AppEvent.TASKS_REPLACED,
)


class Subscription:
    """Handle for one event subscription.

    With a strong subscription the handle keeps the callback alive, so it
    must be stored and unsubscribed when done.
    """

    def __init__(
        self,
        event_bus: "EventBus",
        event: AppEvent,
        subscription_id: str,
        strong_ref: Optional[Callable[[Any], None]] = None,
    ):
        self._event_bus = event_bus
        self._event = event
        self._subscription_id = subscription_id
        self._active = True
        self._strong_ref = strong_ref

    @property
    def id(self) -> str:
        return self._subscription_id

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._event_bus._unsubscribe_by_id(self._event, self._subscription_id)
            self._active = False
            self._strong_ref = None


class _CallbackRef:
    """Weak reference to a bound method or function callback."""

    def __init__(self, callback: Callable[[Any], None], on_dead: Callable[[], None]):
        self._on_dead = on_dead
        self._callback_repr = repr(callback)
        if inspect.ismethod(callback):
            self._ref = weakref.WeakMethod(callback, self._invoke_on_dead)
        else:
            try:
                self._ref = weakref.ref(callback, self._invoke_on_dead)
            except TypeError:
                # Built-ins can't be weakly referenced
                self._ref = lambda: callback

    def _invoke_on_dead(self, _ref) -> None:
        logger.debug(f"EventBus: callback {self._callback_repr} was garbage collected")
        self._on_dead()

    def __call__(self) -> Optional[Callable[[Any], None]]:
        return self._ref()


class EventBus:
    """Event bus for decoupling the task store from its observers.

    One bus per session container. Bound methods are held weakly so views
    that go away without unsubscribing don't leak; lambdas and closures are
    held strongly through their Subscription.
    """

    def __init__(self) -> None:
        self._listeners: Dict[AppEvent, Dict[str, _CallbackRef]] = {}

    def subscribe(
        self,
        event: AppEvent,
        callback: Callable[[Any], None],
        strong: bool = False,
    ) -> Subscription:
        """Subscribe a callback to an event. Returns a Subscription for cleanup.

        Example:
            bus.subscribe(AppEvent.TASK_CREATED, self.on_created)
            self._sub = bus.subscribe(AppEvent.REFRESH_UI, lambda data: ...)
        """
        listeners = self._listeners.setdefault(event, {})
        subscription_id = str(uuid.uuid4())

        is_lambda = getattr(callback, '__name__', '') == '<lambda>'
        is_closure = not inspect.ismethod(callback) and getattr(callback, '__closure__', None) is not None
        if (is_lambda or is_closure) and not strong:
            strong = True

        def on_dead():
            self._unsubscribe_by_id(event, subscription_id)

        listeners[subscription_id] = _CallbackRef(callback, on_dead)
        return Subscription(self, event, subscription_id, strong_ref=callback if strong else None)

    def _unsubscribe_by_id(self, event: AppEvent, subscription_id: str) -> None:
        self._listeners.get(event, {}).pop(subscription_id, None)

    def emit(self, event: AppEvent, data: Any = None) -> None:
        """Emit an event to all live subscribers.

        A subscriber that raises is logged and skipped; delivery continues.
        """
        for sub_id, cb_ref in list(self._listeners.get(event, {}).items()):
            callback = cb_ref()
            if callback is None:
                self._unsubscribe_by_id(event, sub_id)
                continue
            try:
                callback(data)
            except Exception:
                logger.exception(f"Error in event handler for {event.name}")

    def subscriber_count(self, event: AppEvent) -> int:
        return len(self._listeners.get(event, {}))

    def clear(self) -> None:
        self._listeners.clear()
