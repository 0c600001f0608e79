import logging
from typing import Callable, Optional

from taskflow.remote import RemoteStoreClient, RemoteStoreError, RemoteSubscription

logger = logging.getLogger(__name__)


class FeedHandle:
    """Disposer for one change-feed subscription. Safe to unsubscribe twice."""

    def __init__(self, identity: str, subscription: Optional[RemoteSubscription]) -> None:
        self.identity = identity
        self._subscription = subscription

    @property
    def active(self) -> bool:
        return self._subscription is not None

    def unsubscribe(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is None:
            return
        try:
            subscription.close()
        except Exception as e:
            # Channel already closed by the remote side
            logger.debug(f"Ignoring error closing change feed for {self.identity}: {e}")


class ChangeFeedSubscriber:
    """Turns remote insert/update/delete events into bare "reload" signals."""

    def __init__(self, client: RemoteStoreClient) -> None:
        self.client = client

    def subscribe(self, identity: str, on_change: Callable[[], None]) -> FeedHandle:
        """Subscribe to changes of ``identity``'s tasks.

        If the remote store refuses the subscription the returned handle is
        inactive; the session still works from explicit loads.
        """
        def notify(*_payload) -> None:
            on_change()

        try:
            subscription = self.client.subscribe(identity, notify)
        except RemoteStoreError as e:
            logger.warning(f"Change feed unavailable for {identity}: {e}")
            return FeedHandle(identity, None)
        logger.debug(f"Change feed opened for {identity}")
        return FeedHandle(identity, subscription)
