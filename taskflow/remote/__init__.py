"""Remote store package - networked backend of record for tasks."""
from taskflow.remote.client import (  # noqa: F401
    RemoteStoreClient,
    RemoteStoreError,
    RemoteSubscription,
    RestRemoteClient,
    UnconfiguredRemoteClient,
    PollingSubscription,
)
