"""PostgREST-compatible client for the remote task table.

Rows are owned by ``user_id`` and use snake_case columns (``due_date``,
``created_at``). Requests go through httpx and every failure surfaces as
``RemoteStoreError``.

Change notifications are delivered by polling: a subscription re-queries the
scoped rows every ``poll_interval`` seconds and calls back when the result
set changed.
"""
import asyncio
import hashlib
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

import httpx

from taskflow.config import POLL_INTERVAL, REMOTE_ORDER_BY, REMOTE_TABLE, REMOTE_TIMEOUT

logger = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """Network, auth or decoding failure talking to the remote store."""
    pass


class RemoteSubscription(Protocol):
    def close(self) -> None: ...


class RemoteStoreClient(Protocol):
    """Boundary contract of the remote store."""

    async def query(self, user_id: str, order_by: str = REMOTE_ORDER_BY) -> List[Dict[str, Any]]: ...

    async def insert(self, record: Dict[str, Any]) -> Dict[str, Any]: ...

    async def upsert(self, records: List[Dict[str, Any]]) -> None: ...

    async def delete(self, task_id: str, user_id: str) -> None: ...

    def subscribe(self, user_id: str, callback: Callable[[], None]) -> RemoteSubscription: ...


def _fingerprint(rows: List[Dict[str, Any]]) -> str:
    payload = json.dumps(rows, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha1(payload).hexdigest()


class PollingSubscription:
    """Change feed for one user, driven by a background polling task.

    The first poll only records a baseline. Must be created from inside a
    running event loop.
    """

    def __init__(
        self,
        client: "RestRemoteClient",
        user_id: str,
        callback: Callable[[], None],
        interval: float,
    ) -> None:
        self._client = client
        self._user_id = user_id
        self._callback = callback
        self._interval = interval
        self._task: Optional[asyncio.Task] = asyncio.get_running_loop().create_task(self._run())

    @property
    def closed(self) -> bool:
        return self._task is None

    async def _run(self) -> None:
        fingerprint: Optional[str] = None
        while True:
            try:
                rows = await self._client.query(self._user_id)
            except RemoteStoreError as e:
                logger.debug(f"Change feed poll for {self._user_id} failed: {e}")
            else:
                current = _fingerprint(rows)
                if fingerprint is not None and current != fingerprint:
                    try:
                        self._callback()
                    except Exception:
                        logger.exception("Change feed callback failed")
                fingerprint = current
            await asyncio.sleep(self._interval)

    def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None


class RestRemoteClient:
    """Async client for ``<base_url>/rest/v1/<table>``."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = REMOTE_TABLE,
        timeout: float = REMOTE_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.table = table
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.access_token = access_token
        self.transport = transport

    def set_access_token(self, token: Optional[str]) -> None:
        """Use the signed-in user's token instead of the anon key."""
        self.access_token = token

    def _url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "TaskFlow/1.0",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        params: Optional[Dict[str, str]] = None,
        body: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.request(
                    method,
                    self._url(),
                    params=params,
                    json=body,
                    headers=self._headers(prefer),
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:200]
            raise RemoteStoreError(
                f"{e.response.status_code} {detail or e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"Network: {e}") from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteStoreError(f"Malformed response: {e}") from e

    async def query(self, user_id: str, order_by: str = REMOTE_ORDER_BY) -> List[Dict[str, Any]]:
        rows = await self._request(
            "GET",
            params={"select": "*", "user_id": f"eq.{user_id}", "order": order_by},
        )
        if not isinstance(rows, list):
            raise RemoteStoreError(f"Expected a list of rows, got {type(rows).__name__}")
        return rows

    async def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._request("POST", body=[record], prefer="return=representation")
        if not isinstance(rows, list) or not rows:
            raise RemoteStoreError("Insert returned no row")
        return rows[0]

    async def upsert(self, records: List[Dict[str, Any]]) -> None:
        if not records:
            return
        await self._request(
            "POST",
            body=records,
            prefer="resolution=merge-duplicates,return=minimal",
        )

    async def delete(self, task_id: str, user_id: str) -> None:
        await self._request(
            "DELETE",
            params={"id": f"eq.{task_id}", "user_id": f"eq.{user_id}"},
        )

    def subscribe(self, user_id: str, callback: Callable[[], None]) -> PollingSubscription:
        return PollingSubscription(self, user_id, callback, self.poll_interval)


class UnconfiguredRemoteClient:
    """Stand-in used when no remote URL is configured: every call fails.

    Keeps the coordinator on its local-cache path without special cases.
    """

    async def query(self, user_id: str, order_by: str = REMOTE_ORDER_BY) -> List[Dict[str, Any]]:
        raise RemoteStoreError("Remote store not configured")

    async def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        raise RemoteStoreError("Remote store not configured")

    async def upsert(self, records: List[Dict[str, Any]]) -> None:
        raise RemoteStoreError("Remote store not configured")

    async def delete(self, task_id: str, user_id: str) -> None:
        raise RemoteStoreError("Remote store not configured")

    def subscribe(self, user_id: str, callback: Callable[[], None]) -> RemoteSubscription:
        raise RemoteStoreError("Remote store not configured")
