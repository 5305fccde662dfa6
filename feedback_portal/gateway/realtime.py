"""
Realtime change-stream client
=============================

Subscribes to row-level changes on the feedback table through the managed
backend's realtime websocket (Phoenix channel protocol).

Subscription lifecycle:
  1. Connect to wss://{project}/realtime/v1/websocket?apikey=...&vsn=1.0.0
  2. ``phx_join`` the channel with a postgres_changes filter on the owner
  3. Yield ChangeEvent objects as ``postgres_changes`` messages arrive,
     sending a heartbeat every REALTIME_HEARTBEAT_SECONDS
  4. ``close()`` sends ``phx_leave`` and closes the socket

There is no reconnect: when the socket drops, ``events()`` simply ends.
"""

import asyncio
import itertools
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Set

import websockets
from websockets.exceptions import ConnectionClosed

from feedback_portal.domain.models import ChangeEvent

logger = logging.getLogger(__name__)

# Factory returning an open websocket connection (websockets.connect by default).
ConnectFn = Callable[..., Awaitable[Any]]


class RealtimeError(Exception):
    """The realtime service refused the channel join."""


def realtime_url(base_url: str, api_key: str) -> str:
    """Build the websocket URL from the project URL (http -> ws, https -> wss)."""
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        ws_base = base.replace("https://", "wss://", 1)
    elif base.startswith("http://"):
        ws_base = base.replace("http://", "ws://", 1)
    else:
        ws_base = "wss://" + base
    return f"{ws_base}/realtime/v1/websocket?apikey={api_key}&vsn=1.0.0"


class Subscription:
    """
    One joined channel over one websocket.

    ``close()`` is idempotent; the first call releases the socket, later
    calls are no-ops.
    """

    def __init__(
        self,
        ws: Any,
        topic: str,
        heartbeat_seconds: float,
        on_close: Optional[Callable[["Subscription"], None]] = None,
    ):
        self._ws = ws
        self.topic = topic
        self._heartbeat_seconds = heartbeat_seconds
        self._refs = itertools.count(1)
        self._send_lock = asyncio.Lock()
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._on_close = on_close
        self.closed = False

    async def _send(self, topic: str, event: str, payload: Dict[str, Any]) -> str:
        ref = str(next(self._refs))
        message = {"topic": topic, "event": event, "payload": payload, "ref": ref}
        async with self._send_lock:
            await self._ws.send(json.dumps(message))
        return ref

    async def join(self, changes_config: Dict[str, Any], access_token: Optional[str]) -> None:
        """Join the channel and wait for the server's reply."""
        payload: Dict[str, Any] = {"config": {"postgres_changes": [changes_config]}}
        if access_token:
            payload["access_token"] = access_token
        ref = await self._send(self.topic, "phx_join", payload)

        while True:
            message = json.loads(await self._ws.recv())
            if message.get("event") != "phx_reply" or message.get("ref") != ref:
                continue
            reply = message.get("payload") or {}
            if reply.get("status") != "ok":
                raise RealtimeError(f"Channel join refused: {reply.get('response')}")
            break

        self._heartbeat_task = asyncio.create_task(self._heartbeat())
        logger.info("Realtime channel joined: %s", self.topic)

    async def _heartbeat(self) -> None:
        try:
            while not self.closed:
                await asyncio.sleep(self._heartbeat_seconds)
                await self._send("phoenix", "heartbeat", {})
        except ConnectionClosed:
            pass
        except Exception as exc:
            # Socket failures surface through events().
            logger.warning("Heartbeat stopped for %s: %s", self.topic, exc)

    async def events(self) -> AsyncIterator[ChangeEvent]:
        """Yield change events until the channel or socket closes."""
        while not self.closed:
            try:
                raw = await self._ws.recv()
            except ConnectionClosed as exc:
                if not self.closed:
                    logger.warning("Realtime socket closed for %s: %s", self.topic, exc)
                return

            try:
                message = json.loads(raw)
            except (json.JSONDecodeError, TypeError):
                logger.warning("Non-JSON realtime message: %s", str(raw)[:200])
                continue

            event = message.get("event")
            if event in ("phx_close", "phx_error") and message.get("topic") == self.topic:
                logger.warning("Realtime channel %s ended with %s", self.topic, event)
                return
            if event != "postgres_changes":
                continue

            data = (message.get("payload") or {}).get("data") or {}
            try:
                yield ChangeEvent.from_postgres_change(data)
            except ValueError as exc:
                logger.warning("Skipping malformed change event: %s", exc)

    async def close(self) -> None:
        """Leave the channel and close the socket."""
        if self.closed:
            return
        self.closed = True
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        try:
            await self._send(self.topic, "phx_leave", {})
        except ConnectionClosed:
            pass
        except Exception as exc:
            logger.debug("phx_leave failed for %s: %s", self.topic, exc)
        await self._ws.close()
        if self._on_close is not None:
            self._on_close(self)
        logger.info("Realtime channel left: %s", self.topic)


class RealtimeClient:
    """Opens owner-scoped subscriptions to the feedback table."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "feedback",
        schema: str = "public",
        channel: str = "feedback-changes",
        heartbeat_seconds: float = 30.0,
        connect: Optional[ConnectFn] = None,
    ):
        self.url = realtime_url(base_url, api_key)
        self.table = table
        self.schema = schema
        self.channel = channel
        self.heartbeat_seconds = heartbeat_seconds
        self._connect = connect or websockets.connect
        self._open: Set[Subscription] = set()

    @property
    def open_count(self) -> int:
        return len(self._open)

    def changes_config(self, owner_id: str) -> Dict[str, Any]:
        return {
            "event": "*",
            "schema": self.schema,
            "table": self.table,
            "filter": f"user_id=eq.{owner_id}",
        }

    async def subscribe(self, owner_id: str, access_token: Optional[str] = None) -> Subscription:
        """Connect and join a channel filtered to ``owner_id``'s rows."""
        ws = await self._connect(self.url)
        sub = Subscription(
            ws,
            topic=f"realtime:{self.channel}",
            heartbeat_seconds=self.heartbeat_seconds,
            on_close=self._open.discard,
        )
        try:
            await sub.join(self.changes_config(owner_id), access_token)
        except BaseException:
            await sub.close()
            raise
        self._open.add(sub)
        return sub

    async def close_all(self) -> None:
        for sub in list(self._open):
            await sub.close()
