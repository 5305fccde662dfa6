"""
WebSocket Manager for the Smart Feedback Portal
Gives every connected dashboard its own live feedback list and pushes the
rendered list whenever a change is applied.
"""

import asyncio
import json
import logging
from typing import Dict, List, Sequence

from fastapi import WebSocket

from feedback_portal.core.errors import StoreError
from feedback_portal.domain.models import FeedbackItem, SessionUser
from feedback_portal.gateway.client import BackendClient
from feedback_portal.services.live_list import LiveFeedbackList
from feedback_portal.services.presentation import render_list

logger = logging.getLogger(__name__)

# Close code sent when the change stream is lost; the client should reconnect.
LIVE_UPDATES_LOST = 1011


class ConnectionManager:
    """Tracks connected dashboards and the live list each one owns."""

    def __init__(self):
        self.active_connections: Dict[WebSocket, LiveFeedbackList] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user: SessionUser, backend: BackendClient):
        """Accept the socket, subscribe to the user's changes and send the first list.

        The socket is registered only once the subscription is live; if
        mounting fails nothing is left behind and the error propagates.
        """
        await websocket.accept()

        async def _push(items: Sequence[FeedbackItem]) -> None:
            await self.send_list(websocket, items)

        async def _load() -> List[FeedbackItem]:
            try:
                return await backend.store.select_for_owner(user.id, user.access_token)
            except StoreError as exc:
                logger.error("Error fetching feedback for %s: %s", user.id, exc)
                return []

        async def _lost() -> None:
            await self._close_lost(websocket, user.id)

        live = LiveFeedbackList(backend.realtime, on_change=_push, on_lost=_lost)
        await live.mount(user.id, user.access_token, load_snapshot=_load)
        if not live.mounted:
            # Stream lost while loading; _close_lost already closed the socket.
            return
        async with self._lock:
            self.active_connections[websocket] = live
        logger.info(
            "Dashboard connected for %s. Total clients: %d",
            user.id,
            len(self.active_connections),
        )

    async def _close_lost(self, websocket: WebSocket, user_id: str):
        """Live updates stopped: drop the client so the browser reconnects."""
        async with self._lock:
            self.active_connections.pop(websocket, None)
        logger.warning("Live updates lost for %s; closing dashboard socket", user_id)
        try:
            await websocket.close(code=LIVE_UPDATES_LOST)
        except (RuntimeError, OSError) as exc:
            # Already closed by the client.
            logger.debug("Dashboard socket for %s already closed: %s", user_id, exc)

    async def disconnect(self, websocket: WebSocket):
        """Release the client's subscription and forget it."""
        async with self._lock:
            live = self.active_connections.pop(websocket, None)
        if live is not None:
            await live.unmount()
        logger.info(
            "Dashboard disconnected. Total clients: %d",
            len(self.active_connections),
        )

    async def send_list(self, websocket: WebSocket, items: Sequence[FeedbackItem]):
        payload = {"type": "feedback", **render_list(items)}
        await websocket.send_text(json.dumps(payload))

    async def close_all(self):
        async with self._lock:
            lists = list(self.active_connections.values())
            self.active_connections.clear()
        for live in lists:
            await live.unmount()

    @property
    def client_count(self) -> int:
        return len(self.active_connections)


# Singleton used across the application
manager = ConnectionManager()
