"""
Pytest configuration and shared fixtures.

Fixtures / helpers available to all tests:
  • make_row(id, ...)     build a FeedbackItem owned by OWNER
  • FakeSubscription      queue-driven stand-in for a realtime Subscription
  • FakeRealtime          hands out FakeSubscriptions and records owners
  • FakeWebSocket         scripted websocket for the realtime protocol
  • FakeBackend           BackendClient-shaped object with AsyncMock gateways
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from websockets.exceptions import ConnectionClosedOK

# Ensure the project root is on the path so feedback_portal imports resolve.
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from feedback_portal.domain.models import FeedbackItem, SessionUser  # noqa: E402

OWNER = "user-1"
OTHER_OWNER = "user-2"
BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Row factory
# ---------------------------------------------------------------------------

def _row(
    row_id: str,
    owner: str = OWNER,
    status: str = "Pending",
    title: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[str] = None,
    age_minutes: int = 0,
) -> FeedbackItem:
    created = BASE_TIME - timedelta(minutes=age_minutes)
    return FeedbackItem(
        id=row_id,
        user_id=owner,
        title=title or f"Feedback {row_id}",
        description=f"Description for feedback {row_id}",
        category=category,
        priority=priority,
        status=status,
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def make_row():
    return _row


@pytest.fixture
def session_user():
    return SessionUser(id=OWNER, email="ada@example.com", access_token="access-123")


async def drain(rounds: int = 10) -> None:
    """Let background tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Realtime fakes
# ---------------------------------------------------------------------------

class FakeSubscription:
    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        self.queue: asyncio.Queue = asyncio.Queue()
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def push(self, event) -> None:
        self.queue.put_nowait(event)

    async def events(self):
        while True:
            event = await self.queue.get()
            if event is None:
                return
            if isinstance(event, Exception):
                raise event
            yield event

    async def close(self) -> None:
        self.close_calls += 1
        self.queue.put_nowait(None)


class FakeRealtime:
    def __init__(self):
        self.subscriptions: List[FakeSubscription] = []

    async def subscribe(self, owner_id: str, access_token: Optional[str] = None) -> FakeSubscription:
        sub = FakeSubscription(owner_id)
        self.subscriptions.append(sub)
        return sub

    @property
    def open_count(self) -> int:
        return sum(1 for s in self.subscriptions if not s.closed)

    async def close_all(self) -> None:
        for sub in self.subscriptions:
            if not sub.closed:
                await sub.close()


class FakeWebSocket:
    """Speaks just enough Phoenix protocol for Subscription tests."""

    def __init__(self, join_status: str = "ok"):
        self.join_status = join_status
        self.sent: List[dict] = []
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.close_calls = 0

    def push(self, message: dict) -> None:
        self.incoming.put_nowait(json.dumps(message))

    def drop(self) -> None:
        self.incoming.put_nowait(None)

    async def send(self, text: str) -> None:
        message = json.loads(text)
        self.sent.append(message)
        if message["event"] == "phx_join":
            self.push({
                "topic": message["topic"],
                "event": "phx_reply",
                "payload": {"status": self.join_status, "response": {}},
                "ref": message["ref"],
            })

    async def recv(self) -> str:
        raw = await self.incoming.get()
        if raw is None:
            raise ConnectionClosedOK(None, None)
        return raw

    async def close(self) -> None:
        self.close_calls += 1

    def sent_events(self) -> List[str]:
        return [m["event"] for m in self.sent]


def postgres_change(kind: str, record: Optional[dict] = None, old: Optional[dict] = None,
                    topic: str = "realtime:feedback-changes") -> dict:
    return {
        "topic": topic,
        "event": "postgres_changes",
        "payload": {
            "data": {
                "schema": "public",
                "table": "feedback",
                "type": kind,
                "record": record,
                "old_record": old,
            },
            "ids": [1],
        },
        "ref": None,
    }


# ---------------------------------------------------------------------------
# Backend fake
# ---------------------------------------------------------------------------

class FakeBackend:
    def __init__(self):
        self.auth = MagicMock()
        self.auth.sign_up = AsyncMock(return_value={"id": OWNER})
        self.auth.sign_in = AsyncMock(
            return_value=SessionUser(id=OWNER, email="ada@example.com", access_token="access-123")
        )
        self.auth.sign_out = AsyncMock(return_value=None)
        self.auth.get_user = AsyncMock(
            return_value=SessionUser(id=OWNER, email="ada@example.com", access_token="access-123")
        )
        self.store = MagicMock()
        self.store.insert = AsyncMock()
        self.store.select_for_owner = AsyncMock(return_value=[])
        self.realtime = FakeRealtime()
        self.aclose = AsyncMock()


@pytest.fixture
def fake_backend():
    return FakeBackend()
