"""
Live feedback list.

Pairs a ``FeedbackListState`` with one change-stream subscription for the
current owner.  The subscription is acquired on ``mount`` and released
exactly once per mount, whichever of these happens first:

  * ``unmount()`` (connection closed, view replaced)
  * ``change_owner()`` to a different user
  * the listener raising while an event is being delivered
  * the change stream ending or failing (socket dropped, channel closed)

Once released, no further events are applied and the listener is not
called again.  When the stream itself is lost, ``on_lost`` is awaited
so the owner can tell its client to reconnect.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, Sequence

from feedback_portal.domain.models import FeedbackItem
from feedback_portal.gateway.realtime import RealtimeClient, Subscription
from feedback_portal.services.reconciliation import FeedbackListState

logger = logging.getLogger(__name__)

ChangeListener = Callable[[Sequence[FeedbackItem]], Awaitable[None]]
LostHandler = Callable[[], Awaitable[None]]
SnapshotLoader = Callable[[], Awaitable[Iterable[FeedbackItem]]]


class LiveFeedbackList:

    def __init__(
        self,
        realtime: RealtimeClient,
        on_change: Optional[ChangeListener] = None,
        on_lost: Optional[LostHandler] = None,
    ):
        self._realtime = realtime
        self._on_change = on_change
        self._on_lost = on_lost
        self.state: Optional[FeedbackListState] = None
        self._subscription: Optional[Subscription] = None
        self._pump_task: Optional[asyncio.Task] = None
        # Bumped on every mount/unmount; a pump only acts for its own generation.
        self._generation = 0

    @property
    def owner_id(self) -> Optional[str]:
        return self.state.owner_id if self.state else None

    @property
    def mounted(self) -> bool:
        return self._subscription is not None

    @property
    def items(self) -> Sequence[FeedbackItem]:
        return self.state.items if self.state else ()

    async def mount(
        self,
        owner_id: str,
        access_token: Optional[str] = None,
        *,
        snapshot: Optional[Iterable[FeedbackItem]] = None,
        load_snapshot: Optional[SnapshotLoader] = None,
    ) -> None:
        """Subscribe to ``owner_id``'s changes and seed the list.

        Pass ``snapshot`` when the rows were fetched before mounting, or
        ``load_snapshot`` to fetch them after the subscription is live;
        events arriving during that fetch are buffered, not dropped.
        """
        if self.mounted:
            raise RuntimeError(f"Live list already mounted for {self.owner_id}")

        self._generation += 1
        generation = self._generation
        state = FeedbackListState(owner_id)
        self.state = state

        if snapshot is not None:
            state.load_snapshot(snapshot)

        self._subscription = await self._realtime.subscribe(owner_id, access_token)
        self._pump_task = asyncio.create_task(self._pump(self._subscription, state, generation))
        logger.info("Live list mounted for %s", owner_id)

        if snapshot is None and load_snapshot is not None:
            try:
                rows = await load_snapshot()
            except BaseException:
                await self.unmount()
                raise
            if generation != self._generation:
                return
            state.load_snapshot(rows)

        await self._notify(generation)

    async def unmount(self) -> None:
        """Release the subscription and stop applying events."""
        self._generation += 1
        task, self._pump_task = self._pump_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._release()

    async def change_owner(
        self,
        owner_id: str,
        access_token: Optional[str] = None,
        *,
        snapshot: Optional[Iterable[FeedbackItem]] = None,
        load_snapshot: Optional[SnapshotLoader] = None,
    ) -> None:
        """Re-scope the list to another user.  Same owner is a no-op."""
        if self.mounted and owner_id == self.owner_id:
            return
        await self.unmount()
        await self.mount(owner_id, access_token, snapshot=snapshot, load_snapshot=load_snapshot)

    async def __aenter__(self) -> "LiveFeedbackList":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.unmount()

    # ------------------------------------------------------------------

    async def _release(self) -> None:
        sub, self._subscription = self._subscription, None
        if sub is None:
            return
        owner = self.owner_id
        await sub.close()
        logger.info("Live list unsubscribed for %s", owner)

    async def _notify(self, generation: int) -> None:
        if self._on_change is None or generation != self._generation or self.state is None:
            return
        await self._on_change(self.state.items)

    async def _pump(self, sub: Subscription, state: FeedbackListState, generation: int) -> None:
        try:
            async for event in sub.events():
                if generation != self._generation:
                    return
                if state.apply(event):
                    await self._notify(generation)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Live list for %s stopped: %s", state.owner_id, exc, exc_info=True)
        else:
            if generation == self._generation:
                logger.warning("Change stream ended for %s", state.owner_id)

        # Stream ended or failed on its own: release and report the loss.
        if generation != self._generation:
            return
        self._generation += 1
        self._pump_task = None
        await self._release()
        if self._on_lost is not None:
            try:
                await self._on_lost()
            except Exception as exc:
                logger.error("Lost-stream handler for %s failed: %s", state.owner_id, exc)
