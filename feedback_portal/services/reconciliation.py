"""
Live feedback list reconciliation.

Holds one owner's rows in display order (newest first) and merges change
events into them:

  INSERT  prepend; an id already present is replaced in place instead
  UPDATE  replace in place by id; unknown ids are dropped
  DELETE  remove by id; unknown ids are a no-op

Events are applied in arrival order, last write wins.  Events that arrive
before the snapshot is loaded are buffered and replayed against it, so an
UPDATE racing the initial fetch is not lost.

After every call the list holds only rows owned by ``owner_id`` and at most
one entry per id.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from feedback_portal.domain.enums import ChangeKind
from feedback_portal.domain.models import ChangeEvent, FeedbackItem

logger = logging.getLogger(__name__)


class FeedbackListState:

    def __init__(self, owner_id: str, snapshot: Optional[Iterable[FeedbackItem]] = None):
        self.owner_id = owner_id
        self._items: List[FeedbackItem] = []
        self._buffer: List[ChangeEvent] = []
        self.loaded = False
        if snapshot is not None:
            self.load_snapshot(snapshot)

    @property
    def items(self) -> Tuple[FeedbackItem, ...]:
        return tuple(self._items)

    @property
    def ids(self) -> List[str]:
        return [item.id for item in self._items]

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def __len__(self) -> int:
        return len(self._items)

    def _index_of(self, row_id: Optional[str]) -> Optional[int]:
        for idx, item in enumerate(self._items):
            if item.id == row_id:
                return idx
        return None

    def _owned(self, item: FeedbackItem) -> bool:
        return item.user_id == self.owner_id

    # ------------------------------------------------------------------

    def load_snapshot(self, rows: Iterable[FeedbackItem]) -> None:
        """Seed the list, then replay any events buffered before it arrived."""
        seen = set()
        items: List[FeedbackItem] = []
        for row in rows:
            if not self._owned(row) or row.id in seen:
                continue
            seen.add(row.id)
            items.append(row)
        self._items = items
        self.loaded = True

        pending, self._buffer = self._buffer, []
        if pending:
            logger.debug("Replaying %d buffered events for %s", len(pending), self.owner_id)
        for event in pending:
            self.apply(event)

    def apply(self, event: ChangeEvent) -> bool:
        """Merge one event.  Returns True if the visible list changed."""
        if not self.loaded:
            self._buffer.append(event)
            return False

        if event.record is not None and not self._owned(event.record):
            logger.debug("Ignoring %s for row %s owned by someone else", event.kind.value, event.row_id)
            return False

        if event.kind is ChangeKind.INSERT:
            return self._insert(event.record)
        if event.kind is ChangeKind.UPDATE:
            return self._update(event.record)
        return self._delete(event.old_id)

    def _insert(self, row: FeedbackItem) -> bool:
        idx = self._index_of(row.id)
        if idx is not None:
            # Row was already in the snapshot; treat the late insert as an update.
            self._items[idx] = row
            return True
        self._items.insert(0, row)
        return True

    def _update(self, row: FeedbackItem) -> bool:
        idx = self._index_of(row.id)
        if idx is None:
            logger.debug("Dropping update for unknown row %s", row.id)
            return False
        self._items[idx] = row
        return True

    def _delete(self, row_id: Optional[str]) -> bool:
        idx = self._index_of(row_id)
        if idx is None:
            return False
        del self._items[idx]
        return True
