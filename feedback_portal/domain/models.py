"""
feedback_portal.domain.models: Canonical Pydantic / dataclass models.

These are the single source of truth for data structures flowing through
the portal.  Layers that produce or consume these models must not invent
their own parallel types.

Import pattern::

    from feedback_portal.domain.models import FeedbackItem, ChangeEvent, SessionUser
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from feedback_portal.domain.enums import ChangeKind, FeedbackStatus, NotificationVariant


# ---------------------------------------------------------------------------
# Feedback row
# ---------------------------------------------------------------------------

class FeedbackItem(BaseModel):
    """
    One row of the feedback table, as returned by the store or carried by a
    change event.

    Classification fields are kept as plain strings: the workflow owns them
    and may write values this process does not know about.  Rendering maps
    unknown values to a neutral tier instead of rejecting the row.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    title: str
    description: str
    category: Optional[str] = None
    priority: Optional[str] = None
    status: str = FeedbackStatus.PENDING.value
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == FeedbackStatus.PENDING.value


@dataclass
class FeedbackDraft:
    """What the user typed into the submission form."""
    title: str = ""
    description: str = ""

    def clear(self) -> None:
        self.title = ""
        self.description = ""

    def insert_payload(self, owner_id: str) -> Dict[str, Any]:
        """Row sent to the store.  Classification fields are never set here."""
        return {
            "user_id": owner_id,
            "title": self.title,
            "description": self.description,
            "status": FeedbackStatus.PENDING.value,
        }


# ---------------------------------------------------------------------------
# Change events
# ---------------------------------------------------------------------------

@dataclass
class ChangeEvent:
    """
    A row-level change on the feedback table.

    ``record`` is set for INSERT and UPDATE; ``old_id`` for DELETE.
    """
    kind: ChangeKind
    record: Optional[FeedbackItem] = None
    old_id: Optional[str] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def row_id(self) -> Optional[str]:
        if self.record is not None:
            return self.record.id
        return self.old_id

    @classmethod
    def insert(cls, row: FeedbackItem) -> "ChangeEvent":
        return cls(kind=ChangeKind.INSERT, record=row)

    @classmethod
    def update(cls, row: FeedbackItem) -> "ChangeEvent":
        return cls(kind=ChangeKind.UPDATE, record=row)

    @classmethod
    def delete(cls, row_id: str) -> "ChangeEvent":
        return cls(kind=ChangeKind.DELETE, old_id=row_id)

    @classmethod
    def from_postgres_change(cls, data: Dict[str, Any]) -> "ChangeEvent":
        """Build an event from the ``data`` object of a postgres_changes message.

        Raises ValueError for event types other than INSERT/UPDATE/DELETE or
        for payloads missing the row they refer to.
        """
        kind = ChangeKind(str(data.get("type", "")).upper())
        if kind is ChangeKind.DELETE:
            old = data.get("old_record") or {}
            if "id" not in old:
                raise ValueError("DELETE event without old_record.id")
            return cls.delete(str(old["id"]))
        record = data.get("record")
        if not record:
            raise ValueError(f"{kind.value} event without record")
        return cls(kind=kind, record=FeedbackItem.model_validate(record))


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@dataclass
class SessionUser:
    """
    The signed-in user as carried by the session token.  ``access_token`` is
    the gateway's bearer token and is forwarded on store and realtime calls
    so row-level security applies.
    """
    id: str
    email: str = ""
    access_token: Optional[str] = None

    def public_dict(self) -> Dict[str, str]:
        return {"id": self.id, "email": self.email}


# ---------------------------------------------------------------------------
# Notifications (toasts)
# ---------------------------------------------------------------------------

@dataclass
class Notification:
    title: str
    description: str = ""
    variant: NotificationVariant = NotificationVariant.DEFAULT

    @classmethod
    def failure(cls, title: str, description: str) -> "Notification":
        return cls(title=title, description=description, variant=NotificationVariant.DESTRUCTIVE)

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "description": self.description, "variant": self.variant.value}
