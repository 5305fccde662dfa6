"""
Display mapping for feedback rows.

Each classification field maps to a badge tier.  Matching is
case-insensitive and anything unrecognised falls back to a neutral tier,
so a new value written by the workflow never breaks the list.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from feedback_portal.core.utils import format_relative_time
from feedback_portal.domain.enums import BadgeVariant
from feedback_portal.domain.models import FeedbackItem

_STATUS_VARIANTS = {
    "pending":   BadgeVariant.WARNING,
    "processed": BadgeVariant.SUCCESS,
    "reviewed":  BadgeVariant.DEFAULT,
    "resolved":  BadgeVariant.SECONDARY,
}

_PRIORITY_VARIANTS = {
    "high":   BadgeVariant.DESTRUCTIVE,
    "medium": BadgeVariant.WARNING,
    "low":    BadgeVariant.SECONDARY,
}

_CATEGORY_VARIANTS = {
    "bug":     BadgeVariant.DESTRUCTIVE,
    "feature": BadgeVariant.DEFAULT,
    "urgent":  BadgeVariant.DESTRUCTIVE,
}

IN_PROGRESS_MESSAGE = "Being processed... Classification and prioritization in progress"


def _key(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def status_variant(status: Optional[str]) -> BadgeVariant:
    return _STATUS_VARIANTS.get(_key(status), BadgeVariant.OUTLINE)


def priority_variant(priority: Optional[str]) -> BadgeVariant:
    return _PRIORITY_VARIANTS.get(_key(priority), BadgeVariant.OUTLINE)


def category_variant(category: Optional[str]) -> BadgeVariant:
    return _CATEGORY_VARIANTS.get(_key(category), BadgeVariant.SECONDARY)


def render_item(item: FeedbackItem, now: Optional[datetime] = None) -> Dict[str, Any]:
    """View payload for one card: badges, relative time, progress indicator."""
    badges = [{"label": item.status, "variant": status_variant(item.status).value}]
    if item.priority:
        badges.append({
            "label": f"{item.priority} Priority",
            "variant": priority_variant(item.priority).value,
        })
    if item.category:
        badges.append({"label": item.category, "variant": category_variant(item.category).value})

    in_progress = _key(item.status) == "pending"
    return {
        "id": item.id,
        "title": item.title,
        "description": item.description,
        "status": item.status,
        "priority": item.priority,
        "category": item.category,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "created_relative": format_relative_time(item.created_at, now=now),
        "badges": badges,
        "in_progress": in_progress,
        "progress_message": IN_PROGRESS_MESSAGE if in_progress else None,
    }


def render_list(items: Iterable[FeedbackItem], now: Optional[datetime] = None) -> Dict[str, Any]:
    rendered = [render_item(item, now=now) for item in items]
    return {"items": rendered, "total": len(rendered), "empty": not rendered}
