"""
Smart Feedback Portal: Shared utilities.

Pure functions used across the whole package. No imports from other
feedback_portal modules; only the standard library is allowed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


# ---------------------------------------------------------------------------
# Input normalization
# ---------------------------------------------------------------------------

# Zero-width space, non-joiner, joiner, word joiner, BOM
_ZERO_WIDTH = dict.fromkeys(map(ord, "\u200b\u200c\u200d\u2060\ufeff"))


def normalize_email(raw: str) -> str:
    """Trim, lowercase and strip zero-width characters from an email.

    Copy-pasted addresses often carry invisible characters that the auth
    gateway would reject as a different account.
    """
    return (raw or "").translate(_ZERO_WIDTH).strip().lower()


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def parse_timestamp(value: object) -> Optional[datetime]:
    """Coerce a store timestamp (ISO string, epoch, datetime) to aware UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            normalized = value.replace("Z", "+00:00")
            parsed = datetime.fromisoformat(normalized)
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            return None
    return None


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"


def format_relative_time(value: object, now: Optional[datetime] = None) -> str:
    """Human-readable age of a timestamp ("5 minutes ago").

    Anything older than a week is shown as a calendar date. Unparseable
    input is returned as text so the list never fails to render.
    """
    ts = parse_timestamp(value)
    if ts is None:
        return "" if value is None else str(value)

    now = now or datetime.now(timezone.utc)
    seconds = int((now - ts).total_seconds())

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{_plural(seconds // 60, 'minute')} ago"
    if seconds < 86400:
        return f"{_plural(seconds // 3600, 'hour')} ago"
    if seconds < 7 * 86400:
        return f"{_plural(seconds // 86400, 'day')} ago"
    return ts.date().isoformat()
