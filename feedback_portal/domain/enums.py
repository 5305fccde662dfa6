"""
feedback_portal.domain.enums: All enumerations used across the portal.

Keep this module import-clean (stdlib only).
"""

from enum import Enum


# ---------------------------------------------------------------------------
# Classification fields (written only by the external workflow)
# ---------------------------------------------------------------------------

class FeedbackStatus(str, Enum):
    """
    Lifecycle of a feedback row.  Rows are created as PENDING; every other
    value is set by the classification workflow.
    """
    PENDING   = "Pending"
    PROCESSED = "Processed"
    REVIEWED  = "Reviewed"
    RESOLVED  = "Resolved"


class FeedbackPriority(str, Enum):
    HIGH   = "High"
    MEDIUM = "Medium"
    LOW    = "Low"


class FeedbackCategory(str, Enum):
    BUG     = "Bug"
    FEATURE = "Feature"
    GENERAL = "General"
    URGENT  = "Urgent"


# ---------------------------------------------------------------------------
# Change stream
# ---------------------------------------------------------------------------

class ChangeKind(str, Enum):
    """Row-level event types delivered by the realtime channel."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# ---------------------------------------------------------------------------
# Display tiers (badge variants understood by the frontend)
# ---------------------------------------------------------------------------

class BadgeVariant(str, Enum):
    DEFAULT     = "default"
    SECONDARY   = "secondary"
    DESTRUCTIVE = "destructive"
    OUTLINE     = "outline"
    SUCCESS     = "success"
    WARNING     = "warning"


class NotificationVariant(str, Enum):
    DEFAULT     = "default"
    DESTRUCTIVE = "destructive"


# ---------------------------------------------------------------------------
# Form / flow state
# ---------------------------------------------------------------------------

class SubmissionState(str, Enum):
    """
    Submission form state machine.

    idle:       nothing sent yet.
    submitting: insert request in flight; further submits are refused.
    done:       last insert succeeded, draft cleared.
    failed:     last insert failed, draft preserved for retry.
    """
    IDLE       = "idle"
    SUBMITTING = "submitting"
    DONE       = "done"
    FAILED     = "failed"

    @property
    def accepts_submit(self) -> bool:
        return self is not SubmissionState.SUBMITTING


class AuthMode(str, Enum):
    SIGN_IN = "sign_in"
    SIGN_UP = "sign_up"
