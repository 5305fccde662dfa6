"""
Error taxonomy for the portal.

PortalError is the base for every error a route is expected to surface.
Each subclass carries the HTTP status it maps to and the notification the
frontend should show; the handler in ``feedback_portal.app`` turns them
into JSON.

Reconciliation misses (events for unknown ids) are not errors and never
raise.
"""

from __future__ import annotations

from typing import Optional


class PortalError(Exception):
    """Base class for errors that end an operation with a notification."""

    status_code: int = 500
    title: str = "Something went wrong"

    def __init__(self, message: str, *, title: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if title is not None:
            self.title = title

    def notification(self) -> dict:
        return {"title": self.title, "description": self.message, "variant": "destructive"}


class FeedbackValidationError(PortalError):
    """A draft failed local validation; no network call was made."""

    status_code = 422

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message, title=f"Invalid {field}")
        self.field = field


class AuthGatewayError(PortalError):
    """The auth gateway refused a request. ``message`` is the upstream text."""

    status_code = 401

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message, title="Authentication failed")
        if status_code is not None:
            self.upstream_status = status_code
            # Surface client errors as-is; anything else is a bad gateway.
            self.status_code = status_code if 400 <= status_code < 500 else 502
        else:
            self.upstream_status = None


class StoreError(PortalError):
    """The table API rejected a request or could not be reached."""

    status_code = 502

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message, title="Storage error")
        self.upstream_status = status_code


class SubmissionInProgressError(PortalError):
    status_code = 409

    def __init__(self) -> None:
        super().__init__(
            "A submission is already in progress. Please wait for it to finish.",
            title="Submission in progress",
        )


class BackendNotConfiguredError(PortalError):
    status_code = 503

    def __init__(self) -> None:
        super().__init__(
            "Backend not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY.",
            title="Service unavailable",
        )
