"""
Submission form.

Validates a draft locally, then writes one Pending row to the store.  The
form never touches any list: the new row reaches the dashboard through the
change stream like every other change.

At most one insert is in flight per form; ``FormRegistry`` keeps one form
per signed-in user so the guard holds across requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from feedback_portal.core.errors import FeedbackValidationError, StoreError, SubmissionInProgressError
from feedback_portal.domain.enums import SubmissionState
from feedback_portal.domain.models import FeedbackDraft, FeedbackItem, Notification, SessionUser
from feedback_portal.gateway.store import FeedbackStore

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 5000


def validate_draft(draft: FeedbackDraft) -> None:
    """Raise FeedbackValidationError for the first field out of bounds."""
    if not TITLE_MIN_LENGTH <= len(draft.title) <= TITLE_MAX_LENGTH:
        raise FeedbackValidationError(
            "title",
            f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters",
        )
    if not DESCRIPTION_MIN_LENGTH <= len(draft.description) <= DESCRIPTION_MAX_LENGTH:
        raise FeedbackValidationError(
            "description",
            f"Description must be between {DESCRIPTION_MIN_LENGTH} and "
            f"{DESCRIPTION_MAX_LENGTH} characters",
        )


@dataclass
class SubmissionResult:
    ok: bool
    notification: Notification
    draft: FeedbackDraft
    item: Optional[FeedbackItem] = None


class SubmissionForm:
    """One user's submission form and its {idle, submitting, done, failed} state."""

    def __init__(self, owner_id: str, store: FeedbackStore, access_token: Optional[str] = None):
        self.owner_id = owner_id
        self.access_token = access_token
        self._store = store
        self.draft = FeedbackDraft()
        self.state = SubmissionState.IDLE

    async def submit(self, title: str, description: str) -> SubmissionResult:
        """Validate and insert.

        Raises SubmissionInProgressError while a previous insert is pending
        and FeedbackValidationError for out-of-range fields; neither makes a
        network call or changes the state.
        """
        if not self.state.accepts_submit:
            raise SubmissionInProgressError()

        self.draft.title = title
        self.draft.description = description
        validate_draft(self.draft)

        payload = self.draft.insert_payload(self.owner_id)
        self.state = SubmissionState.SUBMITTING
        try:
            item = await self._store.insert(payload, self.access_token)
        except StoreError as exc:
            logger.error("Error submitting feedback for %s: %s", self.owner_id, exc)
            self.state = SubmissionState.FAILED
            return SubmissionResult(
                ok=False,
                notification=Notification.failure(
                    "Submission failed",
                    "There was an error submitting your feedback. Please try again.",
                ),
                draft=FeedbackDraft(self.draft.title, self.draft.description),
            )
        finally:
            # Unexpected errors and cancellation must not leave the form locked.
            if self.state is SubmissionState.SUBMITTING:
                self.state = SubmissionState.FAILED

        self.state = SubmissionState.DONE
        self.draft.clear()
        logger.info("Feedback %s submitted by %s", item.id, self.owner_id)
        return SubmissionResult(
            ok=True,
            notification=Notification(
                "Feedback submitted!",
                "Your feedback is being processed. It will be classified shortly.",
            ),
            draft=FeedbackDraft(),
            item=item,
        )


class FormRegistry:
    """Holds the form of every user with a submission in flight."""

    def __init__(self) -> None:
        self._forms: Dict[str, SubmissionForm] = {}

    def form_for(self, user: SessionUser, store: FeedbackStore) -> SubmissionForm:
        form = self._forms.get(user.id)
        if form is None:
            form = SubmissionForm(user.id, store, user.access_token)
            self._forms[user.id] = form
        else:
            # Token rotates on every sign-in.
            form.access_token = user.access_token
        return form

    def release(self, user_id: str) -> None:
        """Forget ``user_id``'s form unless a submission is still in flight."""
        form = self._forms.get(user_id)
        if form is not None and form.state is not SubmissionState.SUBMITTING:
            del self._forms[user_id]

    def discard(self, user_id: str) -> None:
        self._forms.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._forms)
