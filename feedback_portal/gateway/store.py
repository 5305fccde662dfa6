"""
Feedback table client.

Talks to the managed backend's table API (PostgREST):

  POST /rest/v1/<table>                                  -> insert, returns row
  GET  /rest/v1/<table>?user_id=eq.X&order=created_at.desc -> owner snapshot

Requests carry the user's bearer token so the backend's row-level policies
decide what the caller may read and write.
"""

import logging
from typing import List, Optional

import httpx

from feedback_portal.core.errors import StoreError
from feedback_portal.domain.models import FeedbackItem
from feedback_portal.gateway.auth import upstream_message

logger = logging.getLogger(__name__)


class FeedbackStore:

    def __init__(self, http: httpx.AsyncClient, base_url: str, api_key: str, table: str = "feedback"):
        self._http = http
        self._url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._api_key = api_key
        self.table = table

    def _headers(self, access_token: Optional[str]) -> dict:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {access_token or self._api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _rows(resp: httpx.Response) -> List[FeedbackItem]:
        """Decode a representation body into rows; anything unreadable is a StoreError."""
        try:
            body = resp.json()
            if body is None:
                return []
            raw_rows = body if isinstance(body, list) else [body]
            return [FeedbackItem.model_validate(raw) for raw in raw_rows]
        except ValueError as exc:
            # JSONDecodeError and pydantic's ValidationError are both ValueErrors.
            logger.error("Unreadable table API response (HTTP %d): %s", resp.status_code, exc)
            raise StoreError("The feedback store returned an unreadable response.", resp.status_code) from exc

    async def insert(self, row: dict, access_token: Optional[str] = None) -> FeedbackItem:
        """Insert one row and return it as stored (id and timestamps assigned)."""
        headers = self._headers(access_token)
        headers["Prefer"] = "return=representation"
        try:
            resp = await self._http.post(self._url, json=row, headers=headers)
        except httpx.HTTPError as exc:
            raise StoreError(str(exc) or type(exc).__name__) from exc
        if resp.status_code >= 400:
            raise StoreError(upstream_message(resp), resp.status_code)

        rows = self._rows(resp)
        if not rows:
            raise StoreError("Insert returned no row.")
        return rows[0]

    async def select_for_owner(self, owner_id: str, access_token: Optional[str] = None) -> List[FeedbackItem]:
        """All rows owned by ``owner_id``, newest first."""
        params = {
            "select": "*",
            "user_id": f"eq.{owner_id}",
            "order": "created_at.desc",
        }
        try:
            resp = await self._http.get(self._url, params=params, headers=self._headers(access_token))
        except httpx.HTTPError as exc:
            raise StoreError(str(exc) or type(exc).__name__) from exc
        if resp.status_code >= 400:
            raise StoreError(upstream_message(resp), resp.status_code)

        items: List[FeedbackItem] = []
        for item in self._rows(resp):
            if item.user_id != owner_id:
                # Misconfigured row-level policy; never show another user's rows.
                logger.warning("Dropping row %s not owned by %s", item.id, owner_id)
                continue
            items.append(item)
        return items
