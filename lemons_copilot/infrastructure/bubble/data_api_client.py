from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from lemons_copilot.application.exceptions import RecordStoreError
from lemons_copilot.application.ports.record_store import RecordStorePort


@dataclass(frozen=True)
class FetchOutcome:
    record_id: str
    record: dict[str, Any] | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class BubbleDataApiClient(RecordStorePort):
    """Async client for the Bubble Data API (`{base}/obj/{type}` endpoints).

    No retries happen here; callers decide what a failure means.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_by_id(self, slug: str, record_id: str) -> dict[str, Any] | None:
        resp = await self._request("GET", self._url(slug, record_id), slug=slug)
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp, "fetch", slug)

        body = _json_body(resp)
        record = body.get("response", body) if isinstance(body, dict) else None
        if not isinstance(record, dict) or not record:
            return None
        record.setdefault("_id", record_id)
        return record

    async def fetch_many(self, slug: str, record_ids: list[str]) -> list[dict[str, Any]]:
        outcomes = await asyncio.gather(*(self._fetch_outcome(slug, rid) for rid in record_ids))
        failed = [o.record_id for o in outcomes if not o.ok]
        if failed:
            self._logger.warning(
                "Some records could not be fetched",
                extra={"slug": slug, "reason": f"dropped {len(failed)} of {len(outcomes)}"},
            )
        return [o.record for o in outcomes if o.record is not None]

    async def _fetch_outcome(self, slug: str, record_id: str) -> FetchOutcome:
        try:
            record = await self.fetch_by_id(slug, record_id)
        except RecordStoreError as e:
            return FetchOutcome(record_id=record_id, record=None, error=str(e))
        if record is None:
            return FetchOutcome(record_id=record_id, record=None, error="not found")
        return FetchOutcome(record_id=record_id, record=record)

    async def search(
        self,
        slug: str,
        constraints: list[dict[str, Any]] | None = None,
        limit: int | None = None,
        cursor: int | None = None,
        sort_field: str | None = None,
        descending: bool | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {}
        if constraints:
            params["constraints"] = json.dumps(constraints)
        if limit is not None:
            params["limit"] = str(limit)
        if cursor:
            params["cursor"] = str(cursor)
        if sort_field:
            params["sort_field"] = sort_field
        if descending is not None:
            params["descending"] = "true" if descending else "false"

        resp = await self._request("GET", self._url(slug), slug=slug, params=params)
        self._raise_for_status(resp, "search", slug)

        body = _json_body(resp)
        if not isinstance(body, dict):
            return []
        results = (body.get("response") or {}).get("results") or []
        return [r for r in results if isinstance(r, dict)]

    async def patch(self, slug: str, record_id: str, fields: dict[str, Any]) -> None:
        resp = await self._request("PATCH", self._url(slug, record_id), slug=slug, json=fields)
        self._raise_for_status(resp, "update", slug)
        # The Data API usually answers 204 with no body; nothing to read.

    async def probe(self, slug: str) -> bool:
        try:
            resp = await self._request("GET", self._url(slug), slug=slug, params={"limit": "1"})
        except RecordStoreError:
            return False
        return resp.is_success

    def _url(self, slug: str, record_id: str | None = None) -> str:
        url = f"{self._base_url}/obj/{slug}"
        if record_id:
            url = f"{url}/{record_id}"
        return url

    async def _request(self, method: str, url: str, slug: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, headers=self._headers, **kwargs)
        except httpx.HTTPError as e:
            self._logger.error(
                "Data API request failed", extra={"slug": slug, "reason": f"{method} {e}"}
            )
            raise RecordStoreError(f"Data API request failed: {e}") from e

    def _raise_for_status(self, resp: httpx.Response, action: str, slug: str) -> None:
        if resp.is_success:
            return
        body = resp.text[:300]
        self._logger.error(
            "Data API %s failed", action, extra={"slug": slug, "status": resp.status_code, "reason": body}
        )
        raise RecordStoreError(
            f"Data API {action} failed {resp.status_code}: {body}".rstrip(": "),
            status=resp.status_code,
        )


def _json_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None
