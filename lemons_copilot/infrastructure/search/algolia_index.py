from __future__ import annotations

import logging

import httpx

from lemons_copilot.application.exceptions import SearchIndexError
from lemons_copilot.application.ports.search_index import SearchIndexPort
from lemons_copilot.domain.entities.service import Service


class AlgoliaSearchIndex(SearchIndexPort):
    def __init__(
        self,
        app_id: str,
        api_key: str,
        index_name: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        price_attribute: str = "packages.price",
        delivery_attribute: str = "packages.delivery_days",
    ) -> None:
        self._url = f"https://{app_id}-dsn.algolia.net/1/indexes/{index_name}/query"
        self._headers = {
            "X-Algolia-Application-Id": app_id,
            "X-Algolia-API-Key": api_key,
            "Content-Type": "application/json",
        }
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._price_attribute = price_attribute
        self._delivery_attribute = delivery_attribute
        self._logger = logging.getLogger(__name__)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search_services(
        self,
        query: str | None,
        category: str | None,
        limit: int,
        page: int,
        max_price: float | None = None,
        max_delivery_days: float | None = None,
    ) -> list[Service]:
        payload: dict[str, object] = {
            "query": query or "",
            "hitsPerPage": limit,
            "page": page,
        }
        if category:
            payload["facetFilters"] = [[f"category:{category}"]]
        numeric_filters = []
        if max_price is not None:
            numeric_filters.append(f"{self._price_attribute}<={max_price}")
        if max_delivery_days is not None:
            numeric_filters.append(f"{self._delivery_attribute}<={max_delivery_days}")
        if numeric_filters:
            payload["numericFilters"] = numeric_filters

        try:
            resp = await self._client.post(self._url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            self._logger.error("Search index request failed", extra={"reason": str(e)})
            raise SearchIndexError(f"Search index request failed: {e}") from e

        if resp.status_code >= 400:
            self._logger.error(
                "Search index query failed",
                extra={"status": resp.status_code, "reason": resp.text[:300]},
            )
            raise SearchIndexError(f"Search index query failed {resp.status_code}")

        services: list[Service] = []
        for hit in resp.json().get("hits", []) or []:
            try:
                services.append(Service.from_search_hit(hit))
            except (ValueError, AttributeError):
                continue
        return services
