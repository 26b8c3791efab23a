from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Sequence

from lemons_copilot.application.exceptions import TypeSlugUnresolvedError
from lemons_copilot.application.ports.key_value_store import KeyValueStorePort
from lemons_copilot.application.ports.record_store import RecordStorePort

CACHE_KEY_PREFIX = "lemons.type_slug."


class TypeSlugResolver:
    """
    Finds which Data API type name backs a record category ("package", "user").

    Resolution order:
    - explicit override (trusted without probing, still cached)
    - durable cache
    - probe each candidate with a limit=1 query, first success wins

    A probe result is cached until `resolve(category, force_refresh=True)`.
    """

    def __init__(
        self,
        store: RecordStorePort,
        cache: KeyValueStorePort,
        candidates: Mapping[str, Sequence[str]],
        overrides: Mapping[str, str | None] | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._candidates = {k: list(v) for k, v in candidates.items()}
        self._overrides = dict(overrides or {})
        self._locks: dict[str, asyncio.Lock] = {}
        self._logger = logging.getLogger(__name__)

    def _lock_for(self, category: str) -> asyncio.Lock:
        if category not in self._locks:
            self._locks[category] = asyncio.Lock()
        return self._locks[category]

    async def resolve(self, category: str, force_refresh: bool = False) -> str | None:
        key = CACHE_KEY_PREFIX + category

        override = (self._overrides.get(category) or "").strip()
        if override:
            if self._cache.get(key) != override:
                self._cache.set(key, override)
            return override

        async with self._lock_for(category):
            if not force_refresh:
                cached = self._cache.get(key)
                if cached:
                    return cached

            for slug in self._candidates.get(category, []):
                if await self._store.probe(slug):
                    self._cache.set(key, slug)
                    self._logger.info("Type slug resolved", extra={"slug": slug, "reason": category})
                    return slug

            self._cache.delete(key)
            self._logger.warning(
                "Type slug unresolved",
                extra={"reason": f"{category}: tried {', '.join(self._candidates.get(category, [])) or 'nothing'}"},
            )
            return None

    async def require(self, category: str) -> str:
        slug = await self.resolve(category)
        if not slug:
            raise TypeSlugUnresolvedError(category)
        return slug
