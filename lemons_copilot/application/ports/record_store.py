from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class RecordStorePort(ABC):
    @abstractmethod
    async def fetch_by_id(self, slug: str, record_id: str) -> dict[str, Any] | None:
        """Fetch one record. Returns None when the store answers 404."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_many(self, slug: str, record_ids: list[str]) -> list[dict[str, Any]]:
        """Fetch records concurrently. Failed or missing ids are left out of the result."""
        raise NotImplementedError

    @abstractmethod
    async def search(
        self,
        slug: str,
        constraints: list[dict[str, Any]] | None = None,
        limit: int | None = None,
        cursor: int | None = None,
        sort_field: str | None = None,
        descending: bool | None = None,
    ) -> list[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def patch(self, slug: str, record_id: str, fields: dict[str, Any]) -> None:
        """Partial update; only the supplied fields change server-side."""
        raise NotImplementedError

    @abstractmethod
    async def probe(self, slug: str) -> bool:
        """Cheap existence check for a collection name."""
        raise NotImplementedError
