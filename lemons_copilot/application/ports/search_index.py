from __future__ import annotations

from abc import ABC, abstractmethod

from lemons_copilot.domain.entities.service import Service


class SearchIndexPort(ABC):
    @abstractmethod
    async def search_services(
        self,
        query: str | None,
        category: str | None,
        limit: int,
        page: int,
        max_price: float | None = None,
        max_delivery_days: float | None = None,
    ) -> list[Service]:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
