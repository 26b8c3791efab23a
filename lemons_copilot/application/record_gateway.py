from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from lemons_copilot.application.exceptions import (
    RecordNotFoundError,
    RecordStoreError,
    TypeSlugUnresolvedError,
)
from lemons_copilot.application.ports.record_store import RecordStorePort
from lemons_copilot.application.ports.search_index import SearchIndexPort
from lemons_copilot.domain.entities.package import Package
from lemons_copilot.domain.entities.service import Service
from lemons_copilot.domain.entities.user import User
from lemons_copilot.infrastructure.bubble.type_slug_resolver import TypeSlugResolver

SERVICE = "service"
PACKAGE = "package"
USER = "user"

DEFAULT_PACKAGE_LIMIT = 100


class RecordGateway:
    """Typed, category-aware access to services, packages and users.

    Categories are turned into Data API type names through the resolver; raw
    records are normalized into domain entities here and nowhere else.
    """

    def __init__(
        self,
        store: RecordStorePort,
        resolver: TypeSlugResolver,
        search_index: SearchIndexPort | None = None,
        packages_field: str = "packages",
        service_field: str = "service",
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._search_index = search_index
        self._packages_field = packages_field
        self._service_field = service_field
        self._logger = logging.getLogger(__name__)

    # services

    async def get_service(self, service_id: str) -> Service:
        slug = await self._resolver.require(SERVICE)
        record = await self._store.fetch_by_id(slug, service_id)
        if record is None:
            raise RecordNotFoundError(SERVICE, service_id)
        return Service.from_record(record, packages_field=self._packages_field)

    async def load_service(self, service_id: str) -> tuple[Service, list[Package]]:
        """Service plus its packages. Package lookup problems degrade to an empty list."""
        service = await self.get_service(service_id)
        return service, await self.load_packages_quietly(service)

    async def load_packages_quietly(self, service: Service) -> list[Package]:
        try:
            return await self.get_packages_for_service(service)
        except (TypeSlugUnresolvedError, RecordStoreError) as e:
            self._logger.warning(
                "Packages unavailable for service", extra={"service_id": service.id, "reason": str(e)}
            )
            return []

    async def search_services(
        self,
        query: str | None = None,
        category: str | None = None,
        max_price: float | None = None,
        max_delivery_days: float | None = None,
        limit: int = 10,
        page: int = 0,
    ) -> list[Service]:
        if self._search_index is not None:
            services = await self._search_index.search_services(
                query, category, limit, page, max_price=max_price, max_delivery_days=max_delivery_days
            )
            return [
                s for s in services
                if (max_price is None or s.price is None or s.price <= max_price)
                and (max_delivery_days is None or s.delivery_days is None or s.delivery_days <= max_delivery_days)
            ]

        constraints: list[dict[str, Any]] = []
        if query:
            constraints.append({"key": "title", "constraint_type": "text contains", "value": query})
        if category:
            constraints.append({"key": "category", "constraint_type": "equals", "value": category})
        if max_price is not None:
            constraints.append({"key": "price", "constraint_type": "less than", "value": str(max_price)})
        if max_delivery_days is not None:
            constraints.append(
                {"key": "delivery_days", "constraint_type": "less than", "value": str(max_delivery_days)}
            )

        slug = await self._resolver.require(SERVICE)
        records = await self._store.search(
            slug,
            constraints=constraints,
            limit=limit,
            cursor=page * limit,
            sort_field="price",
            descending=False,
        )
        return [Service.from_record(r, packages_field=self._packages_field) for r in records if r.get("_id")]

    async def patch_service(self, service_id: str, fields: dict[str, Any]) -> None:
        slug = await self._resolver.require(SERVICE)
        await self._store.patch(slug, service_id, fields)

    # packages

    async def get_packages_for_service(self, service: Service, limit: int | None = None) -> list[Package]:
        """
        Packages may be linked either way round: a list of ids on the service,
        or a reverse key on each package. Both shapes are accepted.
        """
        slug = await self._resolver.require(PACKAGE)
        if service.package_ids:
            ids = list(service.package_ids)
            if limit is not None:
                ids = ids[:limit]
            records = await self._store.fetch_many(slug, ids)
        else:
            records = await self._store.search(
                slug,
                constraints=[
                    {"key": self._service_field, "constraint_type": "equals", "value": service.id}
                ],
                limit=limit if limit is not None else DEFAULT_PACKAGE_LIMIT,
            )

        packages: list[Package] = []
        for record in records:
            try:
                package = Package.from_record(record, service_field=self._service_field)
            except ValueError:
                continue
            if package.service_id is None:
                package = replace(package, service_id=service.id)
            packages.append(package)
        return packages

    async def get_package(self, package_id: str) -> Package:
        slug = await self._resolver.require(PACKAGE)
        record = await self._store.fetch_by_id(slug, package_id)
        if record is None:
            raise RecordNotFoundError(PACKAGE, package_id)
        return Package.from_record(record, service_field=self._service_field)

    async def patch_package(self, package_id: str, fields: dict[str, Any]) -> None:
        slug = await self._resolver.require(PACKAGE)
        await self._store.patch(slug, package_id, fields)

    # users

    async def get_user(self, user_id: str) -> User:
        slug = await self._resolver.require(USER)
        record = await self._store.fetch_by_id(slug, user_id)
        if record is None:
            raise RecordNotFoundError(USER, user_id)
        return User.from_record(record)

    async def patch_user(self, user_id: str, fields: dict[str, Any]) -> None:
        slug = await self._resolver.require(USER)
        await self._store.patch(slug, user_id, fields)
