from __future__ import annotations

import logging
from typing import Any

from lemons_copilot.application.active_record_store import ActiveRecordStore
from lemons_copilot.application.record_gateway import RecordGateway
from lemons_copilot.application.use_cases.failures import OPERATION_ERRORS, failure_from_error, no_target
from lemons_copilot.application.use_cases.operation_registry import OperationSpec
from lemons_copilot.domain.entities.categories import normalize_category
from lemons_copilot.domain.entities.operation_result import OperationResult
from lemons_copilot.domain.values import parse_number

MAX_SEARCH_LIMIT = 50


class RetrievalOperations:
    def __init__(self, gateway: RecordGateway, state: ActiveRecordStore) -> None:
        self._gateway = gateway
        self._state = state
        self._logger = logging.getLogger(__name__)

    async def search_services(
        self,
        query: str | None = None,
        category: str | None = None,
        maxPrice: Any = None,
        maxDeliveryDays: Any = None,
        limit: Any = 10,
        page: Any = 0,
    ) -> OperationResult:
        try:
            max_price = parse_number(maxPrice) if maxPrice is not None else None
            max_days = parse_number(maxDeliveryDays) if maxDeliveryDays is not None else None
            size = int(parse_number(limit))
            page_number = int(parse_number(page))
        except ValueError as e:
            return OperationResult.failure("validation", f"Invalid search filter: {e}")

        size = max(1, min(size, MAX_SEARCH_LIMIT))
        page_number = max(0, page_number)
        query = (query or "").strip() or None
        category = normalize_category(category) or ((category or "").strip() or None)

        try:
            services = await self._gateway.search_services(
                query=query,
                category=category,
                max_price=max_price,
                max_delivery_days=max_days,
                limit=size,
                page=page_number,
            )
        except OPERATION_ERRORS as e:
            return failure_from_error(e, "Sorry, I could not search services right now.")

        noun = "service" if len(services) == 1 else "services"
        return OperationResult.ok(
            f"Found {len(services)} {noun}.",
            services=[s.to_context() for s in services],
            searchCriteria={
                "query": query,
                "category": category,
                "maxPrice": max_price,
                "maxDeliveryDays": max_days,
                "limit": size,
                "page": page_number,
            },
            displayOnly=True,
        )

    async def get_service_by_id(self, serviceId: str) -> OperationResult:
        service_id = serviceId.strip()
        if not service_id:
            return no_target("service", "serviceId")
        try:
            load = await self._state.set_active_service(service_id)
        except OPERATION_ERRORS as e:
            return failure_from_error(e, "Could not load the service.")
        return OperationResult.ok(
            f'Loaded service "{load.service.title}".',
            service=load.service.to_context(),
            packages=[p.to_context() for p in load.packages],
        )

    async def list_packages_for_service(self, serviceId: str | None = None, limit: Any = None) -> OperationResult:
        service_id = (serviceId or "").strip() or self._state.service_id
        if not service_id:
            return no_target("service", "serviceId")
        try:
            size = int(parse_number(limit)) if limit is not None else None
        except ValueError as e:
            return OperationResult.failure("validation", f"Invalid limit: {e}")
        if size is not None and size < 1:
            return OperationResult.failure("validation", "Invalid limit: must be at least 1.")

        active = self._state.snapshot().service
        try:
            service = active if active and active.id == service_id else await self._gateway.get_service(service_id)
            packages = await self._gateway.get_packages_for_service(service, limit=size)
        except OPERATION_ERRORS as e:
            return failure_from_error(e, "Could not list packages for this service.")

        if service_id == self._state.service_id:
            for package in packages:
                self._state.merge_package(package)

        return OperationResult.ok(
            f"Found {len(packages)} package{'s' if len(packages) != 1 else ''}.",
            serviceId=service_id,
            packages=[p.to_context() for p in packages],
        )

    async def get_package_by_id(self, packageId: str) -> OperationResult:
        package_id = packageId.strip()
        if not package_id:
            return no_target("package", "packageId")
        try:
            package = await self._gateway.get_package(package_id)
        except OPERATION_ERRORS as e:
            return failure_from_error(e, "Could not load the package.")
        self._state.merge_package(package)
        return OperationResult.ok(f'Loaded package "{package.name}".', package=package.to_context())

    async def get_user_by_id(self, userId: str) -> OperationResult:
        user_id = userId.strip()
        if not user_id:
            return no_target("user", "userId")
        try:
            load = await self._state.set_active_user(user_id)
        except OPERATION_ERRORS as e:
            return failure_from_error(e, "Could not load the user.")
        return OperationResult.ok("Loaded user profile.", user=load.user.to_context())

    def specs(self) -> list[OperationSpec]:
        return [
            OperationSpec(
                name="searchServices",
                description=(
                    "Search for service providers on the Lemons marketplace. Use this when users ask "
                    "about finding professionals like web designers, developers, marketers or consultants."
                ),
                parameters={
                    "type": "object",
                    "properties": {
                        "query": {"type": "string", "description": "Free text, e.g. 'web designer'"},
                        "category": {"type": "string", "description": "One of the allowed categories"},
                        "maxPrice": {"type": "number", "description": "Maximum price"},
                        "maxDeliveryDays": {"type": "number", "description": "Maximum delivery days"},
                        "limit": {"type": "integer", "description": "Results per page (default 10)"},
                        "page": {"type": "integer", "description": "Zero-based page number"},
                    },
                    "required": [],
                },
                handler=self.search_services,
            ),
            OperationSpec(
                name="getServiceById",
                description="Load a service and its packages by id and make it the active service.",
                parameters={
                    "type": "object",
                    "properties": {"serviceId": {"type": "string", "description": "Service unique id (_id)"}},
                    "required": ["serviceId"],
                },
                handler=self.get_service_by_id,
            ),
            OperationSpec(
                name="listPackagesForService",
                description="List the packages of a service. Defaults to the active service.",
                parameters={
                    "type": "object",
                    "properties": {
                        "serviceId": {"type": "string", "description": "Service id; omit for the active service"},
                        "limit": {"type": "integer", "description": "Maximum number of packages"},
                    },
                    "required": [],
                },
                handler=self.list_packages_for_service,
            ),
            OperationSpec(
                name="getPackageById",
                description="Load a single package by id.",
                parameters={
                    "type": "object",
                    "properties": {"packageId": {"type": "string", "description": "Package unique id"}},
                    "required": ["packageId"],
                },
                handler=self.get_package_by_id,
            ),
            OperationSpec(
                name="getUserById",
                description="Load a user's public profile (name, bio, experience, tagline, skills).",
                parameters={
                    "type": "object",
                    "properties": {"userId": {"type": "string", "description": "User unique id"}},
                    "required": ["userId"],
                },
                handler=self.get_user_by_id,
            ),
        ]
