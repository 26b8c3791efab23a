from __future__ import annotations

import logging
from typing import Any

from lemons_copilot.application.active_record_store import ActiveRecordStore
from lemons_copilot.application.record_gateway import RecordGateway
from lemons_copilot.application.use_cases.failures import OPERATION_ERRORS, failure_from_error, no_target
from lemons_copilot.application.use_cases.host_bridge import (
    PACKAGE_UPDATED,
    SERVICE_CATEGORY_UPDATED,
    SERVICE_DESCRIPTION_UPDATED,
    SERVICE_UPDATED,
    USER_UPDATED,
    HostBridge,
)
from lemons_copilot.application.use_cases.operation_registry import OperationSpec
from lemons_copilot.domain.entities.categories import allowed_categories_text, normalize_category
from lemons_copilot.domain.entities.operation_result import OperationResult
from lemons_copilot.domain.entities.package import PACKAGE_FIELDS
from lemons_copilot.domain.entities.user import USER_FIELDS
from lemons_copilot.domain.values import parse_number, split_list

MAX_TITLE_LENGTH = 80

_LIST_FIELDS = {"included", "skills"}


class MutationOperations:
    """
    Edits to services, packages and users.

    Every edit follows the same order: resolve the target id, validate without
    touching the network, PATCH only the supplied fields, merge them into the
    active snapshot, re-fetch the owning record from the store, notify the host.
    A rejected write leaves local state exactly as it was.
    """

    def __init__(self, gateway: RecordGateway, state: ActiveRecordStore, host: HostBridge) -> None:
        self._gateway = gateway
        self._state = state
        self._host = host
        self._logger = logging.getLogger(__name__)

    # services

    async def update_service_title(self, newTitle: str, serviceId: str | None = None) -> OperationResult:
        service_id = _target(serviceId, self._state.service_id)
        if not service_id:
            return no_target("service", "serviceId")

        title = " ".join(newTitle.split())
        if not title:
            return OperationResult.failure("validation", "The new title cannot be empty.")
        if len(title) > MAX_TITLE_LENGTH:
            return OperationResult.failure(
                "validation",
                f"Titles can be at most {MAX_TITLE_LENGTH} characters; this one has {len(title)}.",
            )

        result = await self._update_service(service_id, {"title": title}, "Could not update the service title.")
        if not result.success:
            return result
        self._host.notify(SERVICE_UPDATED, serviceId=service_id, title=title)
        return OperationResult.ok(f'Title updated to "{title}".', serviceId=service_id, newTitle=title)

    async def update_service_category(self, newCategory: str, serviceId: str | None = None) -> OperationResult:
        service_id = _target(serviceId, self._state.service_id)
        if not service_id:
            return no_target("service", "serviceId")

        category = normalize_category(newCategory)
        if category is None:
            return OperationResult.failure(
                "validation",
                f'"{newCategory}" is not an allowed category. Allowed categories: {allowed_categories_text()}',
            )

        result = await self._update_service(
            service_id, {"category": category}, "Could not update the service category."
        )
        if not result.success:
            return result
        self._host.notify(SERVICE_CATEGORY_UPDATED, serviceId=service_id, category=category)
        return OperationResult.ok(f'Category set to "{category}".', serviceId=service_id, newCategory=category)

    async def update_service_description(
        self, newDescription: str, serviceId: str | None = None
    ) -> OperationResult:
        service_id = _target(serviceId, self._state.service_id)
        if not service_id:
            return no_target("service", "serviceId")

        description = newDescription.strip()
        if not description:
            return OperationResult.failure("validation", "The new description cannot be empty.")

        result = await self._update_service(
            service_id, {"description": description}, "Could not update the service description."
        )
        if not result.success:
            return result
        self._host.notify(SERVICE_DESCRIPTION_UPDATED, serviceId=service_id, description=description)
        return OperationResult.ok(
            "Description updated.", serviceId=service_id, newDescription=description
        )

    async def _update_service(self, service_id: str, fields: dict[str, Any], message: str) -> OperationResult:
        try:
            await self._gateway.patch_service(service_id, fields)
        except OPERATION_ERRORS as e:
            self._logger.error(
                "Service update rejected", extra={"service_id": service_id, "reason": str(e)}
            )
            return failure_from_error(e, message)

        self._state.merge_service_fields(service_id, fields)
        await self._reconcile_service(service_id)
        return OperationResult.ok("updated")

    async def _reconcile_service(self, service_id: str) -> None:
        self._logger.info("Reconciliation fetch", extra={"service_id": service_id})
        try:
            await self._state.set_active_service(service_id)
        except OPERATION_ERRORS as e:
            # The write already succeeded; the next turn's refresh will retry
            self._logger.warning(
                "Reconciliation fetch failed", extra={"service_id": service_id, "reason": str(e)}
            )

    # packages

    async def update_package(
        self,
        packageId: str,
        name: str | None = None,
        package_description: str | None = None,
        price: Any = None,
        delivery: Any = None,
        revisions: Any = None,
        included: Any = None,
    ) -> OperationResult:
        package_id = packageId.strip()
        if not package_id:
            return no_target("package", "packageId")

        supplied = {
            "name": name,
            "package_description": package_description,
            "price": price,
            "delivery": delivery,
            "revisions": revisions,
            "included": included,
        }
        try:
            fields = _collect_fields(supplied, PACKAGE_FIELDS, numeric={"price"})
        except ValueError as e:
            return OperationResult.failure("validation", str(e))
        if not fields:
            return OperationResult.failure("validation", "Nothing to update: pass at least one package field.")

        known = self._state.find_package(package_id)
        try:
            await self._gateway.patch_package(package_id, fields)
        except OPERATION_ERRORS as e:
            self._logger.error("Package update rejected", extra={"reason": f"{package_id}: {e}"})
            return failure_from_error(e, "Could not update the package.")

        self._state.merge_package_fields(package_id, fields)

        owner_id = (known.service_id if known else None) or await self._package_owner(package_id)
        if owner_id:
            await self._reconcile_service(owner_id)

        self._host.notify(PACKAGE_UPDATED, packageId=package_id)
        return OperationResult.ok(
            "Package updated.", packageId=package_id, updatedFields=sorted(fields.keys())
        )

    async def _package_owner(self, package_id: str) -> str | None:
        try:
            package = await self._gateway.get_package(package_id)
        except OPERATION_ERRORS as e:
            self._logger.warning("Package owner lookup failed", extra={"reason": f"{package_id}: {e}"})
            return self._state.service_id
        return package.service_id or self._state.service_id

    # users

    async def update_user(
        self,
        userId: str | None = None,
        firstName: str | None = None,
        lastName: str | None = None,
        bio: str | None = None,
        experience: str | None = None,
        tagline: str | None = None,
        skills: Any = None,
    ) -> OperationResult:
        user_id = _target(userId, self._state.user_id)
        if not user_id:
            return no_target("user", "userId")

        supplied = {
            "firstName": firstName,
            "lastName": lastName,
            "bio": bio,
            "experience": experience,
            "tagline": tagline,
            "skills": skills,
        }
        fields = _collect_fields(supplied, USER_FIELDS)
        if not fields:
            return OperationResult.failure("validation", "Nothing to update: pass at least one profile field.")

        try:
            await self._gateway.patch_user(user_id, fields)
        except OPERATION_ERRORS as e:
            self._logger.error("User update rejected", extra={"user_id": user_id, "reason": str(e)})
            return failure_from_error(e, "Could not update the profile.")

        self._state.merge_user_fields(user_id, fields)
        self._logger.info("Reconciliation fetch", extra={"user_id": user_id})
        try:
            await self._state.set_active_user(user_id)
        except OPERATION_ERRORS as e:
            self._logger.warning("Reconciliation fetch failed", extra={"user_id": user_id, "reason": str(e)})

        self._host.notify(USER_UPDATED, userId=user_id)
        return OperationResult.ok("Profile updated.", userId=user_id, updatedFields=sorted(fields.keys()))

    def specs(self) -> list[OperationSpec]:
        service_id = {"type": "string", "description": "Service id; omit to use the active service"}
        return [
            OperationSpec(
                name="updateServiceTitle",
                description="Set the title of a service once an improved title has been chosen (max 80 characters).",
                parameters={
                    "type": "object",
                    "properties": {
                        "serviceId": service_id,
                        "newTitle": {"type": "string", "description": "The finalized title"},
                    },
                    "required": ["newTitle"],
                },
                handler=self.update_service_title,
            ),
            OperationSpec(
                name="updateServiceCategory",
                description="Set the category of a service. Must be one of the allowed categories.",
                parameters={
                    "type": "object",
                    "properties": {
                        "serviceId": service_id,
                        "newCategory": {"type": "string", "description": "An allowed category label"},
                    },
                    "required": ["newCategory"],
                },
                handler=self.update_service_category,
            ),
            OperationSpec(
                name="updateServiceDescription",
                description="Replace the description of a service.",
                parameters={
                    "type": "object",
                    "properties": {
                        "serviceId": service_id,
                        "newDescription": {"type": "string", "description": "The full new description"},
                    },
                    "required": ["newDescription"],
                },
                handler=self.update_service_description,
            ),
            OperationSpec(
                name="updatePackage",
                description="Update fields of one package. Only the fields passed are changed.",
                parameters={
                    "type": "object",
                    "properties": {
                        "packageId": {"type": "string", "description": "Package unique id"},
                        "name": {"type": "string"},
                        "package_description": {"type": "string"},
                        "price": {"type": "number"},
                        "delivery": {"type": "string", "description": "Delivery time, e.g. '3 days'"},
                        "revisions": {"type": "string"},
                        "included": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Included items; a comma or newline separated string also works",
                        },
                    },
                    "required": ["packageId"],
                },
                handler=self.update_package,
            ),
            OperationSpec(
                name="updateUser",
                description="Update the active user's public profile. Only these fields can be changed.",
                parameters={
                    "type": "object",
                    "properties": {
                        "userId": {"type": "string", "description": "User id; omit to use the active user"},
                        "firstName": {"type": "string"},
                        "lastName": {"type": "string"},
                        "bio": {"type": "string"},
                        "experience": {"type": "string"},
                        "tagline": {"type": "string"},
                        "skills": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Skills; a comma or newline separated string also works",
                        },
                    },
                    "required": [],
                },
                handler=self.update_user,
            ),
        ]


def _target(explicit: str | None, active: str | None) -> str | None:
    return (explicit or "").strip() or active


def _collect_fields(
    supplied: dict[str, Any],
    mapping: dict[str, str],
    numeric: set[str] | None = None,
) -> dict[str, Any]:
    """Map supplied operation arguments onto store field keys, skipping omitted ones."""
    fields: dict[str, Any] = {}
    for argument, value in supplied.items():
        if value is None:
            continue
        key = mapping[argument]
        if numeric and argument in numeric:
            try:
                fields[key] = parse_number(value)
            except ValueError:
                raise ValueError(f"{argument} must be a number, got {value!r}.")
        elif key in _LIST_FIELDS:
            fields[key] = split_list(value)
        else:
            fields[key] = str(value).strip()
    return fields
