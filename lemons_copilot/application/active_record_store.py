from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from lemons_copilot.domain.entities.package import Package
from lemons_copilot.domain.entities.service import Service
from lemons_copilot.domain.entities.user import User

ServiceLoader = Callable[[str], Awaitable[tuple[Service, list[Package]]]]
PackagesLoader = Callable[[Service], Awaitable[list[Package]]]
UserLoader = Callable[[str], Awaitable[User]]


@dataclass(frozen=True)
class ActiveSnapshot:
    service: Service | None = None
    packages: tuple[Package, ...] = ()
    user: User | None = None
    service_loading: bool = False
    user_loading: bool = False


@dataclass(frozen=True)
class ServiceLoad:
    service: Service
    packages: list[Package]
    # False when a newer request superseded this fetch before it resolved
    committed: bool


@dataclass(frozen=True)
class UserLoad:
    user: User
    committed: bool


SnapshotListener = Callable[[ActiveSnapshot], None]


class ActiveRecordStore:
    """
    What the widget is looking at right now: one service, its packages, one user.

    Setting by id fetches and replaces; only the loading flag stands in while the
    fetch runs. Each slot keeps a generation counter so an older in-flight fetch
    never overwrites a newer request, whatever order they resolve in.
    """

    def __init__(
        self,
        load_service: ServiceLoader,
        load_user: UserLoader,
        load_packages: PackagesLoader | None = None,
    ) -> None:
        self._load_service = load_service
        self._load_user = load_user
        self._load_packages = load_packages
        self._listeners: list[SnapshotListener] = []
        self._logger = logging.getLogger(__name__)
        self._service_generation = 0
        self._user_generation = 0
        self._clear()

    def _clear(self) -> None:
        self._service: Service | None = None
        self._packages: list[Package] = []
        self._user: User | None = None
        self._service_loading = False
        self._user_loading = False

    def subscribe(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def snapshot(self) -> ActiveSnapshot:
        return ActiveSnapshot(
            service=self._service,
            packages=tuple(self._packages),
            user=self._user,
            service_loading=self._service_loading,
            user_loading=self._user_loading,
        )

    @property
    def service_id(self) -> str | None:
        return self._service.id if self._service else None

    @property
    def user_id(self) -> str | None:
        return self._user.id if self._user else None

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    # service slot

    async def set_active_service(self, value: str | Service) -> ServiceLoad:
        if isinstance(value, Service):
            return await self._replace_service(value)

        self._service_generation += 1
        generation = self._service_generation
        self._service_loading = True
        self._notify()

        try:
            service, packages = await self._load_service(value)
        except Exception:
            self._finish_service_loading(generation)
            raise

        if generation != self._service_generation:
            self._logger.info("Discarding stale service fetch", extra={"service_id": value})
            return ServiceLoad(service=service, packages=packages, committed=False)

        self._service = service
        self._packages = list(packages)
        self._service_loading = False
        self._notify()
        return ServiceLoad(service=service, packages=list(packages), committed=True)

    async def _replace_service(self, service: Service) -> ServiceLoad:
        self._service_generation += 1
        generation = self._service_generation
        if self.service_id != service.id:
            self._packages = []
        self._service = service
        self._service_loading = False
        self._notify()

        if self._load_packages is None:
            return ServiceLoad(service=service, packages=list(self._packages), committed=True)

        packages = await self._load_packages(service)
        if generation != self._service_generation:
            return ServiceLoad(service=service, packages=packages, committed=False)
        self._packages = list(packages)
        self._notify()
        return ServiceLoad(service=service, packages=list(packages), committed=True)

    def _finish_service_loading(self, generation: int) -> None:
        if generation == self._service_generation and self._service_loading:
            self._service_loading = False
            self._notify()

    def merge_service_fields(self, service_id: str, fields: Mapping[str, Any]) -> bool:
        if self._service is None or self._service.id != service_id:
            return False
        self._service = self._service.with_fields(fields)
        self._notify()
        return True

    def merge_package(self, package: Package) -> bool:
        """Fold an individually fetched package into the active collection."""
        if self._service is None:
            return False
        if package.service_id not in (None, self._service.id) and package.id not in self._service.package_ids:
            return False
        for index, existing in enumerate(self._packages):
            if existing.id == package.id:
                self._packages[index] = package
                break
        else:
            self._packages.append(package)
        self._notify()
        return True

    def merge_package_fields(self, package_id: str, fields: Mapping[str, Any]) -> bool:
        for index, existing in enumerate(self._packages):
            if existing.id == package_id:
                self._packages[index] = existing.with_fields(fields)
                self._notify()
                return True
        return False

    def find_package(self, package_id: str) -> Package | None:
        return next((p for p in self._packages if p.id == package_id), None)

    # user slot

    async def set_active_user(self, value: str | User) -> UserLoad:
        self._user_generation += 1
        generation = self._user_generation

        if isinstance(value, User):
            self._user = value
            self._user_loading = False
            self._notify()
            return UserLoad(user=value, committed=True)

        self._user_loading = True
        self._notify()
        try:
            user = await self._load_user(value)
        except Exception:
            if generation == self._user_generation and self._user_loading:
                self._user_loading = False
                self._notify()
            raise

        if generation != self._user_generation:
            self._logger.info("Discarding stale user fetch", extra={"user_id": value})
            return UserLoad(user=user, committed=False)

        self._user = user
        self._user_loading = False
        self._notify()
        return UserLoad(user=user, committed=True)

    def merge_user_fields(self, user_id: str, fields: Mapping[str, Any]) -> bool:
        if self._user is None or self._user.id != user_id:
            return False
        self._user = self._user.with_fields(fields)
        self._notify()
        return True

    def reset(self) -> None:
        # Bumping the generations strands any fetch still in flight
        self._service_generation += 1
        self._user_generation += 1
        self._clear()
        self._notify()
