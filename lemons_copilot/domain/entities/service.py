from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from lemons_copilot.domain.values import parse_delivery_days, to_number


@dataclass(frozen=True)
class Service:
    id: str
    title: str = ""
    description: str = ""
    category: str | None = None
    price: float | None = None
    delivery_days: float | None = None
    package_ids: tuple[str, ...] = ()
    user_id: str | None = None

    @staticmethod
    def from_record(record: Mapping[str, Any], packages_field: str = "packages") -> "Service":
        """Build a Service from a Data API record (identity under `_id`)."""
        record_id = record.get("_id") or record.get("id")
        if not record_id:
            raise ValueError("Service record has no _id")

        raw_packages = record.get(packages_field) or ()
        if isinstance(raw_packages, str):
            raw_packages = (raw_packages,)

        return Service(
            id=str(record_id),
            title=str(record.get("title") or ""),
            description=str(record.get("description") or ""),
            category=record.get("category") or None,
            price=to_number(record.get("price")),
            delivery_days=_delivery_days(record.get("delivery_days")),
            package_ids=tuple(str(p) for p in raw_packages if p),
            user_id=_owner_id(record),
        )

    @staticmethod
    def from_search_hit(hit: Mapping[str, Any]) -> "Service":
        """Re-map a search index hit; price and delivery come from its nested packages."""
        record_id = hit.get("objectID") or hit.get("_id") or hit.get("id")
        if not record_id:
            raise ValueError("Search hit has no objectID")

        packages = hit.get("packages") or []
        prices = [
            p for p in (to_number(pkg.get("price")) for pkg in packages if isinstance(pkg, Mapping))
            if p is not None
        ]
        days = [
            d for d in (parse_delivery_days(pkg.get("delivery")) for pkg in packages if isinstance(pkg, Mapping))
            if d is not None
        ]

        return Service(
            id=str(record_id),
            title=str(hit.get("title") or ""),
            description=str(hit.get("description") or ""),
            category=hit.get("category") or None,
            price=min(prices) if prices else to_number(hit.get("price")),
            delivery_days=min(days) if days else _delivery_days(hit.get("delivery_days")),
            package_ids=tuple(
                str(pkg.get("objectID") or pkg.get("_id") or pkg.get("id"))
                for pkg in packages
                if isinstance(pkg, Mapping) and (pkg.get("objectID") or pkg.get("_id") or pkg.get("id"))
            ),
            user_id=_owner_id(hit),
        )

    def with_fields(self, fields: Mapping[str, Any]) -> "Service":
        """Apply Data API field keys (as sent in a PATCH) to a copy."""
        changes: dict[str, Any] = {}
        for key in ("title", "description", "category"):
            if key in fields:
                changes[key] = fields[key]
        return replace(self, **changes)

    def to_context(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "delivery_days": self.delivery_days,
            "package_ids": list(self.package_ids),
            "user_id": self.user_id,
        }


def _delivery_days(value: Any) -> float | None:
    number = to_number(value)
    if number is not None:
        return number
    return parse_delivery_days(value)


def _owner_id(record: Mapping[str, Any]) -> str | None:
    owner = record.get("user") or record.get("Created By")
    if isinstance(owner, Mapping):
        owner = owner.get("_id") or owner.get("id")
    return str(owner) if owner else None
