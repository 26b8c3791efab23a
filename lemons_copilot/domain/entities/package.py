from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from lemons_copilot.domain.values import split_list, to_number

# Operation argument -> Data API field key.
PACKAGE_FIELDS: dict[str, str] = {
    "name": "name",
    "package_description": "package_description",
    "price": "price",
    "delivery": "delivery",
    "revisions": "revisions",
    "included": "included",
}


@dataclass(frozen=True)
class Package:
    id: str
    service_id: str | None = None
    name: str = ""
    package_description: str = ""
    price: float | None = None
    delivery: str = ""
    revisions: str = ""
    included: tuple[str, ...] = ()

    @staticmethod
    def from_record(record: Mapping[str, Any], service_field: str = "service") -> "Package":
        record_id = record.get("_id") or record.get("id")
        if not record_id:
            raise ValueError("Package record has no _id")

        service_ref = record.get(service_field)
        if isinstance(service_ref, Mapping):
            service_ref = service_ref.get("_id") or service_ref.get("id")

        return Package(
            id=str(record_id),
            service_id=str(service_ref) if service_ref else None,
            name=str(record.get("name") or record.get("title") or ""),
            package_description=str(record.get("package_description") or ""),
            price=to_number(record.get("price")),
            delivery=_text(record.get("delivery")),
            revisions=_text(record.get("revisions")),
            included=tuple(split_list(record.get("included"))),
        )

    def with_fields(self, fields: Mapping[str, Any]) -> "Package":
        """Apply Data API field keys (as sent in a PATCH) to a copy."""
        changes: dict[str, Any] = {}
        for key, value in fields.items():
            if key == "price":
                changes["price"] = to_number(value)
            elif key == "included":
                changes["included"] = tuple(split_list(value))
            elif key in ("name", "package_description", "delivery", "revisions"):
                changes[key] = _text(value)
        return replace(self, **changes)

    def to_context(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "service_id": self.service_id,
            "name": self.name,
            "package_description": self.package_description,
            "price": self.price,
            "delivery": self.delivery,
            "revisions": self.revisions,
            "included": list(self.included),
        }


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
