from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from lemons_copilot.domain.values import split_list

# The only user fields ever read into context or accepted for update.
# Operation argument -> Data API field key.
USER_FIELDS: dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "bio": "bio",
    "experience": "experience",
    "tagline": "tagline",
    "skills": "skills",
}


@dataclass(frozen=True)
class User:
    id: str
    first_name: str = ""
    last_name: str = ""
    bio: str = ""
    experience: str = ""
    tagline: str = ""
    skills: tuple[str, ...] = ()

    @staticmethod
    def from_record(record: Mapping[str, Any]) -> "User":
        record_id = record.get("_id") or record.get("id")
        if not record_id:
            raise ValueError("User record has no _id")
        return User(
            id=str(record_id),
            first_name=_text(record.get("first_name")),
            last_name=_text(record.get("last_name")),
            bio=_text(record.get("bio")),
            experience=_text(record.get("experience")),
            tagline=_text(record.get("tagline")),
            skills=tuple(split_list(record.get("skills"))),
        )

    def with_fields(self, fields: Mapping[str, Any]) -> "User":
        changes: dict[str, Any] = {}
        for key, value in fields.items():
            if key == "skills":
                changes["skills"] = tuple(split_list(value))
            elif key in USER_FIELDS.values():
                changes[key] = _text(value)
        return replace(self, **changes)

    def to_context(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "bio": self.bio,
            "experience": self.experience,
            "tagline": self.tagline,
            "skills": list(self.skills),
        }


def _text(value: Any) -> str:
    return "" if value is None else str(value)
