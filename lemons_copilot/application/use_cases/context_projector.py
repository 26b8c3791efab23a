from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from lemons_copilot.application.active_record_store import ActiveRecordStore, ActiveSnapshot
from lemons_copilot.domain.entities.categories import ALLOWED_CATEGORIES


@dataclass(frozen=True)
class ContextFact:
    name: str
    description: str
    value: str  # JSON text; "null" / "[]" when nothing is active


class ContextProjector:
    """Machine-readable facts about the active records, re-derived on every state change."""

    def __init__(self, state: ActiveRecordStore) -> None:
        self._facts = self._derive(state.snapshot())
        state.subscribe(self._on_change)

    def _on_change(self, snapshot: ActiveSnapshot) -> None:
        self._facts = self._derive(snapshot)

    def facts(self) -> list[ContextFact]:
        return list(self._facts)

    def as_dict(self) -> dict[str, Any]:
        return {fact.name: json.loads(fact.value) for fact in self._facts}

    def render_instructions(self, base_instructions: str) -> str:
        lines = [base_instructions.strip(), "", "Current context:"]
        for fact in self._facts:
            lines.append(f"- {fact.name} ({fact.description}): {fact.value}")
        return "\n".join(lines)

    @staticmethod
    def _derive(snapshot: ActiveSnapshot) -> list[ContextFact]:
        service = snapshot.service.to_context() if snapshot.service else None
        user = snapshot.user.to_context() if snapshot.user else None
        return [
            ContextFact(
                name="activeService",
                description="The service the user is currently viewing or editing; null when none is selected",
                value=_dump(service),
            ),
            ContextFact(
                name="activePackages",
                description="Packages belonging to the active service",
                value=_dump([p.to_context() for p in snapshot.packages]),
            ),
            ContextFact(
                name="activeUser",
                description="Profile of the active user (safe fields only); null when none is selected",
                value=_dump(user),
            ),
            ContextFact(
                name="allowedCategories",
                description="The only category labels a service may be given",
                value=_dump(list(ALLOWED_CATEGORIES)),
            ),
        ]


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)
