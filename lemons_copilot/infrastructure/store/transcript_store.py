from __future__ import annotations

import json
import logging
from typing import Any

from lemons_copilot.application.exceptions import TranscriptRestoreError
from lemons_copilot.application.ports.key_value_store import KeyValueStorePort
from lemons_copilot.domain.entities.transcript import (
    ActionInvocation,
    ActionResult,
    TextMessage,
    Transcript,
    TranscriptEntry,
)

TRANSCRIPT_KEY_PREFIX = "lemons.transcript."


class TranscriptStore:
    """Saves a session's transcript on every change and restores it once at mount."""

    def __init__(self, storage: KeyValueStorePort, session_id: str) -> None:
        self._storage = storage
        self._key = TRANSCRIPT_KEY_PREFIX + session_id
        self._logger = logging.getLogger(__name__)

    def save(self, transcript: Transcript) -> None:
        payload = {
            "version": 1,
            "entries": [serialize_entry(e) for e in transcript.entries],
        }
        self._storage.set(self._key, json.dumps(payload, ensure_ascii=False))

    def restore(self) -> list[TranscriptEntry]:
        """
        Rebuild the persisted entries in order.

        Raises TranscriptRestoreError when anything is unrecognized; a partial
        transcript is never returned.
        """
        raw = self._storage.get(self._key)
        if not raw:
            return []

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TranscriptRestoreError(f"Persisted transcript is not valid JSON: {e}") from e

        items = payload.get("entries") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise TranscriptRestoreError("Persisted transcript has no entries list")

        entries = [self._deserialize_entry(item) for item in items]
        try:
            # Validates invocation/result linking
            Transcript(entries)
        except ValueError as e:
            raise TranscriptRestoreError(str(e)) from e
        return entries

    def clear(self) -> None:
        self._storage.delete(self._key)

    def _deserialize_entry(self, data: Any) -> TranscriptEntry:
        if not isinstance(data, dict):
            raise TranscriptRestoreError(f"Unrecognized transcript entry: {data!r}")

        kind = data.get("kind")
        try:
            if kind == TextMessage.kind:
                return TextMessage(id=str(data["id"]), role=str(data["role"]), content=str(data["content"]))
            if kind == ActionInvocation.kind:
                return ActionInvocation(
                    id=str(data["id"]),
                    name=str(data["name"]),
                    arguments=dict(data.get("arguments") or {}),
                    synthetic=bool(data.get("synthetic", False)),
                )
            if kind == ActionResult.kind:
                return ActionResult(
                    id=str(data["id"]),
                    invocation_id=str(data["invocation_id"]),
                    name=str(data["name"]),
                    result=dict(data.get("result") or {}),
                    synthetic=bool(data.get("synthetic", False)),
                )
        except (KeyError, TypeError, ValueError) as e:
            raise TranscriptRestoreError(f"Malformed {kind} entry: {e}") from e

        raise TranscriptRestoreError(f"Unrecognized transcript entry kind: {kind!r}")


def serialize_entry(entry: TranscriptEntry) -> dict[str, Any]:
    if isinstance(entry, TextMessage):
        return {"kind": entry.kind, "id": entry.id, "role": entry.role, "content": entry.content}
    if isinstance(entry, ActionInvocation):
        return {
            "kind": entry.kind,
            "id": entry.id,
            "name": entry.name,
            "arguments": entry.arguments,
            "synthetic": entry.synthetic,
        }
    return {
        "kind": entry.kind,
        "id": entry.id,
        "invocation_id": entry.invocation_id,
        "name": entry.name,
        "result": entry.result,
        "synthetic": entry.synthetic,
    }
