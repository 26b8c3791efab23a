from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Union


def new_entry_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TextMessage:
    role: str  # "user" | "assistant"
    content: str
    id: str = field(default_factory=new_entry_id)

    kind = "text"


@dataclass(frozen=True)
class ActionInvocation:
    name: str
    arguments: dict[str, Any]
    id: str = field(default_factory=new_entry_id)
    # True when appended by the refresh controller rather than requested by the model
    synthetic: bool = False

    kind = "action_invocation"


@dataclass(frozen=True)
class ActionResult:
    invocation_id: str
    name: str
    result: dict[str, Any]
    id: str = field(default_factory=new_entry_id)
    synthetic: bool = False

    kind = "action_result"


TranscriptEntry = Union[TextMessage, ActionInvocation, ActionResult]
TranscriptListener = Callable[["Transcript", TranscriptEntry], None]


class Transcript:
    """Ordered conversation history.

    An ActionResult may only be appended after the ActionInvocation it links to.
    Listeners run synchronously after every append.
    """

    def __init__(self, entries: list[TranscriptEntry] | None = None) -> None:
        self._entries: list[TranscriptEntry] = []
        self._ids: set[str] = set()
        self._invocation_ids: set[str] = set()
        self._listeners: list[TranscriptListener] = []
        for entry in entries or []:
            self._add(entry)

    def subscribe(self, listener: TranscriptListener) -> None:
        self._listeners.append(listener)

    def append(self, entry: TranscriptEntry) -> TranscriptEntry:
        self._add(entry)
        for listener in list(self._listeners):
            listener(self, entry)
        return entry

    def _add(self, entry: TranscriptEntry) -> None:
        if entry.id in self._ids:
            raise ValueError(f"Duplicate transcript entry id: {entry.id}")
        if isinstance(entry, ActionResult) and entry.invocation_id not in self._invocation_ids:
            raise ValueError(
                f"Action result {entry.id} links to unknown invocation {entry.invocation_id}"
            )
        self._entries.append(entry)
        self._ids.add(entry.id)
        if isinstance(entry, ActionInvocation):
            self._invocation_ids.add(entry.id)

    @property
    def entries(self) -> list[TranscriptEntry]:
        return list(self._entries)

    def last(self) -> TranscriptEntry | None:
        return self._entries[-1] if self._entries else None

    def load(self, entries: list[TranscriptEntry]) -> None:
        """Replace the history wholesale without notifying listeners (restore path)."""
        self.clear()
        for entry in entries:
            self._add(entry)

    def clear(self) -> None:
        self._entries.clear()
        self._ids.clear()
        self._invocation_ids.clear()

    def __len__(self) -> int:
        return len(self._entries)
