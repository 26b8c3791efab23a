from __future__ import annotations

from typing import Any

from lemons_copilot.application.ports.assistant import AssistantRuntimePort, OperationInvoker
from lemons_copilot.domain.entities.transcript import ActionResult, TextMessage, TranscriptEntry


class MockAssistantRuntime(AssistantRuntimePort):
    """Offline stand-in: never calls operations, echoes the freshest operation outcome."""

    async def run_turn(
        self,
        instructions: str,
        history: list[TranscriptEntry],
        operations: list[dict[str, Any]],
        invoke: OperationInvoker,
    ) -> str:
        for entry in reversed(history):
            if isinstance(entry, TextMessage) and entry.role == "user":
                break
            if isinstance(entry, ActionResult):
                return str(entry.result.get("message") or "Done.")
        return "How can I help with your service today?"
