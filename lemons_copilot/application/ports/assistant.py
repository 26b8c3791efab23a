from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from lemons_copilot.domain.entities.operation_result import OperationResult
from lemons_copilot.domain.entities.transcript import TranscriptEntry

OperationInvoker = Callable[[str, dict[str, Any]], Awaitable[OperationResult]]


class AssistantRuntimePort(ABC):
    @abstractmethod
    async def run_turn(
        self,
        instructions: str,
        history: list[TranscriptEntry],
        operations: list[dict[str, Any]],
        invoke: OperationInvoker,
    ) -> str:
        """
        Produce the assistant reply for the latest user message.

        Requirements:
        - May call `invoke` any number of times; each call records its own
          invocation/result pair in the transcript.
        - Returns the final assistant text (may be empty).
        - Raises AssistantUpstreamError on provider failures.
        """
        raise NotImplementedError
