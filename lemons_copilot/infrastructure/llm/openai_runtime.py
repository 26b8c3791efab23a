from __future__ import annotations

import json
import logging
from typing import Any

from openai import AsyncOpenAI

from lemons_copilot.application.exceptions import AssistantContractError, AssistantUpstreamError
from lemons_copilot.application.ports.assistant import AssistantRuntimePort, OperationInvoker
from lemons_copilot.core.config import settings
from lemons_copilot.domain.entities.operation_result import OperationResult
from lemons_copilot.domain.entities.transcript import (
    ActionInvocation,
    ActionResult,
    TextMessage,
    TranscriptEntry,
)


class OpenAIAssistantRuntime(AssistantRuntimePort):
    """
    OpenAI chat-completions adapter with tool calling.

    Contract guarantees:
    - every tool call goes through `invoke`, so it lands in the transcript
    - at most `max_tool_rounds` rounds of tool calls per turn
    - Raises:
        AssistantUpstreamError: networking/provider failures
        AssistantContractError: a response without choices
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tool_rounds: int | None = None,
    ) -> None:
        self.client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self._model = model or settings.OPENAI_MODEL
        self._temperature = settings.OPENAI_TEMPERATURE if temperature is None else temperature
        self._max_tool_rounds = max_tool_rounds or settings.ASSISTANT_MAX_TOOL_ROUNDS
        self._logger = logging.getLogger(__name__)

    async def run_turn(
        self,
        instructions: str,
        history: list[TranscriptEntry],
        operations: list[dict[str, Any]],
        invoke: OperationInvoker,
    ) -> str:
        messages: list[dict[str, Any]] = [{"role": "system", "content": instructions}]
        messages.extend(to_chat_messages(history))

        for _ in range(self._max_tool_rounds):
            message = await self._complete(messages, operations)
            tool_calls = message.tool_calls or []
            if not tool_calls:
                return (message.content or "").strip()

            messages.append(
                {
                    "role": "assistant",
                    "content": message.content or "",
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.function.name, "arguments": call.function.arguments},
                        }
                        for call in tool_calls
                    ],
                }
            )
            for call in tool_calls:
                try:
                    args = _parse_arguments(call.function.arguments)
                except AssistantContractError as e:
                    result = OperationResult.failure("validation", str(e))
                else:
                    result = await invoke(call.function.name, args)
                messages.append(
                    {"role": "tool", "tool_call_id": call.id, "content": json.dumps(result.to_payload())}
                )

        self._logger.warning("Tool round limit reached", extra={"reason": str(self._max_tool_rounds)})
        message = await self._complete(messages, operations=None)
        return (message.content or "").strip()

    async def _complete(self, messages: list[dict[str, Any]], operations: list[dict[str, Any]] | None) -> Any:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
        }
        if operations:
            kwargs["tools"] = operations

        try:
            resp = await self.client.chat.completions.create(**kwargs)
        except Exception as e:
            raise AssistantUpstreamError(f"OpenAI API error: {e}") from e

        if not resp.choices:
            raise AssistantContractError("LLM returned no choices.")
        return resp.choices[0].message


def to_chat_messages(history: list[TranscriptEntry]) -> list[dict[str, Any]]:
    """
    Render transcript entries as chat messages.

    Each invocation is emitted together with its result so tool messages always
    directly follow their call; invocations still waiting for a result are skipped.
    """
    results = {e.invocation_id: e for e in history if isinstance(e, ActionResult)}
    messages: list[dict[str, Any]] = []
    for entry in history:
        if isinstance(entry, TextMessage):
            messages.append({"role": entry.role, "content": entry.content})
        elif isinstance(entry, ActionInvocation):
            result = results.get(entry.id)
            if result is None:
                continue
            messages.append(
                {
                    "role": "assistant",
                    "content": "",
                    "tool_calls": [
                        {
                            "id": entry.id,
                            "type": "function",
                            "function": {"name": entry.name, "arguments": json.dumps(entry.arguments)},
                        }
                    ],
                }
            )
            messages.append({"role": "tool", "tool_call_id": entry.id, "content": json.dumps(result.result)})
    return messages


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except Exception:
        snippet = raw[:200].replace("\n", " ")
        raise AssistantContractError(f"Tool arguments are not valid JSON. Snippet: {snippet!r}")
    if not isinstance(data, dict):
        raise AssistantContractError("Tool arguments must be a JSON object.")
    return data
