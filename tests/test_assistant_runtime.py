"""
Tests for the OpenAI tool-calling loop with a scripted client.
"""

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from lemons_copilot.application.widget_session import FALLBACK_REPLY
from lemons_copilot.domain.entities.transcript import ActionInvocation, ActionResult, TextMessage
from lemons_copilot.infrastructure.llm.openai_runtime import OpenAIAssistantRuntime, to_chat_messages


def _reply(content=None, tool_calls=None):
    return SimpleNamespace(content=content, tool_calls=tool_calls)


def _tool_call(call_id: str, name: str, arguments: str):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


class ScriptedCompletions:
    def __init__(self, replies, error: Exception | None = None) -> None:
        self.replies = list(replies)
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _runtime(completions: ScriptedCompletions, max_tool_rounds: int = 3) -> OpenAIAssistantRuntime:
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIAssistantRuntime(client=client, model="test-model", temperature=0, max_tool_rounds=max_tool_rounds)


@pytest.mark.asyncio
async def test_tool_calls_run_through_the_registry(bubble, make_session):
    completions = ScriptedCompletions(
        [
            _reply(tool_calls=[_tool_call("call_1", "updateServiceTitle", json.dumps({"newTitle": "New"}))]),
            _reply(content="Your title is now New."),
        ]
    )
    session, _ = make_session(runtime=_runtime(completions))
    await session.state.set_active_service("svc_123")

    reply = await session.submit_user_message("Rename it to New")

    assert reply.content == "Your title is now New."
    kinds = [(type(e).__name__, getattr(e, "synthetic", None)) for e in session.transcript.entries]
    assert kinds == [
        ("TextMessage", None),
        ("ActionInvocation", True),
        ("ActionResult", True),
        ("ActionInvocation", False),
        ("ActionResult", False),
        ("TextMessage", None),
    ]
    assert bubble.records["service"]["svc_123"]["title"] == "New"

    first, second = completions.calls
    assert first["tools"] and first["model"] == "test-model"
    assert "Current context:" in first["messages"][0]["content"]
    tool_message = second["messages"][-1]
    assert tool_message["role"] == "tool" and tool_message["tool_call_id"] == "call_1"
    assert json.loads(tool_message["content"])["success"] is True


@pytest.mark.asyncio
async def test_invalid_tool_arguments_become_a_validation_result(bubble, make_session):
    completions = ScriptedCompletions(
        [
            _reply(tool_calls=[_tool_call("call_1", "updateServiceTitle", "{not json")]),
            _reply(content="Sorry, let me try again."),
        ]
    )
    session, _ = make_session(runtime=_runtime(completions))

    await session.submit_user_message("hi")

    tool_message = completions.calls[1]["messages"][-1]
    assert json.loads(tool_message["content"])["kind"] == "validation"
    assert bubble.calls("PATCH") == []


@pytest.mark.asyncio
async def test_round_limit_forces_a_final_answer_without_tools(make_session):
    looping = _reply(tool_calls=[_tool_call("c", "getUserById", json.dumps({"userId": "user_9"}))])
    completions = ScriptedCompletions([looping, looping, _reply(content="Here is the profile.")])
    session, _ = make_session(runtime=_runtime(completions, max_tool_rounds=2))

    reply = await session.submit_user_message("who am I")

    assert reply.content == "Here is the profile."
    assert len(completions.calls) == 3
    assert "tools" not in completions.calls[-1]


@pytest.mark.asyncio
async def test_provider_failure_falls_back_to_apology(make_session):
    completions = ScriptedCompletions([], error=RuntimeError("503 upstream"))
    session, _ = make_session(runtime=_runtime(completions))

    reply = await session.submit_user_message("hello")

    assert reply.content == FALLBACK_REPLY


def test_chat_messages_pair_calls_with_results_and_skip_pending():
    done = ActionInvocation(name="getServiceById", arguments={"serviceId": "s"})
    pending = ActionInvocation(name="getUserById", arguments={"userId": "u"})
    history = [
        TextMessage(role="user", content="hi"),
        done,
        pending,
        ActionResult(invocation_id=done.id, name="getServiceById", result={"success": True}),
    ]

    messages = to_chat_messages(history)

    assert [m["role"] for m in messages] == ["user", "assistant", "tool"]
    assert messages[1]["tool_calls"][0]["id"] == done.id
    assert messages[2]["tool_call_id"] == done.id
