"""
Tests for per-turn context attachment.
"""

from __future__ import annotations

import asyncio

import pytest

from lemons_copilot.application.active_record_store import ActiveRecordStore
from lemons_copilot.application.use_cases.turn_refresh import REFRESH_OPERATION, TurnRefreshController
from lemons_copilot.domain.entities.transcript import ActionInvocation, ActionResult, TextMessage, Transcript

LONG_ID = "1712345678901x123456789012345678"


def _controller(gateway) -> tuple[TurnRefreshController, Transcript, ActiveRecordStore]:
    transcript = Transcript()
    state = ActiveRecordStore(
        load_service=gateway.load_service,
        load_user=gateway.get_user,
        load_packages=gateway.load_packages_quietly,
    )
    return TurnRefreshController(transcript, state), transcript, state


@pytest.mark.asyncio
async def test_one_pair_per_message_even_when_triggered_twice(bubble, gateway):
    bubble.add("service", {"_id": LONG_ID, "title": "Logo design"})
    controller, transcript, state = _controller(gateway)
    transcript.append(TextMessage(role="user", content=f"Can you improve {LONG_ID}?"))

    await asyncio.gather(controller.handle_latest(), controller.handle_latest())
    await controller.handle_latest()

    entries = transcript.entries
    assert len(entries) == 3
    user, invocation, result = entries
    assert isinstance(invocation, ActionInvocation)
    assert isinstance(result, ActionResult)
    assert invocation.name == REFRESH_OPERATION
    assert invocation.arguments == {"serviceId": LONG_ID}
    assert invocation.synthetic and result.synthetic
    assert result.invocation_id == invocation.id
    assert result.result["success"] is True
    assert result.result["service"]["title"] == "Logo design"
    assert state.service_id == LONG_ID
    assert controller.last_handled_message_id == user.id


@pytest.mark.asyncio
async def test_falls_back_to_active_service(gateway):
    controller, transcript, state = _controller(gateway)
    await state.set_active_service("svc_123")
    transcript.append(TextMessage(role="user", content="make the title punchier"))

    result = await controller.handle_latest()

    invocation = transcript.entries[1]
    assert invocation.arguments == {"serviceId": "svc_123"}
    assert result.result["success"] is True
    assert [p["id"] for p in result.result["packages"]] == ["pkg_1"]


@pytest.mark.asyncio
async def test_failed_fetch_still_produces_linked_result(gateway):
    controller, transcript, _ = _controller(gateway)
    transcript.append(TextMessage(role="user", content=f"look at {LONG_ID}"))

    result = await controller.handle_latest()

    assert result.result["success"] is False
    assert result.result["kind"] == "not_found"
    assert result.invocation_id == transcript.entries[1].id


@pytest.mark.asyncio
async def test_no_candidate_means_no_entries(bubble, gateway):
    controller, transcript, _ = _controller(gateway)
    transcript.append(TextMessage(role="user", content="hello there"))

    assert await controller.handle_latest() is None
    assert len(transcript) == 1
    assert bubble.requests == []


@pytest.mark.asyncio
async def test_primed_message_is_not_handled_again(gateway):
    controller, transcript, state = _controller(gateway)
    await state.set_active_service("svc_123")
    restored = [TextMessage(role="user", content="earlier question")]
    transcript.load(restored)
    controller.prime(restored)

    assert await controller.handle_latest() is None
    assert len(transcript) == 1

    transcript.append(TextMessage(role="user", content="new question"))
    assert await controller.handle_latest() is not None
