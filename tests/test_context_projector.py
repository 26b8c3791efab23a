"""
Tests for the context facts rendered into the assistant's instructions.
"""

from __future__ import annotations

import pytest

from lemons_copilot.domain.entities.categories import ALLOWED_CATEGORIES


def test_empty_state_uses_null_sentinels(make_session):
    session, _ = make_session()

    facts = session.context.as_dict()

    assert facts["activeService"] is None
    assert facts["activePackages"] == []
    assert facts["activeUser"] is None
    assert facts["allowedCategories"] == list(ALLOWED_CATEGORIES)

    rendered = session.context.render_instructions("Base rules.")
    assert rendered.startswith("Base rules.")
    assert "activeService" in rendered
    assert ": null" in rendered


@pytest.mark.asyncio
async def test_facts_follow_state_changes(make_session):
    session, _ = make_session()

    await session.state.set_active_service("svc_123")
    await session.state.set_active_user("user_9")

    facts = session.context.as_dict()
    assert facts["activeService"]["id"] == "svc_123"
    assert [p["id"] for p in facts["activePackages"]] == ["pkg_1"]
    assert facts["activeUser"]["first_name"] == "Ada"
    assert "email" not in facts["activeUser"]

    session.close()
    assert session.context.as_dict()["activeService"] is None
