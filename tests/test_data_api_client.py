"""
Tests for the Bubble Data API client against an in-memory fake.
"""

from __future__ import annotations

import json

import httpx
import pytest

from lemons_copilot.application.exceptions import RecordStoreError
from lemons_copilot.infrastructure.bubble.data_api_client import BubbleDataApiClient


@pytest.mark.asyncio
async def test_search_sends_bearer_token_and_json_constraints(bubble):
    """Constraints travel as one JSON-encoded query parameter next to limit and sort options."""
    client = bubble.client()
    constraints = [{"key": "category", "constraint_type": "equals", "value": "Web Design"}]

    results = await client.search("service", constraints=constraints, limit=5, sort_field="price", descending=False)

    request = bubble.calls("GET")[-1]
    assert request.headers["Authorization"] == "Bearer test-token"
    assert request.url.path == "/api/1.1/obj/service"
    assert json.loads(request.url.params["constraints"]) == constraints
    assert request.url.params["limit"] == "5"
    assert request.url.params["sort_field"] == "price"
    assert request.url.params["descending"] == "false"
    assert [r["_id"] for r in results] == ["svc_123"]


@pytest.mark.asyncio
async def test_fetch_by_id_returns_none_on_404(bubble):
    client = bubble.client()

    assert await client.fetch_by_id("service", "does_not_exist") is None
    record = await client.fetch_by_id("service", "svc_123")
    assert record["title"] == "Old"


@pytest.mark.asyncio
async def test_patch_accepts_empty_204_body(bubble):
    """A successful PATCH usually has no body at all."""
    client = bubble.client()

    await client.patch("service", "svc_123", {"title": "New"})

    request = bubble.calls("PATCH")[0]
    assert json.loads(request.content) == {"title": "New"}
    assert bubble.records["service"]["svc_123"]["title"] == "New"


@pytest.mark.asyncio
async def test_fetch_many_drops_failed_ids(bubble):
    client = bubble.client()

    records = await client.fetch_many("package", ["pkg_1", "pkg_missing"])

    assert [r["_id"] for r in records] == ["pkg_1"]
    assert len(bubble.calls("GET")) == 2


@pytest.mark.asyncio
async def test_non_2xx_raises_with_status(bubble):
    client = bubble.client()
    bubble.fail("GET", "service", 503)

    with pytest.raises(RecordStoreError) as exc_info:
        await client.fetch_by_id("service", "svc_123")

    assert exc_info.value.status == 503


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = BubbleDataApiClient(
        base_url="https://bubble.test/api/1.1",
        token="t",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(RecordStoreError):
        await client.patch("service", "svc_123", {"title": "x"})
    # probe reports failure instead of raising
    assert await client.probe("service") is False


@pytest.mark.asyncio
async def test_probe_reports_whether_type_exists(bubble):
    client = bubble.client()

    assert await client.probe("service") is True
    assert await client.probe("offer_package") is False
    assert bubble.calls("GET")[0].url.params["limit"] == "1"
