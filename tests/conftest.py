"""
Shared fakes: an in-memory Bubble Data API served through httpx.MockTransport,
plus builders for gateways and widget sessions wired against it.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from lemons_copilot.application.record_gateway import RecordGateway
from lemons_copilot.application.widget_session import WidgetSession
from lemons_copilot.infrastructure.bubble.data_api_client import BubbleDataApiClient
from lemons_copilot.infrastructure.bubble.type_slug_resolver import TypeSlugResolver
from lemons_copilot.infrastructure.host.outbox_channel import OutboxHostChannel
from lemons_copilot.infrastructure.llm.mock_runtime import MockAssistantRuntime
from lemons_copilot.infrastructure.store.memory_kv_store import MemoryKeyValueStore
from lemons_copilot.infrastructure.store.transcript_store import TranscriptStore

BASE_URL = "https://bubble.test/api/1.1"


class FakeBubble:
    """Answers /obj/{type} and /obj/{type}/{id} like the Data API does."""

    def __init__(self) -> None:
        self.records: dict[str, dict[str, dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        # (method, slug) -> forced status code
        self.failures: dict[tuple[str, str], int] = {}

    def add_type(self, slug: str) -> None:
        self.records.setdefault(slug, {})

    def add(self, slug: str, record: dict[str, Any]) -> None:
        self.add_type(slug)
        self.records[slug][record["_id"]] = dict(record)

    def fail(self, method: str, slug: str, status: int = 500) -> None:
        self.failures[(method, slug)] = status

    def calls(self, method: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if method is None or r.method == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.split("/obj/", 1)[1]
        slug, _, record_id = path.partition("/")

        forced = self.failures.get((request.method, slug))
        if forced:
            return httpx.Response(forced, text="forced failure")
        if slug not in self.records:
            return httpx.Response(404, json={"status": "NOT_FOUND"})
        table = self.records[slug]

        if request.method == "PATCH":
            if record_id not in table:
                return httpx.Response(404)
            body = json.loads(request.content or b"{}")
            table[record_id].update(body)
            return httpx.Response(204)

        if record_id:
            if record_id not in table:
                return httpx.Response(404, json={"status": "NOT_FOUND"})
            return httpx.Response(200, json={"response": table[record_id]})

        results = list(table.values())
        raw = request.url.params.get("constraints")
        for c in json.loads(raw) if raw else []:
            if c["constraint_type"] == "equals":
                results = [r for r in results if r.get(c["key"]) == c["value"]]
        limit = int(request.url.params.get("limit", "100"))
        return httpx.Response(200, json={"response": {"results": results[:limit], "count": len(results), "remaining": 0}})

    def client(self) -> BubbleDataApiClient:
        transport = httpx.MockTransport(self.handler)
        return BubbleDataApiClient(
            base_url=BASE_URL,
            token="test-token",
            client=httpx.AsyncClient(transport=transport),
        )


def build_gateway(bubble: FakeBubble, storage: MemoryKeyValueStore | None = None, search_index=None) -> RecordGateway:
    store = bubble.client()
    resolver = TypeSlugResolver(
        store=store,
        cache=storage or MemoryKeyValueStore(),
        candidates={"service": ["service"], "package": ["package", "packages"], "user": ["user"]},
        overrides={"service": "service"},
    )
    return RecordGateway(store=store, resolver=resolver, search_index=search_index)


def build_session(
    bubble: FakeBubble,
    session_id: str = "session-1",
    storage: MemoryKeyValueStore | None = None,
    runtime=None,
) -> tuple[WidgetSession, OutboxHostChannel]:
    storage = storage or MemoryKeyValueStore()
    outbox = OutboxHostChannel()
    session = WidgetSession(
        session_id=session_id,
        gateway=build_gateway(bubble, storage),
        runtime=runtime or MockAssistantRuntime(),
        channel=outbox,
        transcript_store=TranscriptStore(storage, session_id),
        instructions="You are a test assistant.",
        origin="https://lemonslemons.co",
    )
    return session, outbox


@pytest.fixture
def bubble() -> FakeBubble:
    fake = FakeBubble()
    fake.add(
        "service",
        {"_id": "svc_123", "title": "Old", "category": "Web Design", "price": 100, "packages": ["pkg_1"]},
    )
    fake.add(
        "package",
        {"_id": "pkg_1", "name": "Basic", "price": 100, "delivery": "3 days", "service": "svc_123"},
    )
    fake.add(
        "user",
        {"_id": "user_9", "first_name": "Ada", "last_name": "L", "email": "ada@example.com", "skills": "Python, UX"},
    )
    return fake


@pytest.fixture
def gateway(bubble: FakeBubble) -> RecordGateway:
    return build_gateway(bubble)


@pytest.fixture
def make_session(bubble: FakeBubble):
    def factory(**kwargs: Any) -> tuple[WidgetSession, OutboxHostChannel]:
        return build_session(bubble, **kwargs)

    return factory


@pytest.fixture
def make_gateway(bubble: FakeBubble):
    def factory(**kwargs: Any) -> RecordGateway:
        return build_gateway(bubble, **kwargs)

    return factory
