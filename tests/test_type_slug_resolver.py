"""
Tests for type slug resolution: probing, caching, overrides.
"""

from __future__ import annotations

import pytest

from lemons_copilot.application.exceptions import TypeSlugUnresolvedError
from lemons_copilot.infrastructure.bubble.type_slug_resolver import CACHE_KEY_PREFIX, TypeSlugResolver
from lemons_copilot.infrastructure.store.memory_kv_store import MemoryKeyValueStore

PACKAGE_CANDIDATES = ["package", "packages", "service_package"]


def _resolver(bubble, cache=None, overrides=None) -> TypeSlugResolver:
    return TypeSlugResolver(
        store=bubble.client(),
        cache=cache if cache is not None else MemoryKeyValueStore(),
        candidates={"package": PACKAGE_CANDIDATES},
        overrides=overrides,
    )


@pytest.mark.asyncio
async def test_first_successful_probe_wins_and_is_cached(bubble):
    del bubble.records["package"]
    bubble.add_type("packages")
    bubble.add_type("service_package")
    cache = MemoryKeyValueStore()
    resolver = _resolver(bubble, cache)

    assert await resolver.resolve("package") == "packages"
    probed = [r.url.path.rsplit("/", 1)[-1] for r in bubble.calls()]
    assert probed == ["package", "packages"]
    assert cache.get(CACHE_KEY_PREFIX + "package") == "packages"

    bubble.requests.clear()
    assert await resolver.resolve("package") == "packages"
    assert bubble.requests == []


@pytest.mark.asyncio
async def test_cache_survives_a_new_resolver(bubble):
    """The cache is durable storage, so a remount does not re-probe."""
    cache = MemoryKeyValueStore({CACHE_KEY_PREFIX + "package": "service_package"})
    resolver = _resolver(bubble, cache)

    assert await resolver.resolve("package") == "service_package"
    assert bubble.requests == []


@pytest.mark.asyncio
async def test_override_skips_probing(bubble):
    cache = MemoryKeyValueStore()
    resolver = _resolver(bubble, cache, overrides={"package": "offer_package"})

    assert await resolver.resolve("package") == "offer_package"
    assert bubble.requests == []
    assert cache.get(CACHE_KEY_PREFIX + "package") == "offer_package"


class RecordingStore(MemoryKeyValueStore):
    def __init__(self, initial=None) -> None:
        super().__init__(initial)
        self.writes: list[str] = []

    def set(self, key: str, value: str) -> None:
        self.writes.append(key)
        super().set(key, value)


@pytest.mark.asyncio
async def test_override_is_written_once(bubble):
    cache = RecordingStore({CACHE_KEY_PREFIX + "package": "stale_name"})
    resolver = _resolver(bubble, cache, overrides={"package": "offer_package"})

    for _ in range(3):
        assert await resolver.resolve("package") == "offer_package"

    assert cache.writes == [CACHE_KEY_PREFIX + "package"]
    assert cache.get(CACHE_KEY_PREFIX + "package") == "offer_package"


@pytest.mark.asyncio
async def test_force_refresh_probes_again(bubble):
    cache = MemoryKeyValueStore({CACHE_KEY_PREFIX + "package": "stale_name"})
    resolver = _resolver(bubble, cache)

    assert await resolver.resolve("package", force_refresh=True) == "package"
    assert cache.get(CACHE_KEY_PREFIX + "package") == "package"


@pytest.mark.asyncio
async def test_all_candidates_missing_resolves_to_none(bubble):
    del bubble.records["package"]
    cache = MemoryKeyValueStore({CACHE_KEY_PREFIX + "package": "gone"})
    resolver = _resolver(bubble, cache)

    assert await resolver.resolve("package", force_refresh=True) is None
    assert cache.get(CACHE_KEY_PREFIX + "package") is None

    with pytest.raises(TypeSlugUnresolvedError) as exc_info:
        await resolver.require("package")
    assert str(exc_info.value).startswith("Integration not configured")
    assert "BUBBLE_PACKAGE_TYPE" in str(exc_info.value)
