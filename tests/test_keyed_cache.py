"""
Tests for the persistent keyed cache and the fail-open image URL cache.
"""

import json
import logging

import pytest

from promptpilot.repositories import InMemoryPersistentStore
from promptpilot.services import ImageUrlCache, PersistentKeyedCache

pytestmark = pytest.mark.asyncio

PREFIX = "image_cache_"
DAY_MINUTES = 24 * 60


class FailingStore:
    """PersistentStore whose every operation raises."""

    async def get_item(self, key):
        raise OSError("disk unavailable")

    async def set_item(self, key, value):
        raise OSError("disk unavailable")

    async def remove_item(self, key):
        raise OSError("disk unavailable")

    async def get_all_keys(self):
        raise OSError("disk unavailable")


@pytest.fixture
def keyed(store, clock):
    return PersistentKeyedCache(store, prefix=PREFIX, ttl_minutes=DAY_MINUTES, clock=clock)


class TestPersistentKeyedCache:
    """Test cases for the strict persistent cache."""

    async def test_set_writes_namespaced_json_entry(self, keyed, store, clock):
        await keyed.set("avatars/u1.png", "https://cdn/u1.png")

        raw = await store.get_item(PREFIX + "avatars/u1.png")
        assert json.loads(raw) == {
            "value": "https://cdn/u1.png",
            "storedAt": clock.now,
            "expiresAt": clock.now + DAY_MINUTES * 60_000,
        }

    async def test_get_returns_live_value(self, keyed, clock):
        await keyed.set("k", {"url": "u"})
        clock.advance(minutes=DAY_MINUTES - 1)
        assert await keyed.get("k") == {"url": "u"}

    async def test_completed_set_visible_to_new_instance(self, keyed, store, clock):
        await keyed.set("k", "v")
        reopened = PersistentKeyedCache(store, prefix=PREFIX, ttl_minutes=DAY_MINUTES, clock=clock)
        assert await reopened.get("k") == "v"

    async def test_expired_entry_removed_on_read(self, keyed, store, clock):
        await keyed.set("k", "v")
        clock.advance(minutes=DAY_MINUTES + 1)

        assert await keyed.get("k") is None
        assert await store.get_item(PREFIX + "k") is None

    async def test_undecodable_entry_removed_on_read(self, keyed, store, caplog):
        await store.set_item(PREFIX + "broken", "{not json")
        await store.set_item(PREFIX + "partial", json.dumps({"value": 1}))

        with caplog.at_level(logging.WARNING):
            assert await keyed.get("broken") is None
            assert await keyed.get("partial") is None

        assert len(store) == 0
        assert "undecodable" in caplog.text

    async def test_keys_only_lists_own_prefix(self, keyed, store):
        await keyed.set("a", 1)
        await keyed.set("b", 2)
        await store.set_item("other_a", "x")

        assert sorted(await keyed.keys()) == ["a", "b"]

    async def test_clear_expired(self, keyed, store, clock):
        await keyed.set("old", 1)
        clock.advance(minutes=DAY_MINUTES / 2)
        await keyed.set("fresh", 2)
        await store.set_item(PREFIX + "corrupt", "???")
        await store.set_item("unrelated", "keep me")
        clock.advance(minutes=DAY_MINUTES / 2 + 1)

        assert await keyed.clear_expired() == 2
        assert await keyed.keys() == ["fresh"]
        assert await store.get_item("unrelated") == "keep me"

        # Second sweep changes nothing
        assert await keyed.clear_expired() == 0
        assert await keyed.keys() == ["fresh"]

    async def test_clear_removes_everything_under_prefix(self, keyed, store):
        await keyed.set("a", 1)
        await keyed.set("b", 2)
        await store.set_item("unrelated", "x")

        assert await keyed.clear() == 2
        assert await store.get_all_keys() == ["unrelated"]

    async def test_store_failures_propagate(self, clock):
        keyed = PersistentKeyedCache(FailingStore(), prefix=PREFIX, ttl_minutes=1, clock=clock)

        with pytest.raises(OSError):
            await keyed.set("k", "v")
        with pytest.raises(OSError):
            await keyed.get("k")
        with pytest.raises(OSError):
            await keyed.clear_expired()

    async def test_invalid_configuration(self, store):
        with pytest.raises(ValueError):
            PersistentKeyedCache(store, prefix="", ttl_minutes=1)
        with pytest.raises(ValueError):
            PersistentKeyedCache(store, prefix=PREFIX, ttl_minutes=0)


class TestImageUrlCache:
    """Test cases for the fail-open image URL cache."""

    @pytest.fixture
    def image_cache(self, store, clock):
        return ImageUrlCache.create(store, ttl_minutes=DAY_MINUTES, prefix=PREFIX, clock=clock)

    async def test_cache_and_read_back(self, image_cache, clock):
        await image_cache.cache_image("prompts/cover.png", "https://cdn/cover.png")
        clock.advance(minutes=60)
        assert await image_cache.get_cached_image("prompts/cover.png") == "https://cdn/cover.png"

    async def test_expires_after_one_day(self, image_cache, clock):
        await image_cache.cache_image("p.png", "https://cdn/p.png")
        clock.advance(minutes=DAY_MINUTES + 1)
        assert await image_cache.get_cached_image("p.png") is None

    async def test_empty_key_or_value_ignored(self, image_cache, store):
        await image_cache.cache_image("", "https://cdn/x.png")
        await image_cache.cache_image("x.png", "")
        assert len(store) == 0
        assert await image_cache.get_cached_image("") is None

    async def test_non_string_value_reads_as_absent(self, image_cache, store, clock):
        keyed = PersistentKeyedCache(store, prefix=PREFIX, ttl_minutes=DAY_MINUTES, clock=clock)
        await keyed.set("weird.png", {"url": "x"})
        assert await image_cache.get_cached_image("weird.png") is None

    async def test_read_failure_is_absent(self, clock, caplog):
        image_cache = ImageUrlCache.create(FailingStore(), ttl_minutes=1, prefix=PREFIX, clock=clock)

        with caplog.at_level(logging.WARNING):
            assert await image_cache.get_cached_image("p.png") is None
        assert "Failed to read cached image URL" in caplog.text

    async def test_write_and_sweep_failures_are_swallowed(self, clock):
        image_cache = ImageUrlCache.create(FailingStore(), ttl_minutes=1, prefix=PREFIX, clock=clock)

        await image_cache.cache_image("p.png", "https://cdn/p.png")
        assert await image_cache.clear_expired_cache() == 0

    async def test_clear_expired_cache_is_idempotent(self, image_cache, clock):
        await image_cache.cache_image("a.png", "https://cdn/a.png")
        clock.advance(minutes=DAY_MINUTES + 1)

        assert await image_cache.clear_expired_cache() == 1
        assert await image_cache.clear_expired_cache() == 0

    async def test_defaults_from_settings(self):
        image_cache = ImageUrlCache.create(InMemoryPersistentStore())
        assert image_cache.cache.prefix == "image_cache_"
        assert image_cache.cache.ttl_minutes == DAY_MINUTES
