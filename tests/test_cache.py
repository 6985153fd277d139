import asyncio

from subscriptarr.cache import ResponseCache, generate_key
from subscriptarr.storage import MemoryStorage


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_key_is_independent_of_param_order():
    assert generate_key("p", {"a": 1, "b": 2}) == generate_key("p", {"b": 2, "a": 1})
    assert generate_key("p", {"a": 1, "b": 2}) == "p:a:1|b:2"


def test_key_formats_booleans_and_empty_params():
    assert generate_key("cache:subscriptions", {"mine": True}) == "cache:subscriptions:mine:true"
    assert generate_key("cache:playlists") == "cache:playlists"


def test_wrap_calls_producer_once_while_fresh():
    calls = []

    async def producer():
        calls.append(1)
        return {"items": [1, 2]}

    async def scenario():
        cache = ResponseCache(MemoryStorage(), ttl=60, clock=Clock())
        first = await cache.wrap("cache:k", producer)
        second = await cache.wrap("cache:k", producer)
        return first, second

    first, second = asyncio.run(scenario())
    assert first == second == {"items": [1, 2]}
    assert len(calls) == 1


def test_stale_entries_are_absent_and_removed_lazily():
    clock = Clock()
    storage = MemoryStorage()

    async def scenario():
        cache = ResponseCache(storage, ttl=60, clock=clock)
        await cache.set("cache:k", "v")
        clock.now += 59
        fresh = await cache.get("cache:k")
        # Still on disk until somebody looks it up after expiry
        clock.now += 2
        still_stored = await storage.keys()
        stale = await cache.get("cache:k")
        return fresh, still_stored, stale, await storage.keys()

    fresh, still_stored, stale, after = asyncio.run(scenario())
    assert fresh == "v"
    assert still_stored == ["cache:k"]
    assert stale is None
    assert after == []


def test_durable_hit_repopulates_memory():
    storage = MemoryStorage()
    clock = Clock()

    async def scenario():
        writer = ResponseCache(storage, ttl=60, clock=clock)
        await writer.set("cache:k", [1, 2, 3])

        reader = ResponseCache(storage, ttl=60, clock=clock)
        before = (await reader.stats())["memory_size"]
        value = await reader.get("cache:k")
        after = (await reader.stats())["memory_size"]
        return before, value, after

    before, value, after = asyncio.run(scenario())
    assert (before, value, after) == (0, [1, 2, 3], 1)


def test_durable_entries_keep_their_original_age():
    storage = MemoryStorage()
    clock = Clock()

    async def scenario():
        await ResponseCache(storage, ttl=60, clock=clock).set("cache:k", "v")
        clock.now += 61
        return await ResponseCache(storage, ttl=60, clock=clock).get("cache:k")

    assert asyncio.run(scenario()) is None


def test_clear_prefix_removes_memory_and_durable_entries():
    storage = MemoryStorage({"quotaUsed": 5})

    async def scenario():
        cache = ResponseCache(storage, ttl=60, clock=Clock())
        await cache.set("cache:playlistItems:playlistId:A", [1])
        await cache.set("cache:playlistItems:playlistId:B", [2])
        await cache.set("cache:channel:id:C", {"id": "C"})

        removed = await cache.clear_prefix("cache:playlistItems")
        return (
            removed,
            await cache.get("cache:playlistItems:playlistId:A"),
            await cache.get("cache:channel:id:C"),
            sorted(await storage.keys()),
        )

    removed, gone, kept, keys = asyncio.run(scenario())
    assert removed == 2
    assert gone is None
    assert kept == {"id": "C"}
    assert keys == ["cache:channel:id:C", "quotaUsed"]


def test_clear_all_leaves_quota_state_alone():
    storage = MemoryStorage({"quotaUsed": 5, "quotaReset": 1.0})

    async def scenario():
        cache = ResponseCache(storage, ttl=60, clock=Clock())
        await cache.set("cache:a", 1)
        await cache.set("cache:b", 2)
        removed = await cache.clear_all()
        return removed, await cache.stats(), sorted(await storage.keys())

    removed, stats, keys = asyncio.run(scenario())
    assert removed == 2
    assert stats == {"memory_size": 0, "durable_size": 0, "ttl": 60}
    assert keys == ["quotaReset", "quotaUsed"]


def test_delete_drops_single_key():
    async def scenario():
        cache = ResponseCache(MemoryStorage(), ttl=60, clock=Clock())
        await cache.set("cache:a", 1)
        await cache.set("cache:b", 2)
        await cache.delete("cache:a")
        return await cache.get("cache:a"), await cache.get("cache:b")

    assert asyncio.run(scenario()) == (None, 2)
