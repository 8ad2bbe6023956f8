# tests/test_cache.py

import threading

from content_intel.cache import InMemoryTTLCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = InMemoryTTLCache(clock=clock)
    cache.upsert(1, "m", {"x": 1}, updated_at=None, content_hash="h", ttl_seconds=300)

    clock.now += 299
    assert cache.get(1, "m").payload == {"x": 1}

    clock.now += 1
    assert cache.get(1, "m") is None
    assert len(cache) == 0


def test_keys_are_per_model_and_invalidate_drops_all():
    cache = InMemoryTTLCache(clock=FakeClock())
    cache.upsert(1, "small", "a", None, None, 60)
    cache.upsert(1, "large", "b", None, None, 60)
    cache.upsert(2, "small", "c", None, None, 60)

    assert cache.get(1, "large").payload == "b"
    assert cache.invalidate(1) == 2
    assert cache.get(1, "small") is None
    assert cache.get(2, "small").payload == "c"
    assert cache.invalidate(99) == 0


def test_upsert_replaces_and_refreshes_ttl():
    clock = FakeClock()
    cache = InMemoryTTLCache(clock=clock)
    cache.upsert(1, "m", "old", None, "h1", 10)
    clock.now += 8
    cache.upsert(1, "m", "new", None, "h2", 10)
    clock.now += 8

    entry = cache.get(1, "m")
    assert entry.payload == "new"
    assert entry.content_hash == "h2"


def test_concurrent_upserts_leave_one_complete_entry():
    cache = InMemoryTTLCache()

    def writer(n):
        for _ in range(200):
            cache.upsert(7, "m", {"writer": n, "items": list(range(n))}, None, None, 60)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(1, 6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    entry = cache.get(7, "m")
    assert len(cache) == 1
    assert entry.payload["items"] == list(range(entry.payload["writer"]))
