# tests/test_response_cache.py
from __future__ import annotations

import threading
from email.utils import format_datetime
from datetime import datetime, timezone

from src.cache.response_cache import (
    CACHE_CONFIGS,
    REFERENCE_DATA,
    TRADES,
    CacheConfig,
    CacheRequest,
    ResponseCache,
)


def _req(path="/api/journals/j1/trades", query="", owner="u1", headers=None):
    return CacheRequest(path=path, query=query, owner_id=owner, headers=headers or {})


def test_round_trip_is_fresh(cache):
    data = {"trades": [{"id": "t1", "profit_loss_amount": 2.5, "notes": None}]}
    stored = cache.set(_req(), data, TRADES)
    assert stored.headers["X-Cache-Status"] == "MISS"

    hit = cache.get(_req(), TRADES)
    assert hit is not None
    assert hit.status == 200
    assert hit.body == data
    assert hit.cache_status == "HIT"


def test_headers(cache):
    cache.set(_req(), {"a": 1}, TRADES)
    hit = cache.get(_req(), TRADES)

    assert hit.headers["ETag"].startswith('"') and hit.headers["ETag"].endswith('"')
    assert len(hit.headers["ETag"]) == 18
    assert hit.headers["Cache-Control"] == "private, max-age=120, stale-while-revalidate=600"
    assert hit.headers["Last-Modified"].endswith("GMT")


def test_public_config_without_stale_window():
    config = CacheConfig(duration=30, private=False)
    assert config.cache_control() == "public, max-age=30"


def test_etag_is_stable_for_equal_payloads(cache):
    first = cache.set(_req(owner="a"), {"x": 1, "y": [1, 2]}, TRADES)
    second = cache.set(_req(owner="b"), {"y": [1, 2], "x": 1}, TRADES)
    assert first.headers["ETag"] == second.headers["ETag"]


def test_key_normalization():
    a = ResponseCache.make_key(_req(path="/api/journals/j1/trades/", query="page=2&limit=10"))
    b = ResponseCache.make_key(_req(path="/api/journals/j1/trades", query="limit=10&page=2"))
    assert a == b
    assert a.endswith("_user_u1")


def test_owners_never_share_entries(cache):
    cache.set(_req(owner="alice"), {"trades": ["alice"]}, TRADES)
    assert cache.get(_req(owner="bob"), TRADES) is None


def test_expiry_evicts_entry_and_tag_membership(cache, clock):
    cache.set(_req(), {"trades": []}, TRADES)
    assert cache.tag_keys("trades")

    clock.advance(TRADES.duration + 1)

    assert cache.get(_req(), TRADES) is None
    assert _req() not in cache
    assert cache.tag_keys("trades") == set()


def test_entry_at_exact_duration_is_still_served(cache, clock):
    cache.set(_req(), {"trades": []}, TRADES)
    clock.advance(TRADES.duration)
    assert cache.get(_req(), TRADES) is not None


def test_stale_status_past_stale_window(cache, clock):
    config = CacheConfig(duration=60, stale_while_revalidate=20, tags=("trades",))
    cache.set(_req(), {"v": 1}, config)

    clock.advance(10)
    assert cache.get(_req(), config).cache_status == "HIT"

    clock.advance(15)
    assert cache.get(_req(), config).cache_status == "STALE"


def test_if_none_match_returns_304(cache):
    stored = cache.set(_req(), {"v": 1}, TRADES)
    hit = cache.get(_req(headers={"If-None-Match": stored.headers["ETag"]}), TRADES)
    assert hit.status == 304
    assert hit.body is None


def test_if_modified_since_returns_304(cache, clock):
    cache.set(_req(), {"v": 1}, TRADES)
    since = format_datetime(datetime.fromtimestamp(clock.now + 5, tz=timezone.utc), usegmt=True)
    hit = cache.get(_req(headers={"if-modified-since": since}), TRADES)
    assert hit.status == 304


def test_older_if_modified_since_serves_body(cache, clock):
    cache.set(_req(), {"v": 1}, TRADES)
    since = format_datetime(datetime.fromtimestamp(clock.now - 3600, tz=timezone.utc), usegmt=True)
    hit = cache.get(_req(headers={"If-Modified-Since": since}), TRADES)
    assert hit.status == 200
    assert hit.body == {"v": 1}


def test_garbage_if_modified_since_is_ignored(cache):
    cache.set(_req(), {"v": 1}, TRADES)
    hit = cache.get(_req(headers={"If-Modified-Since": "not a date"}), TRADES)
    assert hit.status == 200


def test_invalidate_by_tag_is_isolated(cache):
    cache.set(_req(path="/api/journals/j1/trades"), {"trades": []}, TRADES)
    cache.set(_req(path="/api/journals/j1/assets"), {"assets": []}, REFERENCE_DATA)
    cache.set(_req(path="/api/journals/j1/setups"), {"setups": []}, REFERENCE_DATA)

    removed = cache.invalidate_by_tag("trades")

    assert removed == 1
    assert cache.get(_req(path="/api/journals/j1/trades"), TRADES) is None
    assert cache.get(_req(path="/api/journals/j1/assets"), REFERENCE_DATA) is not None
    assert cache.get(_req(path="/api/journals/j1/setups"), REFERENCE_DATA) is not None


def test_invalidate_by_pattern(cache):
    cache.set(_req(path="/api/journals/j1/trades"), {"trades": []}, TRADES)
    cache.set(_req(path="/api/journals/j1/trades", query="page=2"), {"trades": []}, TRADES)
    cache.set(_req(path="/api/journals/j2/trades"), {"trades": []}, TRADES)

    assert cache.invalidate_by_pattern(r"^/api/journals/j1/trades") == 2
    assert len(cache) == 1
    assert cache.tag_keys("trades") == {ResponseCache.make_key(_req(path="/api/journals/j2/trades"))}


def test_lru_eviction_respects_access_order(clock):
    cache = ResponseCache(capacity=2, clock=clock)
    cache.set(_req(path="/a"), 1, TRADES)
    cache.set(_req(path="/b"), 2, TRADES)
    cache.get(_req(path="/a"), TRADES)  # /a becomes most recent
    cache.set(_req(path="/c"), 3, TRADES)

    assert _req(path="/b") not in cache
    assert _req(path="/a") in cache
    assert _req(path="/c") in cache
    assert len(cache.tag_keys("trades")) == 2


def test_reset_replaces_tag_memberships(cache):
    cache.set(_req(), {"v": 1}, TRADES)
    cache.set(_req(), {"v": 2}, CacheConfig(duration=60, tags=("stats",)))

    assert cache.tag_keys("trades") == set()
    assert len(cache.tag_keys("stats")) == 1


def test_superseded_fill_is_not_stored(cache):
    token = cache.generation(TRADES)
    cache.invalidate_by_tag("trades")  # a write lands while the fill is loading

    response = cache.set(_req(), {"trades": ["old"]}, TRADES, generation=token)

    assert response.body == {"trades": ["old"]}
    assert _req() not in cache


def test_current_fill_is_stored(cache):
    token = cache.generation(TRADES)
    cache.invalidate_by_tag("reference-data")
    cache.set(_req(), {"trades": []}, TRADES, generation=token)
    assert _req() in cache


def test_stats_and_clear(cache):
    cache.get(_req(), TRADES)
    cache.set(_req(), {"v": 1}, TRADES)
    cache.get(_req(), TRADES)

    stats = cache.stats()
    assert stats["size"] == 1
    assert stats["tags"] == 1
    assert stats["hits"] == 1
    assert stats["misses"] == 1

    cache.clear()
    assert cache.stats()["size"] == 0


def test_named_configs():
    assert CACHE_CONFIGS["REFERENCE_DATA"].duration == 600
    assert CACHE_CONFIGS["REFERENCE_DATA"].stale_while_revalidate == 1800
    assert CACHE_CONFIGS["TRADES"].tags == ("trades",)
    assert CACHE_CONFIGS["STATS"].duration == 60
    assert CACHE_CONFIGS["JOURNALS"].stale_while_revalidate == 900


def test_len_waits_for_writer_lock(cache):
    cache.set(_req(), {"v": 1}, TRADES)
    sizes = []
    reader = threading.Thread(target=lambda: sizes.append(len(cache)))

    with cache._lock:
        reader.start()
        reader.join(0.2)
        assert reader.is_alive()
        assert sizes == []
        cache.set(_req(path="/api/journals/j2/trades"), {"v": 2}, TRADES)

    reader.join(2)
    assert sizes == [2]
