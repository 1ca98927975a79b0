import asyncio

import pytest
from unittest.mock import AsyncMock

from poisync.exceptions import TransportError
from poisync.models.dto import POIDetail, Position
from poisync.services.poi_cache import POIDetailCache


def make_detail(poi_id: str, name: str = "Dock") -> POIDetail:
    return POIDetail(
        id=poi_id,
        name=name,
        position=Position(latitude=47.6, longitude=-122.3),
        category="Marina",
        url=f"https://example.test/pois/{poi_id}",
    )


def test_put_first_writer_wins():
    cache = POIDetailCache()
    first = cache.put(make_detail("A", "first"))
    second = cache.put(make_detail("A", "second"))

    assert second is first
    assert cache.get("A").name == "first"
    assert len(cache) == 1


def test_get_miss_returns_none():
    cache = POIDetailCache()
    assert cache.get("missing") is None
    assert "missing" not in cache


@pytest.mark.asyncio
async def test_get_or_fetch_fetches_once():
    cache = POIDetailCache()
    fetch = AsyncMock(return_value=make_detail("A"))

    detail, fetched = await cache.get_or_fetch("A", fetch)
    again, fetched_again = await cache.get_or_fetch("A", fetch)

    assert fetched is True
    assert fetched_again is False
    assert again is detail
    fetch.assert_awaited_once()


@pytest.mark.asyncio
async def test_concurrent_fetches_of_same_id_are_single_flight():
    cache = POIDetailCache()
    release = asyncio.Event()
    calls = 0

    async def slow_fetch():
        nonlocal calls
        calls += 1
        await release.wait()
        return make_detail("A")

    tasks = [asyncio.create_task(cache.get_or_fetch("A", slow_fetch)) for _ in range(5)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*tasks)

    assert calls == 1
    assert sum(1 for _, fetched in results if fetched) == 1
    assert len({id(detail) for detail, _ in results}) == 1


@pytest.mark.asyncio
async def test_failed_fetch_is_not_cached_and_reaches_waiters():
    cache = POIDetailCache()
    release = asyncio.Event()

    async def failing_fetch():
        await release.wait()
        raise TransportError("network down")

    owner = asyncio.create_task(cache.get_or_fetch("A", failing_fetch))
    waiter = asyncio.create_task(cache.get_or_fetch("A", failing_fetch))
    await asyncio.sleep(0)
    release.set()

    with pytest.raises(TransportError):
        await owner
    with pytest.raises(TransportError):
        await waiter
    assert "A" not in cache

    # A later attempt fetches again
    detail, fetched = await cache.get_or_fetch("A", AsyncMock(return_value=make_detail("A")))
    assert fetched is True
    assert cache.get("A") is detail


def test_max_entries_evicts_least_recently_used():
    cache = POIDetailCache(max_entries=2)
    cache.put(make_detail("A"))
    cache.put(make_detail("B"))
    cache.get("A")
    cache.put(make_detail("C"))

    assert "A" in cache
    assert "B" not in cache
    assert "C" in cache
    assert len(cache) == 2


def test_unbounded_cache_keeps_every_entry():
    cache = POIDetailCache()
    for poi_id in map(str, range(500)):
        cache.put(make_detail(poi_id))

    assert len(cache) == 500
    assert "0" in cache
