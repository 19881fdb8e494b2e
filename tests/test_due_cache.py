from __future__ import annotations

from datetime import timedelta

import pytest

from src.review import DueItemsCache, ReviewItemService
from src.review import service as service_module


OWNER = "student-1"


class _Ticker:
    def __init__(self) -> None:
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


def test_cache_entries_expire_after_ttl() -> None:
    ticker = _Ticker()
    cache = DueItemsCache(ttl_seconds=30, clock=ticker)
    cache.put(OWNER, ())

    ticker.value = 29.9
    assert cache.get(OWNER) == ()

    ticker.value = 30.0
    assert cache.get(OWNER) is None
    assert len(cache) == 0
    assert (cache.hits, cache.misses) == (1, 1)


def test_cache_evicts_least_recently_used_owner() -> None:
    cache = DueItemsCache(ttl_seconds=60, max_entries=2, clock=_Ticker())
    cache.put("a", ())
    cache.put("b", ())
    cache.get("a")
    cache.put("c", ())

    assert cache.get("b") is None
    assert cache.get("a") == ()
    assert cache.get("c") == ()


def test_cache_invalidate_drops_owner() -> None:
    cache = DueItemsCache(ttl_seconds=60, clock=_Ticker())
    cache.put(OWNER, ())
    cache.put("other", ())

    cache.invalidate(OWNER)
    cache.invalidate("missing")

    assert cache.get(OWNER) is None
    assert cache.get("other") == ()


@pytest.mark.parametrize(("ttl", "max_entries"), [(0, 10), (-1, 10), (10, 0)])
def test_cache_rejects_invalid_bounds(ttl: float, max_entries: int) -> None:
    with pytest.raises(ValueError):
        DueItemsCache(ttl_seconds=ttl, max_entries=max_entries)


@pytest.mark.asyncio
async def test_service_serves_due_items_from_cache_and_invalidates_on_write(session_factory, clock) -> None:
    cache = DueItemsCache(ttl_seconds=300, clock=_Ticker())
    service = ReviewItemService(session_factory, clock=clock, due_cache=cache)

    item = await service.create(OWNER, "Mean value theorem")
    clock.advance(days=1)

    due = await service.get_due(OWNER)
    assert [entry.id for entry in due] == [item.id]
    assert await service.get_due(OWNER) == due
    assert cache.hits == 1

    # the cached schedule is filtered against each request's point in time
    assert await service.get_due(OWNER, as_of=clock() - timedelta(hours=1)) == []

    await service.review(item.id, OWNER, 5)
    assert cache.get(OWNER) is None
    assert await service.get_due(OWNER) == []

    second = await service.create(OWNER, "Rolle's theorem")
    assert cache.get(OWNER) is None
    clock.advance(days=1)
    assert [entry.id for entry in await service.get_due(OWNER)] == [item.id, second.id]


def test_put_discards_snapshot_taken_before_invalidation() -> None:
    cache = DueItemsCache(ttl_seconds=60, clock=_Ticker())
    token = cache.read_token()

    cache.invalidate(OWNER)

    assert cache.put(OWNER, (), token=token) is False
    assert cache.get(OWNER) is None

    fresh = cache.read_token()
    assert cache.put(OWNER, (), token=fresh) is True
    assert cache.get(OWNER) == ()


def test_put_ignores_invalidations_of_other_owners() -> None:
    cache = DueItemsCache(ttl_seconds=60, clock=_Ticker())
    token = cache.read_token()

    cache.invalidate("other")

    assert cache.put(OWNER, (), token=token) is True


def test_pruned_invalidations_still_reject_older_snapshots() -> None:
    cache = DueItemsCache(ttl_seconds=60, max_entries=1, clock=_Ticker())
    token = cache.read_token()

    cache.invalidate(OWNER)
    cache.invalidate("other")

    assert cache.put(OWNER, (), token=token) is False


@pytest.mark.asyncio
async def test_review_during_cache_fill_does_not_leave_stale_snapshot(
    file_session_factory, clock, monkeypatch
) -> None:
    cache = DueItemsCache(ttl_seconds=300, clock=_Ticker())
    service = ReviewItemService(file_session_factory, clock=clock, due_cache=cache)
    item = await service.create(OWNER, "Bernoulli's principle")
    clock.advance(days=1)

    real_list = service_module.list_owner_items
    reviewed: list[int] = []

    async def list_then_review(session, owner_id):
        records = await real_list(session, owner_id)
        if not reviewed:
            reviewed.append(item.id)
            await service.review(item.id, owner_id, 5)
        return records

    monkeypatch.setattr(service_module, "list_owner_items", list_then_review)

    # this read raced the review, so it may still see the item as due
    assert [entry.id for entry in await service.get_due(OWNER)] == [item.id]

    assert await service.get_due(OWNER) == []
