"""End-to-end consistency properties across every cached view."""

from __future__ import annotations

import asyncio

import pytest

from tabby._errors import MutationFailed
from tabby.cache import keys
from tabby.cache.shapes import Page
from tabby.models import SearchResults, StatusContext

from .conftest import bare_pages, copies, make_poll, make_status, paginated, reblog_of


def _everywhere(cache, status):
    """Place ``status`` on every status surface, plain and reblogged."""
    cache.set(keys.status_detail(status.id), status)
    cache.set(keys.home(), paginated(status))
    cache.set(keys.home({"only_media": True}), paginated(reblog_of("100", status)))
    cache.set(keys.list_timeline("l1"), paginated(reblog_of("101", status)))
    cache.set(keys.bookmarks(), paginated(status))
    cache.set(keys.account_statuses("a1"), paginated(status))
    cache.set(keys.pinned_statuses("a1"), (status,))
    cache.set(keys.trending_statuses(), bare_pages((status,)))
    cache.set(keys.trending_statuses(infinite=False), (status,))
    cache.set(keys.search("cats"), SearchResults(statuses=(status,)))
    cache.set(
        keys.search("cats", "statuses", infinite=True),
        paginated(reblog_of("102", status)),
    )
    cache.set(keys.status_context("5"), StatusContext(ancestors=(status,)))


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    """Fan-out invariants over a cache holding one status on every surface."""

    @pytest.mark.asyncio
    async def test_favourite_settles_every_copy(self, coordinator, cache, transport) -> None:
        _everywhere(cache, make_status("42", favourites_count=3))
        transport.respond("favourite", "42", make_status("42", favourited=True, favourites_count=7))

        await coordinator.favourite("42")

        found = copies(cache, "42")
        assert len(found) == 12
        assert all(s.favourited and s.favourites_count == 7 for s in found)

    @pytest.mark.asyncio
    async def test_failure_restores_exact_snapshot(self, coordinator, cache, transport) -> None:
        original = make_status("42", favourites_count=3, bookmarked=True)
        _everywhere(cache, original)
        transport.fail("unbookmark", "42")

        with pytest.raises(MutationFailed):
            await coordinator.unbookmark("42")

        assert all(s == original for s in copies(cache, "42"))

    @pytest.mark.asyncio
    async def test_unfavourite_from_zero_stays_zero(self, coordinator, cache, transport) -> None:
        _everywhere(cache, make_status("42", favourited=True, favourites_count=0))
        pending = transport.hold("unfavourite", "42")
        task = asyncio.create_task(coordinator.unfavourite("42"))
        await asyncio.sleep(0)

        assert all(s.favourites_count == 0 for s in copies(cache, "42"))

        pending.set_result(make_status("42", favourites_count=0))
        await task
        assert all(s.favourites_count == 0 for s in copies(cache, "42"))

    @pytest.mark.asyncio
    async def test_delete_removes_standalone_and_reblogged(
        self, coordinator, cache, transport
    ) -> None:
        _everywhere(cache, make_status("42"))
        transport.respond("delete_status", "42", {})

        await coordinator.delete("42")

        for key in cache.keys(keys.is_status_list):
            entry = cache.entry(key)
            assert not any(
                s.matches("42") for s in entry.adapter.iter_statuses(key, entry.data)
            ), key
        assert keys.status_detail("42") not in cache
        assert cache.is_stale(keys.status_context("5"))

    @pytest.mark.asyncio
    async def test_vote_updates_original_and_reblog_identically(
        self, coordinator, cache, transport
    ) -> None:
        original = make_status("7", poll=make_poll("p1"))
        cache.set(keys.status_detail("7"), original)
        cache.set(keys.home(), paginated(reblog_of("100", original)))
        transport.respond("vote", "p1", make_poll("p1", votes=(3, 1), voted=True))

        await coordinator.vote("p1", [0])

        polls = [s.poll for s in copies(cache, "7")]
        assert len(polls) == 2
        assert polls[0] == polls[1]
        assert polls[0].voted is True


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    @pytest.mark.asyncio
    async def test_a_optimistic_then_server_count(self, coordinator, cache, transport) -> None:
        """Optimistic +1 shows immediately; the server's count wins at settle."""
        status = make_status("42", favourited=False, favourites_count=3)
        cache.set(keys.home(), paginated(status))
        cache.set(keys.bookmarks(), paginated(reblog_of("100", status)))
        pending = transport.hold("favourite", "42")

        task = asyncio.create_task(coordinator.favourite("42"))
        await asyncio.sleep(0)
        assert all(s.favourited and s.favourites_count == 4 for s in copies(cache, "42"))

        pending.set_result(make_status("42", favourited=True, favourites_count=5))
        await task
        assert all(s.favourited and s.favourites_count == 5 for s in copies(cache, "42"))

    @pytest.mark.asyncio
    async def test_b_failure_reverts(self, coordinator, cache, transport) -> None:
        """A failed call reverts every copy to the pre-mutation state."""
        status = make_status("42", favourited=False, favourites_count=3)
        cache.set(keys.home(), paginated(status))
        cache.set(keys.bookmarks(), paginated(reblog_of("100", status)))
        transport.fail("favourite", "42")

        with pytest.raises(MutationFailed) as info:
            await coordinator.favourite("42")

        assert info.value.rolled_back is True
        found = copies(cache, "42")
        assert len(found) == 2
        assert all(not s.favourited and s.favourites_count == 3 for s in found)

    @pytest.mark.asyncio
    async def test_c_delete_reaches_reblogs(self, coordinator, cache, transport) -> None:
        """The reblog entry leaves the list; the wrapping post's detail is only stale."""
        target = make_status("7")
        wrapper = reblog_of("100", target)
        cache.set(keys.bookmarks(), paginated(target, make_status("8")))
        cache.set(keys.home(), paginated(wrapper, make_status("1")))
        cache.set(keys.status_detail("100"), wrapper)
        transport.respond("delete_status", "7", {})

        await coordinator.delete("7")

        assert [s.id for s in cache.get(keys.bookmarks()).pages[0].items] == ["8"]
        assert [s.id for s in cache.get(keys.home()).pages[0].items] == ["1"]
        assert keys.status_detail("100") in cache
        assert cache.is_stale(keys.status_detail("100"))

    @pytest.mark.asyncio
    async def test_d_context_refetched_not_patched(self, coordinator, cache, transport) -> None:
        """An unrelated thread holding the deleted status is refetched on next read."""
        context = StatusContext(ancestors=(make_status("98"),), descendants=(make_status("7"),))
        cache.set(keys.status_context("99"), context)
        transport.respond("delete_status", "7", {})

        await coordinator.delete("7")

        assert cache.is_stale(keys.status_context("99"))
        assert cache.get(keys.status_context("99")) is context

        fetched: list[str] = []

        async def load() -> StatusContext:
            fetched.append("99")
            return StatusContext(ancestors=(make_status("98"),))

        fresh = await cache.ensure(keys.status_context("99"), load)

        assert fetched == ["99"]
        assert fresh.descendants == ()
        assert not cache.is_stale(keys.status_context("99"))


class TestBareArrayPages:
    """Legacy bare-array pages are patched like ``Page`` objects."""

    @pytest.mark.asyncio
    async def test_trending_pages_patched(self, coordinator, cache, transport) -> None:
        cache.set(keys.trending_statuses(), bare_pages((make_status("1"),), (make_status("42"),)))
        cache.set(keys.home(), paginated(make_status("42")))
        transport.respond("reblog", "42", make_status("42", reblogged=True, reblogs_count=1))

        await coordinator.reblog("42")

        pages = cache.get(keys.trending_statuses()).pages
        assert not isinstance(pages[1], Page)
        assert pages[1][0].reblogged is True
