"""Tests for tabby.sync.locator — snapshot lookup."""

from __future__ import annotations

import pytest

from tabby._errors import NoSnapshotAvailable
from tabby.cache import keys
from tabby.cache.store import ViewCache
from tabby.sync.locator import EntityLocator

from .conftest import bare_pages, make_status, paginated, reblog_of


class TestEntityLocator:
    """Priority-ordered first-hit lookup."""

    def test_detail_wins(self) -> None:
        cache = ViewCache()
        cache.set(keys.home(), paginated(make_status("42", favourites_count=1)))
        detail = make_status("42", favourites_count=9)
        cache.set(keys.status_detail("42"), detail)
        assert EntityLocator(cache).find("42") is detail

    def test_trending_before_timelines(self) -> None:
        cache = ViewCache()
        cache.set(keys.home(), paginated(make_status("42", favourites_count=1)))
        trending = make_status("42", favourites_count=2)
        cache.set(keys.trending_statuses(infinite=False), (trending,))
        assert EntityLocator(cache).find("42") is trending

    def test_trending_bare_pages(self) -> None:
        cache = ViewCache()
        trending = make_status("42")
        cache.set(keys.trending_statuses(), bare_pages((trending,)))
        assert EntityLocator(cache).find("42") is trending

    def test_timeline_before_bookmarks(self) -> None:
        cache = ViewCache()
        cache.set(keys.bookmarks(), paginated(make_status("42", favourites_count=1)))
        home = make_status("42", favourites_count=2)
        cache.set(keys.home(), paginated(home))
        assert EntityLocator(cache).find("42") is home

    def test_pinned_flat_list(self) -> None:
        cache = ViewCache()
        pinned = make_status("42", pinned=True)
        cache.set(keys.pinned_statuses("a1"), (pinned,))
        assert EntityLocator(cache).find("42") is pinned

    def test_reblog_unwrapped(self) -> None:
        cache = ViewCache()
        inner = make_status("7")
        cache.set(keys.home(), paginated(reblog_of("100", inner)))
        assert EntityLocator(cache).find("7") is inner

    def test_search_and_context_not_searched(self) -> None:
        from tabby.models import StatusContext

        cache = ViewCache()
        cache.set(keys.status_context("1"), StatusContext(descendants=(make_status("42"),)))
        assert EntityLocator(cache).find("42") is None

    def test_malformed_view_skipped(self) -> None:
        cache = ViewCache()
        cache.set(keys.home(), "garbage")
        good = make_status("42")
        cache.set(keys.bookmarks(), paginated(good))
        assert EntityLocator(cache).find("42") is good

    def test_snapshot_raises_when_absent(self) -> None:
        with pytest.raises(NoSnapshotAvailable):
            EntityLocator(ViewCache()).snapshot("42")

    def test_find_item(self) -> None:
        from tabby.models import Conversation

        cache = ViewCache()
        conversation = Conversation(id="c1", unread=True)
        cache.set(keys.conversations(), paginated(conversation))
        locator = EntityLocator(cache)
        assert locator.find_item(keys.in_categories("conversations"), "c1") is conversation
        assert locator.find_item(keys.in_categories("conversations"), "c2") is None
