"""Tests for tabby.sync.propagator — fan-out of transforms and removals."""

from __future__ import annotations

from dataclasses import replace

from tabby.cache import keys
from tabby.cache.store import ViewCache
from tabby.models import Account, Conversation, SearchResults, StatusContext
from tabby.observability.collector import SyncCollector
from tabby.observability.events import ViewsPatched
from tabby.sync import deltas
from tabby.sync.propagator import RemovalPropagator, TransformPropagator

from .conftest import bare_pages, copies, make_poll, make_status, paginated, reblog_of


def _populated_cache() -> ViewCache:
    """Status 42 in every status surface, in every physical shape."""
    cache = ViewCache()
    s = make_status("42", favourites_count=3)
    cache.set(keys.home(), paginated(s, make_status("1")))
    cache.set(keys.home({"local": True}), paginated(s))
    cache.set(keys.hashtag("cats"), paginated(reblog_of("100", s)))
    cache.set(keys.bookmarks(), paginated(s))
    cache.set(keys.account_statuses("a1", {"only_media": True}), paginated(s))
    cache.set(keys.pinned_statuses("a1"), (s,))
    cache.set(keys.trending_statuses(), bare_pages((s,), (make_status("2"),)))
    cache.set(keys.trending_statuses(infinite=False), [s])
    cache.set(keys.search("q"), SearchResults(statuses=(s,)))
    cache.set(keys.search("q", "statuses", infinite=True), paginated(s))
    cache.set(keys.status_detail("42"), s)
    cache.set(
        keys.status_context("5"),
        StatusContext(ancestors=(s,), descendants=(reblog_of("101", s),)),
    )
    return cache


# ---------------------------------------------------------------------------
# TransformPropagator
# ---------------------------------------------------------------------------


class TestTransformApply:
    """apply — every copy in every shape."""

    def test_every_copy_updated(self) -> None:
        cache = _populated_cache()
        before = len(copies(cache, "42"))

        TransformPropagator(cache).apply("42", deltas.favourite)

        after = copies(cache, "42")
        assert len(after) == before == 13
        assert all(s.favourited and s.favourites_count == 4 for s in after)

    def test_reblog_wrapper_kept(self) -> None:
        cache = _populated_cache()
        TransformPropagator(cache).apply("42", deltas.favourite)
        wrapper = cache.get(keys.hashtag("cats")).pages[0].items[0]
        assert wrapper.id == "100"
        assert wrapper.favourited is False
        assert wrapper.reblog.favourited is True

    def test_unrelated_statuses_untouched(self) -> None:
        cache = _populated_cache()
        other = cache.get(keys.home()).pages[0].items[1]
        TransformPropagator(cache).apply("42", deltas.favourite)
        assert cache.get(keys.home()).pages[0].items[1] is other

    def test_untouched_views_keep_identity(self) -> None:
        cache = _populated_cache()
        unrelated = paginated(make_status("9"))
        cache.set(keys.public(), unrelated)
        result = TransformPropagator(cache).apply("42", deltas.favourite)
        assert cache.get(keys.public()) is unrelated
        assert result.changed == result.matched - 1

    def test_targeting_wrapper_id_does_not_touch_inner(self) -> None:
        cache = ViewCache()
        inner = make_status("7")
        cache.set(keys.home(), paginated(reblog_of("100", inner)))
        TransformPropagator(cache).apply("100", deltas.bookmark)
        wrapper = cache.get(keys.home()).pages[0].items[0]
        assert wrapper.bookmarked is True
        assert wrapper.reblog is inner

    def test_malformed_view_isolated(self) -> None:
        cache = _populated_cache()
        cache.set(keys.list_timeline("L1"), {"not": "pages"})
        result = TransformPropagator(cache).apply("42", deltas.favourite)
        assert result.skipped == 1
        assert all(s.favourited for s in copies(cache, "42"))

    def test_records_patched_event(self) -> None:
        collector = SyncCollector()
        cache = ViewCache(collector)
        cache.set(keys.home(), paginated(make_status("42")))
        TransformPropagator(cache, collector).apply("42", deltas.favourite, operation="favourite")
        event = collector.log.query(event_type=ViewsPatched)[0]
        assert event.operation == "favourite"
        assert event.views_changed == 1

    def test_replace_with_authoritative(self) -> None:
        cache = _populated_cache()
        server = make_status("42", favourited=True, favourites_count=5)
        TransformPropagator(cache).replace(server)
        assert all(s == server for s in copies(cache, "42"))


class TestApplyPoll:
    """apply_poll — by poll id, originals and reblog inners."""

    def test_original_and_reblog_updated(self) -> None:
        cache = ViewCache()
        original = make_status("7", poll=make_poll("p1"))
        cache.set(keys.home(), paginated(reblog_of("100", original)))
        cache.set(keys.status_detail("7"), original)
        voted = make_poll("p1", votes=(1, 0), voted=True)

        TransformPropagator(cache).apply_poll("p1", voted)

        assert cache.get(keys.status_detail("7")).poll == voted
        assert cache.get(keys.home()).pages[0].items[0].reblog.poll == voted

    def test_other_polls_untouched(self) -> None:
        cache = ViewCache()
        data = paginated(make_status("8", poll=make_poll("p2")))
        cache.set(keys.home(), data)
        TransformPropagator(cache).apply_poll("p1", make_poll("p1", voted=True))
        assert cache.get(keys.home()) is data


class TestApplyItems:
    def test_conversation_patched_by_id(self) -> None:
        cache = ViewCache()
        cache.set(keys.conversations(), paginated(Conversation(id="c1", unread=True)))
        TransformPropagator(cache).apply_items(
            keys.in_categories("conversations"), "c1", lambda c: replace(c, unread=False)
        )
        assert cache.get(keys.conversations()).pages[0].items[0].unread is False


# ---------------------------------------------------------------------------
# RemovalPropagator
# ---------------------------------------------------------------------------


class TestRemovalPropagator:
    """remove — lists filtered, detail cleared, contexts refetched."""

    def test_removed_from_every_list(self) -> None:
        cache = _populated_cache()
        RemovalPropagator(cache).remove("42")
        for key in cache.keys(keys.is_status_list):
            entry = cache.entry(key)
            assert not any(
                s.matches("42") for s in entry.adapter.iter_statuses(key, entry.data)
            ), key

    def test_reblog_wrappers_of_removed_status_dropped(self) -> None:
        cache = _populated_cache()
        RemovalPropagator(cache).remove("42")
        assert cache.get(keys.hashtag("cats")).pages[0].items == ()

    def test_other_items_survive(self) -> None:
        cache = _populated_cache()
        RemovalPropagator(cache).remove("42")
        assert [s.id for s in cache.get(keys.home()).pages[0].items] == ["1"]
        assert [s.id for s in cache.get(keys.trending_statuses()).pages[1]] == ["2"]

    def test_detail_cleared(self) -> None:
        cache = _populated_cache()
        RemovalPropagator(cache).remove("42")
        assert keys.status_detail("42") not in cache

    def test_wrapper_detail_marked_stale(self) -> None:
        cache = ViewCache()
        wrapper = reblog_of("100", make_status("42"))
        cache.set(keys.status_detail("100"), wrapper)
        RemovalPropagator(cache).remove("42")
        assert cache.is_stale(keys.status_detail("100"))
        assert cache.get(keys.status_detail("100")) is wrapper

    def test_own_context_dropped(self) -> None:
        cache = ViewCache()
        cache.set(keys.status_context("42"), StatusContext())
        RemovalPropagator(cache).remove("42")
        assert keys.status_context("42") not in cache

    def test_contexts_marked_stale_not_patched(self) -> None:
        cache = _populated_cache()
        context = cache.get(keys.status_context("5"))
        RemovalPropagator(cache).remove("42")
        assert cache.is_stale(keys.status_context("5"))
        assert cache.get(keys.status_context("5")) is context

    def test_context_invalidation_can_be_disabled(self) -> None:
        cache = _populated_cache()
        RemovalPropagator(cache, invalidate_contexts=False).remove("42")
        assert not cache.is_stale(keys.status_context("5"))

    def test_remove_items(self) -> None:
        cache = ViewCache()
        cache.set(keys.follow_requests(), paginated(Account(id="b1"), Account(id="c1")))
        RemovalPropagator(cache).remove_items(keys.in_categories("follow_requests"), ["b1"])
        assert [a.id for a in cache.get(keys.follow_requests()).pages[0].items] == ["c1"]
