"""Propagators — apply one entity change to every cached copy.

``TransformPropagator`` fans a status transform out over every status
surface (lists, detail singletons, thread context, search results),
unwrapping reblogs so the inner status is patched and the wrapper rebuilt
around it.  ``RemovalPropagator`` drops entities from list views.

Both go through ``ViewCache.for_each_view``: a malformed view is skipped
and recorded, never fatal.
"""

from __future__ import annotations

from collections.abc import Callable, Collection
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from tabby.cache import keys
from tabby.models import Status
from tabby.sync.deltas import replace_with

if TYPE_CHECKING:
    from tabby._types import KeyPredicate, StatusTransform
    from tabby.cache.store import FanOutResult, ViewCache, ViewEntry
    from tabby.models import Poll
    from tabby.observability.collector import SyncCollector


def _for_status(status_id: str, fn: StatusTransform) -> StatusTransform:
    def apply(status: Status) -> Status:
        if status.id == status_id:
            return fn(status)
        if status.reblog is not None and status.reblog.id == status_id:
            return status.with_reblog(fn(status.reblog))
        return status

    return apply


class TransformPropagator:
    """Fan a status transform out to every cached copy."""

    def __init__(self, cache: ViewCache, collector: SyncCollector | None = None) -> None:
        self._cache = cache
        self._collector = collector

    def apply(
        self,
        status_id: str,
        fn: StatusTransform,
        *,
        operation: str = "transform",
    ) -> FanOutResult:
        """Apply ``fn`` to every copy of ``status_id``, including reblogged ones."""
        per_status = _for_status(status_id, fn)
        result = self._cache.for_each_view(
            keys.is_status_surface,
            lambda view: view.adapter.map_statuses(view.key, view.data, per_status),
        )
        self._record(operation, status_id, result)
        return result

    def replace(self, status: Status, *, operation: str = "replace") -> FanOutResult:
        """Overwrite every copy of ``status`` with the given entity."""
        return self.apply(status.id, replace_with(status), operation=operation)

    def apply_poll(self, poll_id: str, poll: Poll, *, operation: str = "vote") -> FanOutResult:
        """Swap in ``poll`` on every status embedding poll ``poll_id``.

        A reblog wrapper carries no poll of its own; the poll lives on the
        inner status, which is patched and rewrapped.
        """

        def with_poll(status: Status) -> Status:
            if status.poll is not None and status.poll.id == poll_id and status.poll != poll:
                status = replace(status, poll=poll)
            inner = status.reblog
            if inner is not None and inner.poll is not None and inner.poll.id == poll_id and inner.poll != poll:
                status = status.with_reblog(replace(inner, poll=poll))
            return status

        result = self._cache.for_each_view(
            keys.is_status_surface,
            lambda view: view.adapter.map_statuses(view.key, view.data, with_poll),
        )
        self._record(operation, poll_id, result)
        return result

    def apply_items(
        self,
        predicate: KeyPredicate,
        entity_id: str,
        fn: Callable[[Any], Any],
        *,
        operation: str = "transform",
    ) -> FanOutResult:
        """Apply ``fn`` to non-status items (conversations, requests) by id."""

        def per_item(item: Any) -> Any:
            return fn(item) if getattr(item, "id", None) == entity_id else item

        result = self._cache.for_each_view(
            predicate,
            lambda view: view.adapter.map_items(view.key, view.data, per_item),
        )
        self._record(operation, entity_id, result)
        return result

    def _record(self, operation: str, entity_id: str, result: FanOutResult) -> None:
        if self._collector is not None:
            self._collector.record_patched(
                operation,
                entity_id,
                matched=result.matched,
                changed=result.changed,
                skipped=result.skipped,
            )


class RemovalPropagator:
    """Drop entities from cached views.

    Args:
        cache: The view cache.
        collector: Optional observability sink.
        invalidate_contexts: Mark every thread-context view stale after a
            status removal.  Contexts are refetched rather than patched,
            since a removed status may have been an ancestor that shapes the
            whole thread.

    """

    def __init__(
        self,
        cache: ViewCache,
        collector: SyncCollector | None = None,
        *,
        invalidate_contexts: bool = True,
    ) -> None:
        self._cache = cache
        self._collector = collector
        self._invalidate_contexts = invalidate_contexts

    def remove(self, status_id: str, *, operation: str = "delete") -> FanOutResult:
        """Remove ``status_id`` and every reblog of it from all status lists."""

        def keep(status: Status) -> bool:
            return not status.matches(status_id)

        def drop(view: ViewEntry) -> Any:
            return view.adapter.filter_statuses(view.key, view.data, keep)

        result = self._cache.for_each_view(keys.is_status_list, drop)
        self._cache.remove(keys.status_detail(status_id))
        self._cache.remove(keys.status_context(status_id))
        # A reblog is its own post; its detail view is refetched, not dropped.
        wrappers = {
            entry.key
            for entry in self._cache.entries(keys.in_categories("status"))
            if isinstance(entry.data, Status) and entry.data.matches(status_id)
        }
        if wrappers:
            self._cache.invalidate(lambda key: key in wrappers, reason=operation)
        if self._invalidate_contexts:
            self._cache.invalidate(keys.is_context, reason=operation)
        self._record(operation, status_id, result)
        return result

    def remove_items(
        self,
        predicate: KeyPredicate,
        entity_ids: Collection[str],
        *,
        operation: str = "remove",
    ) -> FanOutResult:
        """Remove items whose ``id`` is in ``entity_ids`` from matching views."""
        doomed = frozenset(entity_ids)

        def keep(item: Any) -> bool:
            return getattr(item, "id", None) not in doomed

        result = self._cache.for_each_view(
            predicate,
            lambda view: view.adapter.filter_items(view.key, view.data, keep),
        )
        self._record(operation, ",".join(sorted(doomed)), result)
        return result

    def _record(self, operation: str, entity_id: str, result: FanOutResult) -> None:
        if self._collector is not None:
            self._collector.record_patched(
                operation,
                entity_id,
                matched=result.matched,
                changed=result.changed,
                skipped=result.skipped,
            )
