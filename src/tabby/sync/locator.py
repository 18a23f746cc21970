"""Entity locator — finds one current copy of a status for snapshotting.

Views are searched in a fixed priority order and the first hit wins:

    1. status detail singletons
    2. trending (infinite and legacy flat shapes)
    3. every timeline view
    4. bookmarks
    5. per-account statuses, including pinned flat lists

A reblog wrapper is never returned for the inner id: when a candidate's
``reblog.id`` matches, the inner status is the snapshot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tabby._errors import NoSnapshotAvailable, ViewShapeMismatch
from tabby.cache import keys

if TYPE_CHECKING:
    from tabby._types import KeyPredicate
    from tabby.cache.store import ViewCache
    from tabby.models import Status

PRIORITY: tuple[KeyPredicate, ...] = (
    keys.in_categories("status"),
    lambda key: key.category == "trending" and keys.is_status_surface(key),
    keys.is_timeline,
    keys.in_categories("bookmarks"),
    keys.in_categories("account_statuses", "pinned_statuses"),
)


class EntityLocator:
    """Priority-ordered lookup of a status across the cache."""

    def __init__(self, cache: ViewCache) -> None:
        self._cache = cache

    def find(self, status_id: str) -> Status | None:
        """Return the first cached copy of ``status_id``, unwrapped, or None."""
        detail = self._cache.get(keys.status_detail(status_id))
        if detail is not None and getattr(detail, "id", None) == status_id:
            return detail
        for predicate in PRIORITY:
            for entry in self._cache.entries(predicate):
                try:
                    for status in entry.adapter.iter_statuses(entry.key, entry.data):
                        if status.id == status_id:
                            return status
                        if status.reblog is not None and status.reblog.id == status_id:
                            return status.reblog
                except ViewShapeMismatch:
                    continue
        return None

    def find_item(self, predicate: KeyPredicate, entity_id: str) -> Any:
        """First item with ``id == entity_id`` in views matching ``predicate``."""
        for entry in self._cache.entries(predicate):
            try:
                for item in entry.adapter.iter_items(entry.key, entry.data):
                    if getattr(item, "id", None) == entity_id:
                        return item
            except ViewShapeMismatch:
                continue
        return None

    def snapshot(self, status_id: str) -> Status:
        """Like ``find`` but raises ``NoSnapshotAvailable`` on a miss."""
        found = self.find(status_id)
        if found is None:
            raise NoSnapshotAvailable(status_id)
        return found
