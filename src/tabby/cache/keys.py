"""View keys — uniform addressing of cached views.

Every view is keyed by ``ViewKey(category, params)``. The factory functions
below are the only way the engine builds keys, so two call sites asking for
"the home timeline" always address the same view.

The physical shape of a view is a function of its key and is resolved once,
when the view is first stored (see ``shape_for``).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tabby._types import KeyPredicate, ViewCategory


class ViewShape(Enum):
    """Closed set of physical view shapes."""

    PAGINATED = "paginated"
    FLAT = "flat"
    SINGLETON = "singleton"


def _freeze(params: Mapping[str, Any] | None) -> tuple[tuple[str, Any], ...]:
    if not params:
        return ()
    return tuple(sorted((k, _freeze_value(v)) for k, v in params.items() if v is not None))


def _freeze_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return _freeze(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(value)
    return value


@dataclass(frozen=True, slots=True)
class ViewKey:
    """Hashable address of one view.

    Attributes:
        category: Coarse view family used by fan-out predicates.
        scope: Positional discriminators (timeline kind, status id, account id).
        params: Frozen, sorted key/value parameters (filters, query strings).

    """

    category: ViewCategory
    scope: tuple[str, ...] = ()
    params: tuple[tuple[str, Any], ...] = ()

    def param(self, name: str, default: Any = None) -> Any:
        for key, value in self.params:
            if key == name:
                return value
        return default

    def __str__(self) -> str:
        parts = [self.category, *self.scope]
        if self.params:
            parts.append(",".join(f"{k}={v}" for k, v in self.params))
        return "/".join(str(p) for p in parts)


# ---------------------------------------------------------------------------
# Key factory
# ---------------------------------------------------------------------------


def home(params: Mapping[str, Any] | None = None) -> ViewKey:
    return ViewKey("timeline", ("home",), _freeze(params))


def public(params: Mapping[str, Any] | None = None) -> ViewKey:
    """Federated public timeline; ``{"local": True}`` addresses the local one."""
    return ViewKey("timeline", ("public",), _freeze(params))


def hashtag(tag: str, params: Mapping[str, Any] | None = None) -> ViewKey:
    return ViewKey("timeline", ("hashtag", tag.lower()), _freeze(params))


def list_timeline(list_id: str, params: Mapping[str, Any] | None = None) -> ViewKey:
    return ViewKey("timeline", ("list", list_id), _freeze(params))


def status_detail(status_id: str) -> ViewKey:
    return ViewKey("status", (status_id,))


def status_context(status_id: str) -> ViewKey:
    return ViewKey("context", (status_id,))


def bookmarks(params: Mapping[str, Any] | None = None) -> ViewKey:
    return ViewKey("bookmarks", (), _freeze(params))


def account_statuses(account_id: str, params: Mapping[str, Any] | None = None) -> ViewKey:
    """Per-account statuses, optionally filtered (``only_media``, ``exclude_replies``)."""
    return ViewKey("account_statuses", (account_id,), _freeze(params))


def pinned_statuses(account_id: str) -> ViewKey:
    return ViewKey("pinned_statuses", (account_id,))


def account_detail(account_id: str) -> ViewKey:
    return ViewKey("account", (account_id,))


def current_account() -> ViewKey:
    """The signed-in account's own profile."""
    return ViewKey("current_account")


def relationships(ids: Iterable[str]) -> ViewKey:
    """Relationship batch. Keyed by the requested id-set, in request order."""
    return ViewKey("relationships", tuple(ids))


def follow_requests() -> ViewKey:
    return ViewKey("follow_requests")


def trending_statuses(*, infinite: bool = True) -> ViewKey:
    """Trending statuses: infinite (bare-array pages) or legacy flat list."""
    return ViewKey("trending", ("statuses", "infinite" if infinite else "flat"))


def search(query: str, search_type: str | None = None, *, infinite: bool = False) -> ViewKey:
    """Search results.

    The infinite form holds paginated status items for one tab; the
    non-infinite "all" tab holds a ``SearchResults`` singleton.

    """
    scope = (query, search_type or "all")
    if infinite:
        scope = (*scope, "infinite")
    return ViewKey("search", scope)


def notifications(params: Mapping[str, Any] | None = None) -> ViewKey:
    return ViewKey("notifications", (), _freeze(params))


def unread_count() -> ViewKey:
    return ViewKey("unread_count")


def conversations(params: Mapping[str, Any] | None = None) -> ViewKey:
    return ViewKey("conversations", (), _freeze(params))


def notification_requests(params: Mapping[str, Any] | None = None) -> ViewKey:
    return ViewKey("notification_requests", (), _freeze(params))


def notification_policy() -> ViewKey:
    return ViewKey("notification_policy")


# ---------------------------------------------------------------------------
# Shape resolution
# ---------------------------------------------------------------------------

_PAGINATED_CATEGORIES = frozenset({
    "timeline",
    "bookmarks",
    "account_statuses",
    "follow_requests",
    "notifications",
    "conversations",
    "notification_requests",
})

_FLAT_CATEGORIES = frozenset({"pinned_statuses"})


def shape_for(key: ViewKey) -> ViewShape:
    """Resolve the physical shape of a view from its key."""
    if key.category in _PAGINATED_CATEGORIES:
        return ViewShape.PAGINATED
    if key.category in _FLAT_CATEGORIES:
        return ViewShape.FLAT
    if key.category == "trending":
        return ViewShape.PAGINATED if "infinite" in key.scope else ViewShape.FLAT
    if key.category == "search":
        return ViewShape.PAGINATED if "infinite" in key.scope else ViewShape.SINGLETON
    return ViewShape.SINGLETON


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

# Every category that can hold a copy of a status.
STATUS_CATEGORIES: frozenset[str] = frozenset({
    "status",
    "context",
    "timeline",
    "bookmarks",
    "account_statuses",
    "pinned_statuses",
    "trending",
    "search",
})

# List-shaped status views (everything but detail and thread context).
STATUS_LIST_CATEGORIES: frozenset[str] = STATUS_CATEGORIES - {"status", "context"}


def in_categories(*categories: str) -> KeyPredicate:
    wanted = frozenset(categories)
    return lambda key: key.category in wanted


def is_status_surface(key: ViewKey) -> bool:
    """Views that may hold a status copy, including detail and context."""
    if key.category == "search":
        # Only status-bearing search tabs.
        return key.scope[1] in ("all", "statuses")
    if key.category == "trending":
        return key.scope[0] == "statuses"
    return key.category in STATUS_CATEGORIES


def is_status_list(key: ViewKey) -> bool:
    return is_status_surface(key) and key.category in STATUS_LIST_CATEGORIES


def is_context(key: ViewKey) -> bool:
    return key.category == "context"


def is_detail_of(status_id: str) -> KeyPredicate:
    target = status_detail(status_id)
    return lambda key: key == target


def is_timeline(key: ViewKey) -> bool:
    return key.category == "timeline"


def relationships_including(account_id: str) -> KeyPredicate:
    """Relationship batches whose requested id-set includes ``account_id``."""
    return lambda key: key.category == "relationships" and account_id in key.scope
