"""Shared type definitions for tabby."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from tabby.cache.keys import ViewKey
    from tabby.cache.store import ViewEntry
    from tabby.models import Status

# Server-assigned entity identifier
type EntityID = str

# Category of a cached view (first element of its key)
type ViewCategory = Literal[
    "timeline",
    "status",
    "context",
    "bookmarks",
    "account_statuses",
    "pinned_statuses",
    "account",
    "current_account",
    "relationships",
    "follow_requests",
    "trending",
    "search",
    "notifications",
    "unread_count",
    "conversations",
    "notification_requests",
    "notification_policy",
]

# Pure status -> status function applied during fan-out
type StatusTransform = Callable[[Status], Status]

# Pure view updater: returns the entry's own data when nothing changed
type Updater = Callable[[ViewEntry], Any]

# Selects views by key
type KeyPredicate = Callable[[ViewKey], bool]

# Loads fresh data for a view (the pagination/transport collaborator)
type Loader = Callable[[], Awaitable[Any]]
