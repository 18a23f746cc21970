"""Tabby error hierarchy.

All tabby-specific errors inherit from TabbyError for easy catching.
"""

from __future__ import annotations


class TabbyError(Exception):
    """Base error for all tabby operations."""


class ConfigError(TabbyError):
    """Invalid or missing configuration."""


class CacheError(TabbyError):
    """Error in the view cache (addressing, shapes, fetch bookkeeping)."""


class ViewShapeMismatch(CacheError):
    """A view's runtime data does not match the adapter resolved for its key.

    Raised by shape adapters; the fan-out loop catches it per view so one
    malformed view never aborts the update of the others.
    """

    def __init__(self, view: str, expected: str, actual: str) -> None:
        self.view = view
        self.expected = expected
        self.actual = actual
        super().__init__(f"view {view}: expected {expected} data, got {actual}")


class TransportError(TabbyError):
    """A server call failed (network failure or error response)."""


class SyncError(TabbyError):
    """Error in the synchronization engine (snapshots, mutations)."""


class NoSnapshotAvailable(SyncError):
    """No cached copy of the entity existed when the mutation started."""

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"no cached copy of {entity_id!r} to snapshot")


class MutationFailed(SyncError):
    """A mutation's server call failed after the cache was corrected.

    Attributes:
        mutation: Name of the mutation trigger (e.g. ``"favourite"``).
        entity_id: Id the mutation targeted.
        rolled_back: True if a snapshot was restored across all views.

    """

    def __init__(self, mutation: str, entity_id: str, *, rolled_back: bool) -> None:
        self.mutation = mutation
        self.entity_id = entity_id
        self.rolled_back = rolled_back
        super().__init__(f"{mutation}({entity_id}) failed")
