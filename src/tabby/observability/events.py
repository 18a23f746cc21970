"""Unified event model for sync observability.

Defines event types for the mutation lifecycle, view fan-out, and live
updates.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Mutation lifecycle events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MutationStarted:
    """A mutation trigger was invoked.

    Attributes:
        mutation: Trigger name (e.g. ``"favourite"``).
        entity_id: Id the mutation targets.
        optimistic: True if the mutation applies a local delta before the call.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    mutation: str
    entity_id: str
    optimistic: bool
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class MutationSettled:
    """A mutation's server call resolved and the corrective step ran.

    Attributes:
        mutation: Trigger name.
        entity_id: Id the mutation targeted.
        outcome: ``success``; ``rolled_back`` (snapshot restored);
            ``invalidated`` (refetch-based recovery); ``failed`` (no recovery
            was possible, e.g. no snapshot).
        duration_ms: Time from invocation to settle.
        error: ``repr`` of the transport error, empty on success.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    mutation: str
    entity_id: str
    outcome: Literal["success", "rolled_back", "invalidated", "failed"]
    duration_ms: float
    error: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class SnapshotMissing:
    """No cached copy existed when a reversible mutation started."""

    mutation: str
    entity_id: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# View cache events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ViewsPatched:
    """A fan-out pass finished.

    Attributes:
        operation: What the pass did (``transform``, ``replace``, ``poll``,
            ``remove``, ``live``, ...).
        entity_id: Entity the pass targeted.
        views_matched: Views the predicate selected.
        views_changed: Views whose data actually changed.
        views_skipped: Views skipped because their update raised.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    operation: str
    entity_id: str
    views_matched: int
    views_changed: int
    views_skipped: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ViewsInvalidated:
    """Views were marked stale (refetch on next read)."""

    reason: str
    count: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class FetchesCancelled:
    """In-flight fetches stopped being trusted before an optimistic write."""

    reason: str
    count: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ViewSkipped:
    """One view could not be updated; the rest of the fan-out continued.

    Attributes:
        view: String form of the view key.
        category: View category.
        reason: Error message.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    view: str
    category: str
    reason: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Live updates
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LiveUpdateApplied:
    """A streaming frame was routed into the cache (or ignored)."""

    event: str
    entity_id: str
    applied: bool
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Profiling
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MutationProfile:
    """Per-phase timing for one mutation.

    Attributes:
        mutation: Trigger name.
        entity_id: Id the mutation targeted.
        cancel_ms: Time spent cancelling in-flight fetches.
        snapshot_ms: Time spent locating the snapshot.
        optimistic_ms: Time spent on the optimistic fan-out.
        server_ms: Time awaiting the transport.
        settle_ms: Time spent on the corrective fan-out.
        total_ms: End-to-end time.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    mutation: str
    entity_id: str
    cancel_ms: float
    snapshot_ms: float
    optimistic_ms: float
    server_ms: float
    settle_ms: float
    total_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type SyncEvent = (
    MutationStarted
    | MutationSettled
    | SnapshotMissing
    | ViewsPatched
    | ViewsInvalidated
    | FetchesCancelled
    | ViewSkipped
    | LiveUpdateApplied
    | MutationProfile
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
