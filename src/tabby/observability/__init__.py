"""Sync observability — one event model for the whole engine.

Records events from:
- **Mutation coordinator**: start, settle, missing snapshots, phase timing
- **View cache**: fan-out passes, invalidations, cancellations, skipped views
- **Live router**: streaming frames routed into the cache

All events are frozen dataclasses with nanosecond timestamps.

Quick Start:
    >>> from tabby.observability import SyncCollector, EventLog
    >>> log = EventLog()
    >>> collector = SyncCollector(log)
    >>> # Pass collector to SyncServices; query log afterwards
    >>> log.query(event_type=MutationSettled)

"""

from tabby.observability.collector import SyncCollector
from tabby.observability.events import (
    FetchesCancelled,
    LiveUpdateApplied,
    MutationProfile,
    MutationSettled,
    MutationStarted,
    SnapshotMissing,
    SyncEvent,
    ViewSkipped,
    ViewsInvalidated,
    ViewsPatched,
    now_ns,
)
from tabby.observability.log import EventLog
from tabby.observability.profiler import MutationProfiler, compute_aggregate_stats

__all__ = [
    "EventLog",
    "FetchesCancelled",
    "LiveUpdateApplied",
    "MutationProfile",
    "MutationProfiler",
    "MutationSettled",
    "MutationStarted",
    "SnapshotMissing",
    "SyncCollector",
    "SyncEvent",
    "ViewSkipped",
    "ViewsInvalidated",
    "ViewsPatched",
    "compute_aggregate_stats",
    "now_ns",
]
