"""Event log for the sync engine.

Keeps the most recent ``SyncEvent`` records (mutation lifecycle, fan-out
passes, cancellations, live frames) so a client can ask what happened to
an entity or a trigger and how often optimistic writes had to be undone.

Thread Safety:
    Every method takes ``threading.Lock``.  Transports may record from
    worker threads while the event loop reads.

"""

import threading
from collections import Counter, deque
from collections.abc import Sequence
from typing import Any

from tabby.observability.events import (
    FetchesCancelled,
    LiveUpdateApplied,
    MutationSettled,
    MutationStarted,
    SnapshotMissing,
    SyncEvent,
    ViewsInvalidated,
    ViewsPatched,
)


class EventLog:
    """Ring buffer of sync events, newest kept.

    Args:
        max_events: Capacity; ``TabbyConfig.max_events`` in practice.  Older
            events fall off once it is reached.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[SyncEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: SyncEvent) -> None:
        """Record an event in the log."""
        with self._lock:
            self._events.append(event)

    def append_many(self, events: Sequence[SyncEvent]) -> None:
        """Record multiple events at once."""
        with self._lock:
            self._events.extend(events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        entity_id: str | None = None,
        mutation: str | None = None,
        category: str | None = None,
        limit: int = 100,
    ) -> list[SyncEvent]:
        """Query events with optional filters.

        Args:
            event_type: Only return events of this type.
            since_ns: Only return events after this timestamp (nanoseconds).
            entity_id: Only return events targeting this entity (exact match).
            mutation: Only return events of this mutation trigger.
            category: Only return events about views of this category.
            limit: Maximum number of events to return.

        Returns:
            List of matching events, most recent first.

        """
        with self._lock:
            results: list[SyncEvent] = []
            for event in reversed(self._events):
                if len(results) >= limit:
                    break

                if event_type is not None and not isinstance(event, event_type):
                    continue

                ts = getattr(event, "timestamp_ns", 0)
                if since_ns and ts < since_ns:
                    continue

                if entity_id is not None and getattr(event, "entity_id", None) != entity_id:
                    continue

                if mutation is not None and getattr(event, "mutation", None) != mutation:
                    continue

                if category is not None and getattr(event, "category", None) != category:
                    continue

                results.append(event)

            return results

    def recent(self, n: int = 20) -> list[SyncEvent]:
        """The last ``n`` events, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def clear(self) -> int:
        """Drop every event.  Returns how many there were."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Summarize the retained events.

        Returns:
            ``total`` and ``max_events``; ``by_type`` (event class name ->
            count); ``mutations`` (trigger -> invocations); ``outcomes``
            (settle outcome -> count); ``rolled_back`` (trigger -> rollbacks);
            ``views_changed``/``views_skipped`` summed over fan-out passes;
            ``cancelled_fetches`` and ``invalidated_views`` summed; ``live``
            (``applied``/``ignored`` frame counts); ``snapshots_missing``.

        """
        with self._lock:
            events = list(self._events)

        by_type: Counter[str] = Counter()
        mutations: Counter[str] = Counter()
        outcomes: Counter[str] = Counter()
        rolled_back: Counter[str] = Counter()
        live: Counter[str] = Counter({"applied": 0, "ignored": 0})
        views_changed = views_skipped = cancelled = invalidated = missing = 0

        for event in events:
            by_type[type(event).__name__] += 1
            if isinstance(event, MutationStarted):
                mutations[event.mutation] += 1
            elif isinstance(event, MutationSettled):
                outcomes[event.outcome] += 1
                if event.outcome == "rolled_back":
                    rolled_back[event.mutation] += 1
            elif isinstance(event, ViewsPatched):
                views_changed += event.views_changed
                views_skipped += event.views_skipped
            elif isinstance(event, FetchesCancelled):
                cancelled += event.count
            elif isinstance(event, ViewsInvalidated):
                invalidated += event.count
            elif isinstance(event, LiveUpdateApplied):
                live["applied" if event.applied else "ignored"] += 1
            elif isinstance(event, SnapshotMissing):
                missing += 1

        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": dict(by_type),
            "mutations": dict(mutations),
            "outcomes": dict(outcomes),
            "rolled_back": dict(rolled_back),
            "views_changed": views_changed,
            "views_skipped": views_skipped,
            "cancelled_fetches": cancelled,
            "invalidated_views": invalidated,
            "live": dict(live),
            "snapshots_missing": missing,
        }
