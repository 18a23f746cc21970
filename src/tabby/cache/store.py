"""View cache — named views, fan-out, staleness, and fetch cancellation.

The cache is the only place view data lives.  Every writer (mutations, live
updates, fetch results) goes through it, and multi-view writes go through
``for_each_view`` so that a single primitive decides what counts as
"changed", isolates failures per view, and notifies subscribers.

Cancellation model:
    Each view key carries a generation counter.  ``begin_fetch`` captures the
    current generation in a ``FetchTicket``; ``cancel`` bumps the generation
    of matching keys; ``complete_fetch`` discards results whose ticket is out
    of date.  Nothing aborts the request itself: a cancelled fetch simply
    stops being trusted.

Single-threaded by contract: reads and writes are synchronous and run on the
event loop thread.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from tabby._errors import ViewShapeMismatch
from tabby.cache.keys import ViewKey, ViewShape, shape_for
from tabby.cache.shapes import ShapeAdapter, adapter_for
from tabby.observability.events import now_ns

if TYPE_CHECKING:
    from tabby._types import KeyPredicate, Loader, Updater
    from tabby.observability.collector import SyncCollector

type ChangeKind = Literal["set", "updated", "invalidated", "removed"]
type Listener = Callable[[ViewKey, ChangeKind], None]


@dataclass(slots=True)
class ViewEntry:
    """One cached view.

    Attributes:
        key: The view's address.
        shape: Physical shape, resolved once from the key.
        data: Current contents (shape-specific).
        stale: True once invalidated; the next ``ensure`` refetches.
        updated_ns: Monotonic timestamp of the last write.

    """

    key: ViewKey
    shape: ViewShape
    data: Any = None
    stale: bool = False
    updated_ns: int = 0

    @property
    def adapter(self) -> ShapeAdapter:
        return adapter_for(self.shape)


@dataclass(frozen=True, slots=True)
class FetchTicket:
    """Proof of which generation a fetch was started under."""

    key: ViewKey
    generation: int


@dataclass(frozen=True, slots=True)
class FanOutResult:
    """Outcome of one ``for_each_view`` pass."""

    matched: int = 0
    changed: int = 0
    skipped: int = 0


class ViewCache:
    """Denormalized client cache of independently fetched views.

    Args:
        collector: Optional collector for skip/invalidate/cancel events.

    """

    def __init__(self, collector: SyncCollector | None = None) -> None:
        self._views: dict[ViewKey, ViewEntry] = {}
        self._generations: dict[ViewKey, int] = {}
        self._inflight: dict[ViewKey, int] = {}
        self._listeners: list[Listener] = []
        self._collector = collector

    # ----- Addressing -----

    def __len__(self) -> int:
        return len(self._views)

    def __contains__(self, key: object) -> bool:
        return key in self._views

    def keys(self, predicate: KeyPredicate | None = None) -> list[ViewKey]:
        """Keys of cached views, optionally filtered."""
        return [k for k in self._views if predicate is None or predicate(k)]

    def entries(self, predicate: KeyPredicate | None = None) -> Iterator[ViewEntry]:
        """Iterate over a snapshot of matching entries."""
        for entry in list(self._views.values()):
            if predicate is None or predicate(entry.key):
                yield entry

    def entry(self, key: ViewKey) -> ViewEntry | None:
        return self._views.get(key)

    def get(self, key: ViewKey) -> Any:
        """Current data of a view, or None if the view does not exist."""
        entry = self._views.get(key)
        return entry.data if entry is not None else None

    def is_stale(self, key: ViewKey) -> bool:
        entry = self._views.get(key)
        return entry is not None and entry.stale

    # ----- Writes -----

    def set(self, key: ViewKey, data: Any) -> None:
        """Store ``data`` under ``key``, creating the view on first write."""
        entry = self._views.get(key)
        if entry is None:
            entry = ViewEntry(key=key, shape=shape_for(key))
            self._views[key] = entry
        entry.data = data
        entry.stale = False
        entry.updated_ns = now_ns()
        self._notify(key, "set")

    def remove(self, key: ViewKey) -> bool:
        """Drop a view.  Returns True if it existed."""
        if self._views.pop(key, None) is None:
            return False
        self._prune(key)
        self._notify(key, "removed")
        return True

    def for_each_view(
        self,
        predicate: KeyPredicate,
        updater: Updater,
    ) -> FanOutResult:
        """Replace the data of every matching view with ``updater(entry)``.

        The updater must be pure.  Returning ``entry.data`` itself means
        "unchanged": the view is not written and subscribers are not notified.
        A view whose update raises is skipped and recorded; the loop always
        continues with the remaining views.

        """
        matched = changed = skipped = 0
        for entry in self.entries(predicate):
            matched += 1
            try:
                new_data = updater(entry)
            except ViewShapeMismatch as exc:
                skipped += 1
                self._record_skip(entry.key, str(exc))
                continue
            except Exception as exc:
                skipped += 1
                self._record_skip(entry.key, f"{type(exc).__name__}: {exc}")
                continue
            if new_data is entry.data:
                continue
            entry.data = new_data
            entry.updated_ns = now_ns()
            changed += 1
            self._notify(entry.key, "updated")
        return FanOutResult(matched=matched, changed=changed, skipped=skipped)

    def invalidate(self, predicate: KeyPredicate, *, reason: str = "invalidate") -> int:
        """Mark matching views stale.  Data is kept until the refetch lands."""
        count = 0
        for entry in self.entries(predicate):
            entry.stale = True
            count += 1
            self._notify(entry.key, "invalidated")
        if self._collector is not None and count:
            self._collector.record_invalidated(reason, count)
        return count

    # ----- Fetch bookkeeping -----

    def cancel(self, predicate: KeyPredicate, *, reason: str = "cancel") -> int:
        """Stop trusting in-flight fetches of matching views.

        Bumps the generation of every matching key, cached or merely in
        flight.  Returns the number of in-flight fetches invalidated.

        """
        keys = {k for k in self._views if predicate(k)}
        keys.update(k for k in self._inflight if predicate(k))
        cancelled = 0
        for key in keys:
            self._generations[key] = self._generations.get(key, 0) + 1
            cancelled += self._inflight.get(key, 0)
        if self._collector is not None and cancelled:
            self._collector.record_cancelled(reason, cancelled)
        return cancelled

    def begin_fetch(self, key: ViewKey) -> FetchTicket:
        self._inflight[key] = self._inflight.get(key, 0) + 1
        return FetchTicket(key=key, generation=self._generations.get(key, 0))

    def complete_fetch(self, ticket: FetchTicket, data: Any) -> bool:
        """Store a fetch result unless its ticket was cancelled.

        Returns True if the result was stored.

        """
        self._release(ticket)
        if self._generations.get(ticket.key, 0) != ticket.generation:
            self._prune(ticket.key)
            return False
        self.set(ticket.key, data)
        return True

    def abandon_fetch(self, ticket: FetchTicket) -> None:
        """Release a ticket whose fetch failed."""
        self._release(ticket)
        self._prune(ticket.key)

    async def fetch(self, key: ViewKey, loader: Loader) -> Any:
        """Load ``key`` through ``loader`` and store it if still trusted.

        Returns the view's data after the fetch settles: the fresh result, or
        whatever the cache holds if the result was discarded.

        """
        ticket = self.begin_fetch(key)
        try:
            data = await loader()
        except BaseException:
            self.abandon_fetch(ticket)
            raise
        self.complete_fetch(ticket, data)
        return self.get(key)

    async def ensure(self, key: ViewKey, loader: Loader) -> Any:
        """Return cached data, refetching when the view is missing or stale."""
        entry = self._views.get(key)
        if entry is not None and not entry.stale:
            return entry.data
        return await self.fetch(key, loader)

    def pending_fetches(self, key: ViewKey) -> int:
        return self._inflight.get(key, 0)

    # ----- Subscriptions -----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener.  Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, key: ViewKey, kind: ChangeKind) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, kind)
            except Exception as exc:
                print(f"  Cache listener error ({key}): {exc}", file=sys.stderr)

    def _release(self, ticket: FetchTicket) -> None:
        remaining = self._inflight.get(ticket.key, 0) - 1
        if remaining > 0:
            self._inflight[ticket.key] = remaining
        else:
            self._inflight.pop(ticket.key, None)

    def _prune(self, key: ViewKey) -> None:
        # A counter is only needed while the view exists or a fetch is out.
        if key not in self._views and key not in self._inflight:
            self._generations.pop(key, None)

    def _record_skip(self, key: ViewKey, reason: str) -> None:
        if self._collector is not None:
            self._collector.record_skipped(str(key), key.category, reason)
        else:
            print(f"  Skipped view {key}: {reason}", file=sys.stderr)
