"""Sync collector — the single recording surface for engine events.

The cache, propagators, coordinator, and live router all record through a
``SyncCollector``; none of them touch the ``EventLog`` directly.  In verbose
mode the collector also prints one-line summaries to stderr for the events a
developer watches for (settles, skipped views).

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from tabby.observability.events import (
    FetchesCancelled,
    LiveUpdateApplied,
    MutationProfile,
    MutationSettled,
    MutationStarted,
    SnapshotMissing,
    ViewSkipped,
    ViewsInvalidated,
    ViewsPatched,
    now_ns,
)
from tabby.observability.log import EventLog

if TYPE_CHECKING:
    from tabby.config import TabbyConfig


class SyncCollector:
    """Records engine events into an ``EventLog``.

    Args:
        log: The EventLog to store events in (created if omitted).
        verbose: Print settle and skip summaries to stderr.

    """

    __slots__ = ("_log", "_verbose")

    def __init__(self, log: EventLog | None = None, *, verbose: bool = False) -> None:
        self._log = log if log is not None else EventLog()
        self._verbose = verbose

    @classmethod
    def from_config(cls, config: TabbyConfig) -> SyncCollector:
        return cls(EventLog(max_events=config.max_events), verbose=config.verbose)

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    @property
    def verbose(self) -> bool:
        return self._verbose

    # ----- Mutation lifecycle -----

    def record_started(self, mutation: str, entity_id: str, *, optimistic: bool) -> None:
        self._log.append(
            MutationStarted(
                mutation=mutation,
                entity_id=entity_id,
                optimistic=optimistic,
                timestamp_ns=now_ns(),
            )
        )

    def record_settled(
        self,
        mutation: str,
        entity_id: str,
        *,
        outcome: str,
        duration_ms: float = 0.0,
        error: BaseException | None = None,
    ) -> None:
        """Record a settle and, in verbose mode, print a summary line."""
        self._log.append(
            MutationSettled(
                mutation=mutation,
                entity_id=entity_id,
                outcome=outcome,  # type: ignore[arg-type]
                duration_ms=duration_ms,
                error=repr(error) if error is not None else "",
                timestamp_ns=now_ns(),
            )
        )
        if self._verbose:
            suffix = f" ({error})" if error is not None else ""
            print(
                f"  {mutation}({entity_id}) {outcome} in {duration_ms:.1f}ms{suffix}",
                file=sys.stderr,
            )

    def record_snapshot_missing(self, mutation: str, entity_id: str) -> None:
        self._log.append(
            SnapshotMissing(mutation=mutation, entity_id=entity_id, timestamp_ns=now_ns())
        )

    # ----- View cache -----

    def record_patched(
        self,
        operation: str,
        entity_id: str,
        *,
        matched: int = 0,
        changed: int = 0,
        skipped: int = 0,
    ) -> None:
        self._log.append(
            ViewsPatched(
                operation=operation,
                entity_id=entity_id,
                views_matched=matched,
                views_changed=changed,
                views_skipped=skipped,
                timestamp_ns=now_ns(),
            )
        )

    def record_invalidated(self, reason: str, count: int) -> None:
        self._log.append(ViewsInvalidated(reason=reason, count=count, timestamp_ns=now_ns()))

    def record_cancelled(self, reason: str, count: int) -> None:
        self._log.append(FetchesCancelled(reason=reason, count=count, timestamp_ns=now_ns()))

    def record_skipped(self, view: str, category: str, reason: str) -> None:
        """Record a view the fan-out could not update."""
        self._log.append(
            ViewSkipped(view=view, category=category, reason=reason, timestamp_ns=now_ns())
        )
        if self._verbose:
            print(f"  Skipped view {view}: {reason}", file=sys.stderr)

    # ----- Live updates -----

    def record_live(self, event: str, entity_id: str, *, applied: bool) -> None:
        self._log.append(
            LiveUpdateApplied(
                event=event, entity_id=entity_id, applied=applied, timestamp_ns=now_ns()
            )
        )

    # ----- Profiling -----

    def record_profile(
        self,
        mutation: str,
        entity_id: str,
        *,
        cancel_ms: float = 0.0,
        snapshot_ms: float = 0.0,
        optimistic_ms: float = 0.0,
        server_ms: float = 0.0,
        settle_ms: float = 0.0,
        total_ms: float = 0.0,
    ) -> None:
        self._log.append(
            MutationProfile(
                mutation=mutation,
                entity_id=entity_id,
                cancel_ms=cancel_ms,
                snapshot_ms=snapshot_ms,
                optimistic_ms=optimistic_ms,
                server_ms=server_ms,
                settle_ms=settle_ms,
                total_ms=total_ms,
                timestamp_ns=now_ns(),
            )
        )
