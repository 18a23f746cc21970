"""Mutation profiler — per-phase latency of one mutation.

A fresh ``MutationProfiler`` is created per invocation (mutations run
concurrently, so profilers are never shared) and emits a ``MutationProfile``
event through the collector on ``finish()``.

"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tabby.observability.events import MutationProfile

if TYPE_CHECKING:
    from tabby.observability.collector import SyncCollector
    from tabby.observability.log import EventLog

PHASES = ("cancel", "snapshot", "optimistic", "server", "settle")


@dataclass(slots=True)
class _Timer:
    """Accumulates timing for a named mutation phase."""

    name: str
    _start: float = 0.0
    elapsed_ms: float = 0.0

    def start(self) -> None:
        self._start = time.perf_counter()

    def stop(self) -> None:
        if self._start > 0:
            self.elapsed_ms += (time.perf_counter() - self._start) * 1000
            self._start = 0.0


class MutationProfiler:
    """Records per-phase timing for a single mutation.

    Usage::

        profiler = MutationProfiler(collector, "favourite", "42")
        profiler.start("cancel")
        # ... cancel in-flight fetches ...
        profiler.stop("cancel")
        profiler.finish()

    Unknown phase names are ignored.

    """

    __slots__ = ("_collector", "_entity_id", "_mutation", "_t0", "_timers")

    def __init__(self, collector: SyncCollector, mutation: str, entity_id: str) -> None:
        self._collector = collector
        self._mutation = mutation
        self._entity_id = entity_id
        self._t0 = time.perf_counter()
        self._timers = {name: _Timer(name=name) for name in PHASES}

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000

    def start(self, phase: str) -> None:
        timer = self._timers.get(phase)
        if timer is not None:
            timer.start()

    def stop(self, phase: str) -> None:
        timer = self._timers.get(phase)
        if timer is not None:
            timer.stop()

    def finish(self) -> float:
        """Emit the ``MutationProfile`` event and return the total in ms."""
        total_ms = self.elapsed_ms
        self._collector.record_profile(
            self._mutation,
            self._entity_id,
            cancel_ms=self._timers["cancel"].elapsed_ms,
            snapshot_ms=self._timers["snapshot"].elapsed_ms,
            optimistic_ms=self._timers["optimistic"].elapsed_ms,
            server_ms=self._timers["server"].elapsed_ms,
            settle_ms=self._timers["settle"].elapsed_ms,
            total_ms=total_ms,
        )
        if self._collector.verbose:
            print(
                f"  [{total_ms:.0f}ms] {self._mutation}({self._entity_id}) "
                f"server: {self._timers['server'].elapsed_ms:.0f}ms",
                file=sys.stderr,
            )
        return total_ms


def compute_aggregate_stats(log: EventLog, *, limit: int = 100) -> dict[str, Any]:
    """Aggregate latency statistics from recent ``MutationProfile`` events.

    Returns a dict with p50/p95/p99 totals and per-phase averages.

    """
    profiles = log.query(event_type=MutationProfile, limit=limit)
    if not profiles:
        return {"count": 0}

    totals = sorted(p.total_ms for p in profiles)
    count = len(totals)

    def percentile(data: list[float], pct: float) -> float:
        idx = int(len(data) * pct / 100)
        return data[min(idx, len(data) - 1)]

    return {
        "count": count,
        "total_ms": {
            "p50": round(percentile(totals, 50), 1),
            "p95": round(percentile(totals, 95), 1),
            "p99": round(percentile(totals, 99), 1),
            "min": round(totals[0], 1),
            "max": round(totals[-1], 1),
        },
        "avg_by_phase_ms": {
            phase: round(sum(getattr(p, f"{phase}_ms") for p in profiles) / count, 1)
            for phase in PHASES
        },
    }
