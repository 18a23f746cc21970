"""Optimistic deltas — pure status transforms applied before the server answers.

Each delta is idempotent with respect to its flag: favouriting an already
favourited status returns the same object, so a double tap never counts
twice.  Counters are clamped to a floor of zero.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tabby._types import StatusTransform
    from tabby.models import Status


def clamp(count: int) -> int:
    """Counters never go below zero."""
    return max(0, count)


def _toggle(flag: str, counter: str | None, on: bool) -> StatusTransform:
    step = 1 if on else -1

    def delta(status: Status) -> Status:
        if getattr(status, flag) is on:
            return status
        changes: dict[str, object] = {flag: on}
        if counter is not None:
            changes[counter] = clamp(getattr(status, counter) + step)
        return replace(status, **changes)

    delta.__name__ = f"{'set' if on else 'clear'}_{flag}"
    return delta


favourite = _toggle("favourited", "favourites_count", True)
unfavourite = _toggle("favourited", "favourites_count", False)
reblog = _toggle("reblogged", "reblogs_count", True)
unreblog = _toggle("reblogged", "reblogs_count", False)
bookmark = _toggle("bookmarked", None, True)
unbookmark = _toggle("bookmarked", None, False)
pin = _toggle("pinned", None, True)
unpin = _toggle("pinned", None, False)
mute = _toggle("muted", None, True)
unmute = _toggle("muted", None, False)


def replace_with(entity: Status) -> StatusTransform:
    """Full replace: every copy becomes ``entity`` (equal copies are kept)."""

    def delta(status: Status) -> Status:
        return status if status == entity else entity

    return delta
