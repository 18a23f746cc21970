"""Tabby configuration.

TabbyConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass

from tabby._errors import ConfigError

_TIMELINE_KINDS = frozenset({"home", "public", "hashtag", "list"})


@dataclass(frozen=True, slots=True)
class TabbyConfig:
    """Configuration for a sync engine instance.

    Attributes:
        max_events: Ring-buffer size of the event log.
        verbose: Print settle summaries and skipped views to stderr.
        invalidate_on_vote_error: After a failed poll vote, mark status list
            views stale.  No pre-vote snapshot exists, so this is the only
            recovery path.
        invalidate_contexts_on_delete: After a delete, mark every thread
            context stale.  A deleted status may sit in any number of threads.
        live_prepend_limit: Cap on the first page's length after a live
            prepend (0 = unlimited).
        live_timelines: Timeline kinds (``home``, ``public``, ``hashtag``,
            ``list``) that receive streamed ``update`` events.

    """

    max_events: int = 10_000
    verbose: bool = False
    invalidate_on_vote_error: bool = True
    invalidate_contexts_on_delete: bool = True
    live_prepend_limit: int = 0
    live_timelines: tuple[str, ...] = ("home",)

    def __post_init__(self) -> None:
        if self.max_events < 1:
            msg = f"max_events must be positive, got {self.max_events}"
            raise ConfigError(msg)
        if self.live_prepend_limit < 0:
            msg = f"live_prepend_limit must be >= 0, got {self.live_prepend_limit}"
            raise ConfigError(msg)
        if not isinstance(self.live_timelines, tuple):
            object.__setattr__(self, "live_timelines", tuple(self.live_timelines))
        unknown = set(self.live_timelines) - _TIMELINE_KINDS
        if unknown:
            msg = f"unknown live_timelines: {', '.join(sorted(unknown))}"
            raise ConfigError(msg)
