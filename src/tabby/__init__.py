"""Tabby — view-consistent optimistic cache sync for Mastodon-style clients.

A client caches the same post in many independently fetched views: timelines,
bookmarks, threads, search tabs, profile pages.  Tabby applies a user action
to every copy at once, before the server answers, then heals every copy with
the server's version (or rolls every copy back if the call fails).

Quick start::

    import tabby

    services = tabby.SyncServices.create(transport)
    coordinator = tabby.MutationCoordinator(services)

    services.cache.set(tabby.keys.home(), page)
    await coordinator.favourite("42")

Layers:

    tabby.cache          View keys, shape adapters, the view cache
    tabby.sync           Propagators, mutation coordinator, live updates
    tabby.observability  Event log, collector, mutation profiler

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0-dev"
__all__ = [
    "LiveUpdateRouter",
    "MutationCoordinator",
    "Session",
    "SyncServices",
    "TabbyConfig",
    "ViewCache",
    "__version__",
    "keys",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import tabby`` fast while providing a flat top-level API.
    """
    if name == "TabbyConfig":
        from tabby.config import TabbyConfig

        return TabbyConfig

    if name == "load_config":
        from tabby.config_loader import load_config

        return load_config

    if name == "ViewCache":
        from tabby.cache.store import ViewCache

        return ViewCache

    if name == "keys":
        from tabby.cache import keys

        return keys

    if name == "Session":
        from tabby.services import Session

        return Session

    if name == "SyncServices":
        from tabby.services import SyncServices

        return SyncServices

    if name == "MutationCoordinator":
        from tabby.sync.coordinator import MutationCoordinator

        return MutationCoordinator

    if name == "LiveUpdateRouter":
        from tabby.sync.live import LiveUpdateRouter

        return LiveUpdateRouter

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
