"""Injected collaborators.

Everything the engine needs from the outside world (transport, the signed-in
session, configuration, observability, the cache itself) travels in one
``SyncServices`` bundle passed to the coordinator and the live router, so
an engine instance can be built and tested in isolation.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tabby.cache.store import ViewCache
from tabby.config import TabbyConfig
from tabby.observability.collector import SyncCollector
from tabby.transport import Transport


@dataclass(frozen=True, slots=True)
class Session:
    """The signed-in user, as far as cache maintenance needs to know.

    Attributes:
        account_id: Id of the signed-in account, or None when signed out.

    """

    account_id: str | None = None


@dataclass(frozen=True, slots=True)
class SyncServices:
    """Collaborators shared by one engine instance."""

    cache: ViewCache
    transport: Transport
    config: TabbyConfig = field(default_factory=TabbyConfig)
    collector: SyncCollector = field(default_factory=SyncCollector)
    session: Session = field(default_factory=Session)

    @classmethod
    def create(
        cls,
        transport: Transport,
        *,
        config: TabbyConfig | None = None,
        session: Session | None = None,
        cache: ViewCache | None = None,
    ) -> SyncServices:
        """Build a services bundle whose cache and collector share one config."""
        config = config or TabbyConfig()
        collector = SyncCollector.from_config(config)
        return cls(
            cache=cache if cache is not None else ViewCache(collector),
            transport=transport,
            config=config,
            collector=collector,
            session=session or Session(),
        )
