"""Shared test fixtures for tabby."""

from __future__ import annotations

from typing import Any

import pytest

from tabby._errors import ViewShapeMismatch
from tabby.cache import keys
from tabby.cache.shapes import Page, PaginatedData
from tabby.cache.store import ViewCache
from tabby.models import Account, Poll, PollOption, Status
from tabby.services import Session, SyncServices
from tabby.sync.coordinator import MutationCoordinator
from tabby.transport import ScriptedTransport

ALICE = Account(id="a1", acct="alice", username="alice")
BOB = Account(id="b1", acct="bob", username="bob")


def make_status(status_id: str, **fields: Any) -> Status:
    """Build a status with sensible defaults."""
    fields.setdefault("account", ALICE)
    fields.setdefault("content", f"<p>post {status_id}</p>")
    return Status(id=status_id, **fields)


def reblog_of(wrapper_id: str, inner: Status, **fields: Any) -> Status:
    """Build a reblog wrapper around ``inner``."""
    fields.setdefault("account", BOB)
    return Status(id=wrapper_id, reblog=inner, **fields)


def make_poll(poll_id: str = "p1", *, votes: tuple[int, ...] = (0, 0), voted: bool = False) -> Poll:
    return Poll(
        id=poll_id,
        options=tuple(PollOption(title=f"option {i}", votes_count=n) for i, n in enumerate(votes)),
        votes_count=sum(votes),
        voted=voted,
    )


def paginated(*items: Any) -> PaginatedData:
    """One ``Page`` holding ``items``."""
    return PaginatedData(pages=(Page(items=tuple(items)),), page_params=(None,))


def bare_pages(*pages: tuple[Any, ...]) -> PaginatedData:
    """Pages in the legacy bare-array form."""
    return PaginatedData(pages=tuple(pages), page_params=tuple(None for _ in pages))


def copies(cache: ViewCache, status_id: str) -> list[Status]:
    """Every cached copy of ``status_id``, unwrapped from reblogs."""
    found: list[Status] = []
    for entry in cache.entries(keys.is_status_surface):
        try:
            for status in entry.adapter.iter_statuses(entry.key, entry.data):
                if status.id == status_id:
                    found.append(status)
                elif status.reblog is not None and status.reblog.id == status_id:
                    found.append(status.reblog)
        except ViewShapeMismatch:
            continue
    return found


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def services(transport: ScriptedTransport) -> SyncServices:
    return SyncServices.create(transport, session=Session(account_id="me"))


@pytest.fixture
def cache(services: SyncServices) -> ViewCache:
    return services.cache


@pytest.fixture
def coordinator(services: SyncServices) -> MutationCoordinator:
    return MutationCoordinator(services)
