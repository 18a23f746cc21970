"""Server entities held in the cache.

All entities are frozen dataclasses. Updates never mutate in place: a
transform returns a new object via ``dataclasses.replace`` so that views
holding the old object can detect "unchanged" by identity.

``from_dict`` constructors accept the Mastodon REST/streaming JSON shape and
ignore fields tabby does not track.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Literal


def _tuple_of(cls: Any, items: Any) -> tuple[Any, ...]:
    return tuple(cls.from_dict(item) for item in items or ())


@dataclass(frozen=True, slots=True)
class Account:
    """Minimal account reference embedded in statuses and requests."""

    id: str
    acct: str = ""
    username: str = ""
    display_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Account:
        return cls(
            id=str(data["id"]),
            acct=data.get("acct", ""),
            username=data.get("username", ""),
            display_name=data.get("display_name", ""),
        )


@dataclass(frozen=True, slots=True)
class PollOption:
    title: str
    votes_count: int | None = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PollOption:
        return cls(title=data["title"], votes_count=data.get("votes_count"))


@dataclass(frozen=True, slots=True)
class Poll:
    """A poll attached to a status.

    Vote percentages depend on server-side aggregation, which is why votes
    are never applied optimistically: the poll is replaced wholesale with the
    server's copy once the vote lands.

    """

    id: str
    options: tuple[PollOption, ...] = ()
    votes_count: int = 0
    voters_count: int | None = None
    multiple: bool = False
    voted: bool = False
    expired: bool = False
    own_votes: tuple[int, ...] = ()
    expires_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Poll:
        return cls(
            id=str(data["id"]),
            options=_tuple_of(PollOption, data.get("options")),
            votes_count=data.get("votes_count", 0),
            voters_count=data.get("voters_count"),
            multiple=data.get("multiple", False),
            voted=data.get("voted", False),
            expired=data.get("expired", False),
            own_votes=tuple(data.get("own_votes") or ()),
            expires_at=data.get("expires_at"),
        )


@dataclass(frozen=True, slots=True)
class Status:
    """A post. When ``reblog`` is set this status is a reblog wrapper and
    every user action targets the inner status."""

    id: str
    account: Account | None = None
    content: str = ""
    created_at: str = ""
    visibility: Literal["public", "unlisted", "private", "direct"] = "public"
    in_reply_to_id: str | None = None
    reblog: Status | None = None
    poll: Poll | None = None
    favourites_count: int = 0
    reblogs_count: int = 0
    replies_count: int = 0
    favourited: bool = False
    reblogged: bool = False
    bookmarked: bool = False
    muted: bool = False
    pinned: bool = False

    @property
    def target(self) -> Status:
        """The status user actions apply to (inner status for a reblog)."""
        return self.reblog if self.reblog is not None else self

    def matches(self, entity_id: str) -> bool:
        """True if this status is ``entity_id`` or wraps it as a reblog."""
        return self.id == entity_id or (
            self.reblog is not None and self.reblog.id == entity_id
        )

    def with_reblog(self, inner: Status) -> Status:
        """Return this wrapper pointing at ``inner`` (self if unchanged)."""
        if inner is self.reblog:
            return self
        return replace(self, reblog=inner)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Status:
        account = data.get("account")
        reblog = data.get("reblog")
        poll = data.get("poll")
        return cls(
            id=str(data["id"]),
            account=Account.from_dict(account) if account else None,
            content=data.get("content", ""),
            created_at=data.get("created_at", ""),
            visibility=data.get("visibility", "public"),
            in_reply_to_id=data.get("in_reply_to_id"),
            reblog=cls.from_dict(reblog) if reblog else None,
            poll=Poll.from_dict(poll) if poll else None,
            favourites_count=data.get("favourites_count", 0),
            reblogs_count=data.get("reblogs_count", 0),
            replies_count=data.get("replies_count", 0),
            favourited=data.get("favourited", False),
            reblogged=data.get("reblogged", False),
            bookmarked=data.get("bookmarked", False),
            muted=data.get("muted", False),
            pinned=data.get("pinned", False),
        )


@dataclass(frozen=True, slots=True)
class Conversation:
    """A direct-message conversation."""

    id: str
    unread: bool = False
    accounts: tuple[Account, ...] = ()
    last_status: Status | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Conversation:
        last = data.get("last_status")
        return cls(
            id=str(data["id"]),
            unread=data.get("unread", False),
            accounts=_tuple_of(Account, data.get("accounts")),
            last_status=Status.from_dict(last) if last else None,
        )


@dataclass(frozen=True, slots=True)
class NotificationRequest:
    """A filtered-notifications request awaiting accept/dismiss."""

    id: str
    account: Account | None = None
    notifications_count: int = 0
    last_status: Status | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NotificationRequest:
        account = data.get("account")
        last = data.get("last_status")
        return cls(
            id=str(data["id"]),
            account=Account.from_dict(account) if account else None,
            notifications_count=data.get("notifications_count", 0),
            last_status=Status.from_dict(last) if last else None,
        )


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    type: str = "mention"
    account: Account | None = None
    status: Status | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Notification:
        account = data.get("account")
        status = data.get("status")
        return cls(
            id=str(data["id"]),
            type=data.get("type", "mention"),
            account=Account.from_dict(account) if account else None,
            status=Status.from_dict(status) if status else None,
        )


@dataclass(frozen=True, slots=True)
class Relationship:
    """The signed-in user's relationship to one account."""

    id: str
    following: bool = False
    followed_by: bool = False
    requested: bool = False
    blocking: bool = False
    muting: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Relationship:
        return cls(
            id=str(data["id"]),
            following=data.get("following", False),
            followed_by=data.get("followed_by", False),
            requested=data.get("requested", False),
            blocking=data.get("blocking", False),
            muting=data.get("muting", False),
        )


# ---------------------------------------------------------------------------
# Composite singletons
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StatusContext:
    """Thread context of a status: ancestors and descendants, patched
    independently during fan-out."""

    ancestors: tuple[Status, ...] = ()
    descendants: tuple[Status, ...] = ()

    status_fields: ClassVar[tuple[str, ...]] = ("ancestors", "descendants")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusContext:
        return cls(
            ancestors=_tuple_of(Status, data.get("ancestors")),
            descendants=_tuple_of(Status, data.get("descendants")),
        )


@dataclass(frozen=True, slots=True)
class SearchResults:
    """Non-infinite "all" search tab: three flat sub-lists."""

    accounts: tuple[Account, ...] = ()
    statuses: tuple[Status, ...] = ()
    hashtags: tuple[str, ...] = field(default=())

    status_fields: ClassVar[tuple[str, ...]] = ("statuses",)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchResults:
        return cls(
            accounts=_tuple_of(Account, data.get("accounts")),
            statuses=_tuple_of(Status, data.get("statuses")),
            hashtags=tuple(
                tag["name"] if isinstance(tag, dict) else str(tag)
                for tag in data.get("hashtags") or ()
            ),
        )
