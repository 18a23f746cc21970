"""Mutation coordinator — the optimistic protocol and its named triggers.

Every user action is exposed as a ``Mutation`` trigger whose state the UI
renders (``IDLE → MUTATING → AWAITING_SERVER → SUCCESS | ERROR``).  The
coordinator owns what happens to the cache around the server call.

Reversible status actions (favourite, reblog, bookmark, pin, conversation
mute, and their inverses) run a five-phase protocol:

    1. cancel   Stop trusting in-flight fetches of every status view.
    2. snapshot Take the first cached copy of the status (may be absent).
    3. apply    Optimistic delta on every copy.
    4. server   Await the transport; the only suspension point.
    5. settle   Success: replace every copy with the server's entity.
                Error: replace every copy with the snapshot, if any.

Cancelling before the snapshot is a hard ordering: a fetch landing between
the two would otherwise become the "pre-mutation" state.

Irreversible actions (posting, delete, edit, poll vote, relationship and
profile changes) skip the optimistic phase and correct the cache once the
server answers.

Example::

    coordinator = MutationCoordinator(services)
    await coordinator.favourite("42")
    coordinator.trigger("favourite").state  # MutationState.SUCCESS

"""

from __future__ import annotations

import sys
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Any

from tabby._errors import MutationFailed, SyncError
from tabby.cache import keys
from tabby.models import Account, Conversation, Status
from tabby.observability.profiler import MutationProfiler
from tabby.sync import deltas
from tabby.sync.locator import EntityLocator
from tabby.sync.propagator import RemovalPropagator, TransformPropagator

if TYPE_CHECKING:
    from tabby._types import KeyPredicate, StatusTransform
    from tabby.cache.keys import ViewKey
    from tabby.models import Poll, Relationship
    from tabby.services import Session, SyncServices


class MutationState(Enum):
    IDLE = "idle"
    MUTATING = "mutating"
    AWAITING_SERVER = "awaiting_server"
    SUCCESS = "success"
    ERROR = "error"


type StateListener = Callable[[Mutation], None]


class Mutation:
    """A named trigger with observable state.

    Concurrent invocations share one trigger; its state reflects whichever
    invocation transitioned last.

    Attributes:
        name: Trigger name, also used as the mutation name in events.
        state: Current ``MutationState``.
        data: Settled value of the last successful invocation.
        error: ``MutationFailed`` of the last failed invocation.

    """

    __slots__ = ("_listeners", "_run", "data", "error", "name", "state")

    def __init__(self, name: str, run: Callable[..., Awaitable[Any]]) -> None:
        self.name = name
        self.state = MutationState.IDLE
        self.data: Any = None
        self.error: MutationFailed | None = None
        self._run = run
        self._listeners: list[StateListener] = []

    def __repr__(self) -> str:
        return f"Mutation({self.name!r}, {self.state.value})"

    @property
    def is_pending(self) -> bool:
        return self.state in (MutationState.MUTATING, MutationState.AWAITING_SERVER)

    async def invoke(self, *args: Any) -> Any:
        """Run the mutation.  Raises ``MutationFailed`` if the server call fails."""
        return await self._run(self, *args)

    __call__ = invoke

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-change listener.  Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def reset(self) -> None:
        """Return to ``IDLE`` and forget the last result."""
        self.data = None
        self.error = None
        self._transition(MutationState.IDLE)

    def _transition(self, state: MutationState) -> None:
        self.state = state
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as exc:
                print(f"  Mutation listener error ({self.name}): {exc}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Action tables
# ---------------------------------------------------------------------------


def _own_pinned(session: Session) -> KeyPredicate:
    if session.account_id is None:
        return keys.in_categories("pinned_statuses")
    own = keys.pinned_statuses(session.account_id)
    return lambda key: key == own


@dataclass(frozen=True, slots=True)
class ReversibleAction:
    """A status flag toggle with an optimistic delta.

    Attributes:
        name: Trigger name and transport method.
        delta: Optimistic transform applied to every copy.
        settle_invalidates: Views whose membership the action changes; marked
            stale once the call settles either way.

    """

    name: str
    delta: StatusTransform
    settle_invalidates: Callable[[Session], KeyPredicate] | None = None


REVERSIBLE_ACTIONS: dict[str, ReversibleAction] = {
    action.name: action
    for action in (
        ReversibleAction("favourite", deltas.favourite),
        ReversibleAction("unfavourite", deltas.unfavourite),
        ReversibleAction("reblog", deltas.reblog),
        ReversibleAction("unreblog", deltas.unreblog),
        ReversibleAction("bookmark", deltas.bookmark),
        ReversibleAction("unbookmark", deltas.unbookmark),
        ReversibleAction("pin", deltas.pin, _own_pinned),
        ReversibleAction("unpin", deltas.unpin, _own_pinned),
        ReversibleAction("mute_conversation", deltas.mute),
        ReversibleAction("unmute_conversation", deltas.unmute),
    )
}

RELATIONSHIP_ACTIONS: tuple[str, ...] = (
    "follow",
    "unfollow",
    "block",
    "unblock",
    "mute_account",
    "unmute_account",
    "authorize_follow_request",
    "reject_follow_request",
)

_FOLLOW_REQUEST_ACTIONS = frozenset({"authorize_follow_request", "reject_follow_request"})

_CONVERSATIONS = keys.in_categories("conversations")
_NOTIFICATION_REQUESTS = keys.in_categories("notification_requests")
_REQUEST_SUMMARIES = keys.in_categories("notification_policy", "notifications", "unread_count")


def _home_timelines(key: ViewKey) -> bool:
    return keys.is_timeline(key) and key.scope == ("home",)


def _mark_read(conversation: Conversation) -> Conversation:
    return replace(conversation, unread=False) if conversation.unread else conversation


def _authoritative(result: Any, status_id: str) -> Any:
    """The server answers a reblog with the new wrapper; the entity is its inner."""
    if (
        isinstance(result, Status)
        and result.id != status_id
        and result.reblog is not None
        and result.reblog.id == status_id
    ):
        return result.reblog
    return result


class MutationCoordinator:
    """Runs mutations against the transport and keeps every view consistent.

    Args:
        services: Injected collaborators (cache, transport, config, ...).

    """

    def __init__(self, services: SyncServices) -> None:
        self._services = services
        self._cache = services.cache
        self._collector = services.collector
        self.locator = EntityLocator(services.cache)
        self.transform = TransformPropagator(services.cache, services.collector)
        self.removal = RemovalPropagator(
            services.cache,
            services.collector,
            invalidate_contexts=services.config.invalidate_contexts_on_delete,
        )
        self._triggers: dict[str, Mutation] = {}

        for action in REVERSIBLE_ACTIONS.values():
            self._register(action.name, partial(self._run_reversible, action))
        for name in RELATIONSHIP_ACTIONS:
            self._register(name, self._run_relationship)
        self._register("create_status", self._run_create)
        self._register("delete", self._run_delete)
        self._register("edit", self._run_edit)
        self._register("vote", self._run_vote)
        self._register("mark_conversation_read", self._run_mark_read)
        self._register("remove_conversation", self._run_remove_conversation)
        self._register("update_account", self._run_update_account)
        self._register(
            "accept_notification_requests",
            partial(self._run_requests, "accept_notification_requests"),
        )
        self._register(
            "dismiss_notification_requests",
            partial(self._run_requests, "dismiss_notification_requests"),
        )
        self._register(
            "accept_notification_request",
            partial(self._run_requests, "accept_notification_requests"),
        )
        self._register(
            "dismiss_notification_request",
            partial(self._run_requests, "dismiss_notification_requests"),
        )

    def _register(self, name: str, run: Callable[..., Awaitable[Any]]) -> None:
        self._triggers[name] = Mutation(name, run)

    # ----- Triggers -----

    def trigger(self, name: str) -> Mutation:
        """The named trigger, for UI state rendering."""
        try:
            return self._triggers[name]
        except KeyError:
            msg = f"unknown mutation {name!r}"
            raise SyncError(msg) from None

    @property
    def trigger_names(self) -> tuple[str, ...]:
        return tuple(self._triggers)

    async def run(self, name: str, *args: Any) -> Any:
        """Invoke a trigger by name."""
        return await self.trigger(name).invoke(*args)

    # Reversible status actions

    async def favourite(self, status_id: str) -> Status:
        return await self.run("favourite", status_id)

    async def unfavourite(self, status_id: str) -> Status:
        return await self.run("unfavourite", status_id)

    async def reblog(self, status_id: str) -> Status:
        return await self.run("reblog", status_id)

    async def unreblog(self, status_id: str) -> Status:
        return await self.run("unreblog", status_id)

    async def bookmark(self, status_id: str) -> Status:
        return await self.run("bookmark", status_id)

    async def unbookmark(self, status_id: str) -> Status:
        return await self.run("unbookmark", status_id)

    async def pin(self, status_id: str) -> Status:
        return await self.run("pin", status_id)

    async def unpin(self, status_id: str) -> Status:
        return await self.run("unpin", status_id)

    async def mute_conversation(self, status_id: str) -> Status:
        return await self.run("mute_conversation", status_id)

    async def unmute_conversation(self, status_id: str) -> Status:
        return await self.run("unmute_conversation", status_id)

    # Irreversible status actions

    async def create_status(self, params: Mapping[str, Any]) -> Status:
        return await self.run("create_status", params)

    async def delete(self, status_id: str) -> Any:
        return await self.run("delete", status_id)

    async def edit(self, status_id: str, params: Mapping[str, Any]) -> Status:
        return await self.run("edit", status_id, params)

    async def vote(self, poll_id: str, choices: Sequence[int]) -> Poll:
        return await self.run("vote", poll_id, choices)

    # Relationships

    async def follow(self, account_id: str) -> Relationship:
        return await self.run("follow", account_id)

    async def unfollow(self, account_id: str) -> Relationship:
        return await self.run("unfollow", account_id)

    async def block(self, account_id: str) -> Relationship:
        return await self.run("block", account_id)

    async def unblock(self, account_id: str) -> Relationship:
        return await self.run("unblock", account_id)

    async def mute_account(self, account_id: str) -> Relationship:
        return await self.run("mute_account", account_id)

    async def unmute_account(self, account_id: str) -> Relationship:
        return await self.run("unmute_account", account_id)

    async def authorize_follow_request(self, account_id: str) -> Relationship:
        return await self.run("authorize_follow_request", account_id)

    async def reject_follow_request(self, account_id: str) -> Relationship:
        return await self.run("reject_follow_request", account_id)

    async def update_account(self, params: Mapping[str, Any]) -> Account:
        return await self.run("update_account", params)

    # Conversations and notification requests

    async def mark_conversation_read(self, conversation_id: str) -> Conversation:
        return await self.run("mark_conversation_read", conversation_id)

    async def remove_conversation(self, conversation_id: str) -> Any:
        return await self.run("remove_conversation", conversation_id)

    async def accept_notification_requests(self, request_ids: Sequence[str]) -> Any:
        return await self.run("accept_notification_requests", request_ids)

    async def dismiss_notification_requests(self, request_ids: Sequence[str]) -> Any:
        return await self.run("dismiss_notification_requests", request_ids)

    async def accept_notification_request(self, request_id: str) -> Any:
        return await self.run("accept_notification_request", [request_id])

    async def dismiss_notification_request(self, request_id: str) -> Any:
        return await self.run("dismiss_notification_request", [request_id])

    # ----- Lifecycle helpers -----

    def _begin(self, trigger: Mutation, entity_id: str, *, optimistic: bool) -> MutationProfiler:
        self._collector.record_started(trigger.name, entity_id, optimistic=optimistic)
        trigger._transition(MutationState.MUTATING)
        return MutationProfiler(self._collector, trigger.name, entity_id)

    def _succeed(
        self,
        trigger: Mutation,
        entity_id: str,
        data: Any,
        profiler: MutationProfiler,
    ) -> Any:
        duration_ms = profiler.finish()
        self._collector.record_settled(
            trigger.name, entity_id, outcome="success", duration_ms=duration_ms
        )
        trigger.data = data
        trigger.error = None
        trigger._transition(MutationState.SUCCESS)
        return data

    def _fail(
        self,
        trigger: Mutation,
        entity_id: str,
        exc: Exception,
        profiler: MutationProfiler,
        *,
        outcome: str,
        rolled_back: bool = False,
    ) -> MutationFailed:
        duration_ms = profiler.finish()
        self._collector.record_settled(
            trigger.name, entity_id, outcome=outcome, duration_ms=duration_ms, error=exc
        )
        error = MutationFailed(trigger.name, entity_id, rolled_back=rolled_back)
        trigger.error = error
        trigger._transition(MutationState.ERROR)
        return error

    def _call(self, method: str) -> Callable[..., Awaitable[Any]]:
        return getattr(self._services.transport, method)

    def _overwrite_detail(self, status: Status) -> None:
        detail = keys.status_detail(status.id)
        if detail in self._cache:
            self._cache.set(detail, status)

    # ----- Reversible status actions -----

    async def _run_reversible(
        self, action: ReversibleAction, trigger: Mutation, status_id: str
    ) -> Status:
        name = trigger.name
        profiler = self._begin(trigger, status_id, optimistic=True)

        profiler.start("cancel")
        self._cache.cancel(keys.is_status_surface, reason=name)
        profiler.stop("cancel")

        profiler.start("snapshot")
        snapshot = self.locator.find(status_id)
        target_id = status_id
        if snapshot is None:
            self._collector.record_snapshot_missing(name, status_id)
        elif snapshot.id == status_id and snapshot.reblog is not None:
            # Acting on a reblog acts on the reblogged status.
            snapshot = snapshot.reblog
            target_id = snapshot.id
        profiler.stop("snapshot")

        profiler.start("optimistic")
        self.transform.apply(target_id, action.delta, operation=f"{name}.optimistic")
        profiler.stop("optimistic")

        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            result = await self._call(action.name)(status_id)
        except Exception as exc:
            profiler.stop("server")
            profiler.start("settle")
            if snapshot is not None:
                self.transform.replace(snapshot, operation=f"{name}.rollback")
            self._settle_invalidate(action)
            profiler.stop("settle")
            raise self._fail(
                trigger,
                status_id,
                exc,
                profiler,
                outcome="rolled_back" if snapshot is not None else "failed",
                rolled_back=snapshot is not None,
            ) from exc
        profiler.stop("server")

        profiler.start("settle")
        status = _authoritative(result, target_id)
        if isinstance(status, Status):
            self._overwrite_detail(status)
            self.transform.replace(status, operation=f"{name}.settle")
        self._settle_invalidate(action)
        profiler.stop("settle")
        return self._succeed(trigger, status_id, status, profiler)

    def _settle_invalidate(self, action: ReversibleAction) -> None:
        if action.settle_invalidates is not None:
            predicate = action.settle_invalidates(self._services.session)
            self._cache.invalidate(predicate, reason=action.name)

    # ----- Irreversible status actions -----

    async def _run_create(self, trigger: Mutation, params: Mapping[str, Any]) -> Status:
        profiler = self._begin(trigger, "", optimistic=False)
        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            result = await self._call("create_status")(dict(params))
        except Exception as exc:
            profiler.stop("server")
            raise self._fail(trigger, "", exc, profiler, outcome="failed") from exc
        profiler.stop("server")

        profiler.start("settle")
        # The new post's position depends on the server's ordering; refetch.
        self._cache.invalidate(_home_timelines, reason=trigger.name)
        profiler.stop("settle")
        return self._succeed(trigger, getattr(result, "id", ""), result, profiler)

    async def _run_delete(self, trigger: Mutation, status_id: str) -> Any:
        profiler = self._begin(trigger, status_id, optimistic=False)
        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            result = await self._call("delete_status")(status_id)
        except Exception as exc:
            profiler.stop("server")
            raise self._fail(trigger, status_id, exc, profiler, outcome="failed") from exc
        profiler.stop("server")

        profiler.start("cancel")
        self._cache.cancel(keys.is_status_surface, reason=trigger.name)
        profiler.stop("cancel")
        profiler.start("settle")
        self.removal.remove(status_id, operation=trigger.name)
        profiler.stop("settle")
        return self._succeed(trigger, status_id, result, profiler)

    async def _run_edit(
        self, trigger: Mutation, status_id: str, params: Mapping[str, Any]
    ) -> Status:
        profiler = self._begin(trigger, status_id, optimistic=False)
        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            result = await self._call("edit_status")(status_id, dict(params))
        except Exception as exc:
            profiler.stop("server")
            raise self._fail(trigger, status_id, exc, profiler, outcome="failed") from exc
        profiler.stop("server")

        profiler.start("cancel")
        self._cache.cancel(keys.is_status_surface, reason=trigger.name)
        profiler.stop("cancel")
        profiler.start("settle")
        status = _authoritative(result, status_id)
        if isinstance(status, Status):
            self._overwrite_detail(status)
            self.transform.replace(status, operation=trigger.name)
        profiler.stop("settle")
        return self._succeed(trigger, status_id, status, profiler)

    async def _run_vote(self, trigger: Mutation, poll_id: str, choices: Sequence[int]) -> Poll:
        profiler = self._begin(trigger, poll_id, optimistic=False)
        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            poll = await self._call("vote")(poll_id, tuple(choices))
        except Exception as exc:
            profiler.stop("server")
            outcome = "failed"
            if self._services.config.invalidate_on_vote_error:
                profiler.start("settle")
                self._cache.invalidate(keys.is_status_list, reason=trigger.name)
                profiler.stop("settle")
                outcome = "invalidated"
            raise self._fail(trigger, poll_id, exc, profiler, outcome=outcome) from exc
        profiler.stop("server")

        profiler.start("cancel")
        self._cache.cancel(keys.is_status_surface, reason=trigger.name)
        profiler.stop("cancel")
        profiler.start("settle")
        self.transform.apply_poll(poll_id, poll, operation=trigger.name)
        profiler.stop("settle")
        return self._succeed(trigger, poll_id, poll, profiler)

    # ----- Relationships -----

    async def _run_relationship(self, trigger: Mutation, account_id: str) -> Relationship:
        profiler = self._begin(trigger, account_id, optimistic=False)
        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            result = await self._call(trigger.name)(account_id)
        except Exception as exc:
            profiler.stop("server")
            raise self._fail(trigger, account_id, exc, profiler, outcome="failed") from exc
        profiler.stop("server")

        profiler.start("settle")
        # Batches are keyed by arbitrary id arrays; refetch, never patch.
        self._cache.invalidate(keys.relationships_including(account_id), reason=trigger.name)
        detail = keys.account_detail(account_id)
        self._cache.invalidate(lambda key: key == detail, reason=trigger.name)
        if trigger.name in _FOLLOW_REQUEST_ACTIONS:
            self.removal.remove_items(
                keys.in_categories("follow_requests"), (account_id,), operation=trigger.name
            )
        profiler.stop("settle")
        return self._succeed(trigger, account_id, result, profiler)

    async def _run_update_account(self, trigger: Mutation, params: Mapping[str, Any]) -> Account:
        session_id = self._services.session.account_id or ""
        profiler = self._begin(trigger, session_id, optimistic=False)
        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            result = await self._call("update_credentials")(dict(params))
        except Exception as exc:
            profiler.stop("server")
            raise self._fail(trigger, session_id, exc, profiler, outcome="failed") from exc
        profiler.stop("server")

        profiler.start("settle")
        account_id = result.id if isinstance(result, Account) else session_id
        if isinstance(result, Account):
            self._cache.set(keys.current_account(), result)
        if account_id:
            detail = keys.account_detail(account_id)
            self._cache.invalidate(lambda key: key == detail, reason=trigger.name)
        profiler.stop("settle")
        return self._succeed(trigger, account_id, result, profiler)

    # ----- Conversations -----

    async def _run_mark_read(self, trigger: Mutation, conversation_id: str) -> Conversation:
        name = trigger.name
        profiler = self._begin(trigger, conversation_id, optimistic=True)

        profiler.start("cancel")
        self._cache.cancel(_CONVERSATIONS, reason=name)
        profiler.stop("cancel")

        profiler.start("snapshot")
        snapshot = self.locator.find_item(_CONVERSATIONS, conversation_id)
        if snapshot is None:
            self._collector.record_snapshot_missing(name, conversation_id)
        profiler.stop("snapshot")

        profiler.start("optimistic")
        self.transform.apply_items(
            _CONVERSATIONS, conversation_id, _mark_read, operation=f"{name}.optimistic"
        )
        profiler.stop("optimistic")

        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            result = await self._call("mark_conversation_read")(conversation_id)
        except Exception as exc:
            profiler.stop("server")
            profiler.start("settle")
            if snapshot is not None:
                self.transform.apply_items(
                    _CONVERSATIONS,
                    conversation_id,
                    lambda _: snapshot,
                    operation=f"{name}.rollback",
                )
            profiler.stop("settle")
            raise self._fail(
                trigger,
                conversation_id,
                exc,
                profiler,
                outcome="rolled_back" if snapshot is not None else "failed",
                rolled_back=snapshot is not None,
            ) from exc
        profiler.stop("server")

        profiler.start("settle")
        if isinstance(result, Conversation):
            self.transform.apply_items(
                _CONVERSATIONS,
                conversation_id,
                lambda conversation: conversation if conversation == result else result,
                operation=f"{name}.settle",
            )
        profiler.stop("settle")
        return self._succeed(trigger, conversation_id, result, profiler)

    async def _run_remove_conversation(self, trigger: Mutation, conversation_id: str) -> Any:
        profiler = self._begin(trigger, conversation_id, optimistic=False)
        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            result = await self._call("delete_conversation")(conversation_id)
        except Exception as exc:
            profiler.stop("server")
            raise self._fail(trigger, conversation_id, exc, profiler, outcome="failed") from exc
        profiler.stop("server")

        profiler.start("settle")
        self._cache.cancel(_CONVERSATIONS, reason=trigger.name)
        self.removal.remove_items(_CONVERSATIONS, (conversation_id,), operation=trigger.name)
        profiler.stop("settle")
        return self._succeed(trigger, conversation_id, result, profiler)

    # ----- Notification requests -----

    async def _run_requests(
        self, method: str, trigger: Mutation, request_ids: Sequence[str]
    ) -> Any:
        name = trigger.name
        ids = tuple(request_ids)
        label = ",".join(ids)
        profiler = self._begin(trigger, label, optimistic=True)

        profiler.start("cancel")
        self._cache.cancel(_NOTIFICATION_REQUESTS, reason=name)
        profiler.stop("cancel")

        profiler.start("snapshot")
        snapshot = {entry.key: entry.data for entry in self._cache.entries(_NOTIFICATION_REQUESTS)}
        if not snapshot:
            self._collector.record_snapshot_missing(name, label)
        profiler.stop("snapshot")

        profiler.start("optimistic")
        self.removal.remove_items(_NOTIFICATION_REQUESTS, ids, operation=f"{name}.optimistic")
        profiler.stop("optimistic")

        trigger._transition(MutationState.AWAITING_SERVER)
        profiler.start("server")
        try:
            result = await self._call(method)(ids)
        except Exception as exc:
            profiler.stop("server")
            profiler.start("settle")
            if snapshot:
                self._cache.for_each_view(
                    _NOTIFICATION_REQUESTS,
                    lambda view: snapshot.get(view.key, view.data),
                )
            self._cache.invalidate(_REQUEST_SUMMARIES, reason=name)
            profiler.stop("settle")
            raise self._fail(
                trigger,
                label,
                exc,
                profiler,
                outcome="rolled_back" if snapshot else "failed",
                rolled_back=bool(snapshot),
            ) from exc
        profiler.stop("server")

        profiler.start("settle")
        self._cache.invalidate(_REQUEST_SUMMARIES, reason=name)
        profiler.stop("settle")
        return self._succeed(trigger, label, result, profiler)
