"""Transport interface — the network collaborator.

The engine never performs I/O itself.  It awaits one coroutine per mutation
on an injected ``Transport`` and treats the result as server truth.  Any
exception raised by a transport method counts as a failed call.

``ScriptedTransport`` is an in-memory implementation with per-call scripted
outcomes, used by the ``tabby simulate`` command and the test suite.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict, deque
from collections.abc import Sequence
from typing import Any, Protocol

from tabby._errors import TransportError
from tabby.models import Account, Conversation, Poll, Relationship, Status


class Transport(Protocol):
    """One endpoint per mutation, returning the authoritative entity."""

    # Reversible status actions
    async def favourite(self, status_id: str) -> Status: ...
    async def unfavourite(self, status_id: str) -> Status: ...
    async def reblog(self, status_id: str) -> Status: ...
    async def unreblog(self, status_id: str) -> Status: ...
    async def bookmark(self, status_id: str) -> Status: ...
    async def unbookmark(self, status_id: str) -> Status: ...
    async def pin(self, status_id: str) -> Status: ...
    async def unpin(self, status_id: str) -> Status: ...
    async def mute_conversation(self, status_id: str) -> Status: ...
    async def unmute_conversation(self, status_id: str) -> Status: ...

    # Irreversible status actions
    async def create_status(self, params: dict[str, Any]) -> Status: ...
    async def delete_status(self, status_id: str) -> Any: ...
    async def edit_status(self, status_id: str, params: dict[str, Any]) -> Status: ...
    async def vote(self, poll_id: str, choices: Sequence[int]) -> Poll: ...

    # Relationships
    async def follow(self, account_id: str) -> Relationship: ...
    async def unfollow(self, account_id: str) -> Relationship: ...
    async def block(self, account_id: str) -> Relationship: ...
    async def unblock(self, account_id: str) -> Relationship: ...
    async def mute_account(self, account_id: str) -> Relationship: ...
    async def unmute_account(self, account_id: str) -> Relationship: ...
    async def authorize_follow_request(self, account_id: str) -> Relationship: ...
    async def reject_follow_request(self, account_id: str) -> Relationship: ...
    async def update_credentials(self, params: dict[str, Any]) -> Account: ...

    # Conversations and notification requests
    async def mark_conversation_read(self, conversation_id: str) -> Conversation: ...
    async def delete_conversation(self, conversation_id: str) -> Any: ...
    async def accept_notification_requests(self, request_ids: Sequence[str]) -> Any: ...
    async def dismiss_notification_requests(self, request_ids: Sequence[str]) -> Any: ...


class ScriptedTransport:
    """In-memory transport replaying scripted outcomes.

    Each ``(method, entity_id)`` pair has a FIFO of outcomes.  An outcome is
    a value (returned), an exception instance (raised), a callable (called
    with the call's arguments at call time; its result is treated as an
    outcome), or an ``asyncio.Future`` (awaited, for holding a call open).

    Bulk methods key on the comma-joined id list; methods that take no id
    (``create_status``, ``update_credentials``) key on the empty string.

    Example::

        transport = ScriptedTransport()
        transport.respond("favourite", "42", server_status)
        transport.fail("unfavourite", "42")

    """

    def __init__(self) -> None:
        self._outcomes: dict[tuple[str, str], deque[Any]] = defaultdict(deque)
        self.calls: list[tuple[str, str]] = []

    def respond(self, method: str, entity_id: str, outcome: Any) -> None:
        """Script the next outcome of ``method(entity_id)``."""
        self._outcomes[(method, entity_id)].append(outcome)

    def fail(self, method: str, entity_id: str, error: Exception | None = None) -> None:
        """Script the next call of ``method(entity_id)`` to raise."""
        self.respond(method, entity_id, error or TransportError(f"{method}({entity_id}) failed"))

    def hold(self, method: str, entity_id: str) -> asyncio.Future[Any]:
        """Script a call that stays pending until the returned future resolves."""
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.respond(method, entity_id, future)
        return future

    async def _call(self, method: str, entity_id: str, *args: Any) -> Any:
        self.calls.append((method, entity_id))
        queue = self._outcomes.get((method, entity_id))
        if not queue:
            msg = f"no response scripted for {method}({entity_id})"
            raise TransportError(msg)
        outcome = queue.popleft()
        if callable(outcome) and not isinstance(outcome, asyncio.Future):
            outcome = outcome(entity_id, *args)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def favourite(self, status_id: str) -> Status:
        return await self._call("favourite", status_id)

    async def unfavourite(self, status_id: str) -> Status:
        return await self._call("unfavourite", status_id)

    async def reblog(self, status_id: str) -> Status:
        return await self._call("reblog", status_id)

    async def unreblog(self, status_id: str) -> Status:
        return await self._call("unreblog", status_id)

    async def bookmark(self, status_id: str) -> Status:
        return await self._call("bookmark", status_id)

    async def unbookmark(self, status_id: str) -> Status:
        return await self._call("unbookmark", status_id)

    async def pin(self, status_id: str) -> Status:
        return await self._call("pin", status_id)

    async def unpin(self, status_id: str) -> Status:
        return await self._call("unpin", status_id)

    async def mute_conversation(self, status_id: str) -> Status:
        return await self._call("mute_conversation", status_id)

    async def unmute_conversation(self, status_id: str) -> Status:
        return await self._call("unmute_conversation", status_id)

    async def create_status(self, params: dict[str, Any]) -> Status:
        return await self._call("create_status", "", params)

    async def delete_status(self, status_id: str) -> Any:
        return await self._call("delete_status", status_id)

    async def edit_status(self, status_id: str, params: dict[str, Any]) -> Status:
        return await self._call("edit_status", status_id, params)

    async def vote(self, poll_id: str, choices: Sequence[int]) -> Poll:
        return await self._call("vote", poll_id, tuple(choices))

    async def follow(self, account_id: str) -> Relationship:
        return await self._call("follow", account_id)

    async def unfollow(self, account_id: str) -> Relationship:
        return await self._call("unfollow", account_id)

    async def block(self, account_id: str) -> Relationship:
        return await self._call("block", account_id)

    async def unblock(self, account_id: str) -> Relationship:
        return await self._call("unblock", account_id)

    async def mute_account(self, account_id: str) -> Relationship:
        return await self._call("mute_account", account_id)

    async def unmute_account(self, account_id: str) -> Relationship:
        return await self._call("unmute_account", account_id)

    async def authorize_follow_request(self, account_id: str) -> Relationship:
        return await self._call("authorize_follow_request", account_id)

    async def reject_follow_request(self, account_id: str) -> Relationship:
        return await self._call("reject_follow_request", account_id)

    async def update_credentials(self, params: dict[str, Any]) -> Account:
        return await self._call("update_credentials", "", params)

    async def mark_conversation_read(self, conversation_id: str) -> Conversation:
        return await self._call("mark_conversation_read", conversation_id)

    async def delete_conversation(self, conversation_id: str) -> Any:
        return await self._call("delete_conversation", conversation_id)

    async def accept_notification_requests(self, request_ids: Sequence[str]) -> Any:
        return await self._call("accept_notification_requests", ",".join(request_ids))

    async def dismiss_notification_requests(self, request_ids: Sequence[str]) -> Any:
        return await self._call("dismiss_notification_requests", ",".join(request_ids))
