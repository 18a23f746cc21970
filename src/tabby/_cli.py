"""Tabby CLI — tabby simulate.

Entry point for the ``tabby`` command-line interface.  ``simulate`` replays a
YAML scenario against a scripted transport and prints every cached view
afterwards, which makes the fan-out visible without a server.

Scenario format::

    session:
      account_id: "1"
    statuses:
      "42": {favourites_count: 3}
      "7": {}
      "100": {reblog: "7"}
    views:
      - view: home
        statuses: ["42", "100"]
      - view: bookmarks
        statuses: ["7"]
      - view: status_context
        args: ["99"]
        descendants: ["7"]
    actions:
      - action: favourite
        id: "42"
        response: {favourites_count: 5}
      - action: delete
        id: "7"
        outcome: fail

"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tabby._errors import ConfigError, MutationFailed, TabbyError

if TYPE_CHECKING:
    from tabby.cache.keys import ViewKey
    from tabby.models import Status
    from tabby.services import SyncServices
    from tabby.sync.coordinator import MutationCoordinator

# Trigger name -> transport method, where they differ
_TRANSPORT_METHODS = {
    "delete": "delete_status",
    "edit": "edit_status",
    "remove_conversation": "delete_conversation",
    "accept_notification_request": "accept_notification_requests",
    "dismiss_notification_request": "dismiss_notification_requests",
    "update_account": "update_credentials",
}

# Triggers that take a params mapping instead of an id
_PARAMS_ACTIONS = frozenset({"create_status", "update_account"})

_STATUS_FIELDS = ("favourited", "favourites_count", "reblogged", "reblogs_count", "bookmarked")

_VIEW_FACTORIES = frozenset({
    "home",
    "public",
    "hashtag",
    "list_timeline",
    "status_detail",
    "status_context",
    "bookmarks",
    "account_statuses",
    "pinned_statuses",
    "trending_statuses",
    "search",
})


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the tabby CLI."""
    parser = argparse.ArgumentParser(
        prog="tabby",
        description="View-consistent optimistic cache sync for Mastodon-style clients.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # tabby simulate
    simulate_parser = subparsers.add_parser(
        "simulate",
        help="Replay a YAML scenario against a scripted transport",
    )
    simulate_parser.add_argument("scenario", help="Scenario YAML file")
    simulate_parser.add_argument(
        "--root", default=".", help="Directory holding tabby.yaml/tabby.toml",
    )
    simulate_parser.add_argument(
        "--verbose", action="store_true", help="Print settle and skip summaries to stderr",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from tabby import __version__

    return __version__


# ---------------------------------------------------------------------------
# Scenario loading
# ---------------------------------------------------------------------------


def load_scenario(path: Path) -> dict[str, Any]:
    """Read a scenario file.  Raises ConfigError if it is not a mapping."""
    import yaml

    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        msg = f"cannot read scenario {path}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"scenario {path} must be a mapping"
        raise ConfigError(msg)
    return data


def build_statuses(fixtures: dict[Any, Any]) -> dict[str, Status]:
    """Build status fixtures; ``reblog`` names another fixture by id."""
    from tabby.models import Status

    plain: dict[str, dict[str, Any]] = {}
    wrappers: dict[str, dict[str, Any]] = {}
    for raw_id, fields in (fixtures or {}).items():
        fields = dict(fields or {})
        target = wrappers if "reblog" in fields else plain
        target[str(raw_id)] = fields

    statuses = {sid: Status.from_dict({**fields, "id": sid}) for sid, fields in plain.items()}
    for sid, fields in wrappers.items():
        inner_id = str(fields.pop("reblog"))
        if inner_id not in statuses:
            msg = f"status {sid} reblogs unknown status {inner_id}"
            raise ConfigError(msg)
        statuses[sid] = replace(Status.from_dict({**fields, "id": sid}), reblog=statuses[inner_id])
    return statuses


def build_view(fixture: dict[str, Any], statuses: dict[str, Status]) -> tuple[ViewKey, Any]:
    """Build one view key and its data from a scenario entry."""
    from tabby.cache import keys
    from tabby.cache.shapes import Page, PaginatedData
    from tabby.models import SearchResults, StatusContext

    name = fixture.get("view", "")
    if name not in _VIEW_FACTORIES:
        msg = f"unknown view {fixture.get('view')!r}"
        raise ConfigError(msg)
    key = getattr(keys, name)(*(str(arg) for arg in fixture.get("args") or ()))

    def pick(field: str) -> tuple[Status, ...]:
        try:
            return tuple(statuses[str(sid)] for sid in fixture.get(field) or ())
        except KeyError as exc:
            msg = f"view {key} references unknown status {exc.args[0]}"
            raise ConfigError(msg) from None

    shape = keys.shape_for(key)
    if key.category == "context":
        return key, StatusContext(ancestors=pick("ancestors"), descendants=pick("descendants"))
    if key.category == "status":
        return key, statuses.get(key.scope[0])
    if key.category == "search" and shape is keys.ViewShape.SINGLETON:
        return key, SearchResults(statuses=pick("statuses"))
    if shape is keys.ViewShape.FLAT:
        return key, pick("statuses")
    return key, PaginatedData(pages=(Page(items=pick("statuses")),), page_params=(None,))


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------


def _script(
    coordinator: MutationCoordinator,
    services: SyncServices,
    step: dict[str, Any],
) -> tuple[str, tuple[Any, ...]]:
    """Script the transport for one action; return (trigger, call args)."""
    from tabby.models import Account, Conversation, Poll, Relationship, Status
    from tabby.sync.coordinator import RELATIONSHIP_ACTIONS

    name = step["action"]
    entity_id = "" if name in _PARAMS_ACTIONS else str(step["id"])
    response = dict(step.get("response") or {})
    method = _TRANSPORT_METHODS.get(name, name)
    transport = services.transport

    if name in ("accept_notification_requests", "dismiss_notification_requests"):
        ids = tuple(part.strip() for part in entity_id.split(","))
        entity_id = ",".join(ids)
        args: tuple[Any, ...] = (ids,)
    elif name == "vote":
        args = (entity_id, tuple(step.get("choices") or (0,)))
    elif name == "edit":
        args = (entity_id, response)
    elif name in _PARAMS_ACTIONS:
        args = (dict(step.get("params") or {}),)
    else:
        args = (entity_id,)

    if step.get("outcome", "ok") == "fail":
        transport.fail(method, entity_id)  # type: ignore[attr-defined]
        return name, args

    def server_entity(call_id: str, *_: Any) -> Any:
        # Built at call time, from the copy the optimistic phase left behind.
        if name == "vote":
            return Poll.from_dict({**response, "id": call_id})
        if name == "create_status":
            return Status.from_dict({"id": str(step.get("id", "new")), **response})
        if name == "update_account":
            return Account.from_dict({"id": services.session.account_id or "me", **response})
        if name in RELATIONSHIP_ACTIONS:
            return Relationship.from_dict({**response, "id": call_id})
        if name == "mark_conversation_read":
            current = coordinator.locator.find_item(
                lambda key: key.category == "conversations", call_id
            )
            base = current if isinstance(current, Conversation) else Conversation(id=call_id)
            return replace(base, **{"unread": False, **response})
        current = coordinator.locator.find(call_id)
        if current is None:
            return response or None
        return replace(current, **response) if isinstance(current, Status) else current

    transport.respond(method, entity_id, server_entity)  # type: ignore[attr-defined]
    return name, args


def _describe(status: Status) -> str:
    fields = " ".join(f"{name}={getattr(status.target, name)}" for name in _STATUS_FIELDS)
    label = f"{status.id} -> {status.reblog.id}" if status.reblog is not None else status.id
    return f"    {label:<12} {fields}"


def _print_views(services: SyncServices) -> None:
    for entry in services.cache.entries():
        marker = " [stale]" if entry.stale else ""
        print(f"  {entry.key}{marker}")
        try:
            for status in entry.adapter.iter_statuses(entry.key, entry.data):
                print(_describe(status))
        except TabbyError as exc:
            print(f"    <unreadable: {exc}>")


async def simulate(scenario: dict[str, Any], *, root: Path, verbose: bool = False) -> int:
    """Run a scenario.  Returns the number of failed actions."""
    from tabby.config_loader import load_config
    from tabby.services import Session, SyncServices
    from tabby.sync.coordinator import MutationCoordinator
    from tabby.transport import ScriptedTransport

    config = load_config(root, **{**(scenario.get("config") or {}), "verbose": verbose or None})
    session = Session(account_id=(scenario.get("session") or {}).get("account_id"))
    services = SyncServices.create(ScriptedTransport(), config=config, session=session)
    coordinator = MutationCoordinator(services)

    statuses = build_statuses(scenario.get("statuses") or {})
    for fixture in scenario.get("views") or ():
        key, data = build_view(fixture, statuses)
        services.cache.set(key, data)

    failures = 0
    for step in scenario.get("actions") or ():
        name, args = _script(coordinator, services, step)
        try:
            await coordinator.run(name, *args)
        except MutationFailed as exc:
            failures += 1
            note = " (rolled back)" if exc.rolled_back else ""
            print(f"{name}({step.get('id', '')}): failed{note}")
        else:
            print(f"{name}({step.get('id', '')}): ok")

    print()
    print("Views:")
    _print_views(services)

    stats = services.collector.log.stats()
    print()
    print(f"Events: {stats['total']}")
    for event_type, count in sorted(stats["by_type"].items()):
        print(f"  {event_type:<20} {count}")
    if stats["outcomes"]:
        settled = ", ".join(f"{k}={v}" for k, v in sorted(stats["outcomes"].items()))
        print(f"Settled: {settled}")
    return failures


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "simulate":
        try:
            scenario = load_scenario(Path(args.scenario))
            failures = asyncio.run(
                simulate(scenario, root=Path(args.root), verbose=args.verbose)
            )
        except TabbyError as exc:
            print(f"tabby: {exc}", file=sys.stderr)
            sys.exit(2)
        sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
