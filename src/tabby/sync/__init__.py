"""Synchronization engine — optimistic mutations kept consistent across views.

Components, leaves first:

- ``deltas``: pure status transforms
- ``locator``: finds a snapshot copy of an entity
- ``propagator``: fans transforms and removals out over every view
- ``coordinator``: the mutation protocol and its named triggers
- ``live``: streaming events routed through the same primitives
"""

from tabby.sync.coordinator import (
    Mutation,
    MutationCoordinator,
    MutationState,
    ReversibleAction,
)
from tabby.sync.live import LiveUpdateRouter, MalformedFrame
from tabby.sync.locator import EntityLocator
from tabby.sync.propagator import RemovalPropagator, TransformPropagator

__all__ = [
    "EntityLocator",
    "LiveUpdateRouter",
    "MalformedFrame",
    "Mutation",
    "MutationCoordinator",
    "MutationState",
    "RemovalPropagator",
    "ReversibleAction",
    "TransformPropagator",
]
