"""Live updates — streaming frames routed into the cache.

Frames follow the Mastodon streaming shape::

    {"stream": ["user"], "event": "update", "payload": "{...json...}"}

The payload may be a JSON string or an already-decoded object; ``delete``
carries a bare id.  Every write goes through ``ViewCache.for_each_view`` or
the propagators, the same primitives mutations use.

Routing:
    update          prepend to the first page of live timelines (dedupe, cap)
    status.update   full replace of every copy
    delete          removal from every status list
    notification    prepend to notification views, mark unread count stale
    conversation    move-to-top upsert in conversation views
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from tabby._errors import ViewShapeMismatch
from tabby.cache import keys
from tabby.cache.shapes import PaginatedAdapter
from tabby.models import Conversation, Notification, Status
from tabby.sync.propagator import RemovalPropagator, TransformPropagator

if TYPE_CHECKING:
    from tabby._types import KeyPredicate
    from tabby.cache.keys import ViewKey
    from tabby.cache.store import ViewEntry
    from tabby.services import SyncServices

# Streaming channel name -> timeline kind. ``:local`` channels feed only views
# keyed with ``local=True``.
_STREAM_KINDS = {
    "user": "home",
    "public": "public",
    "public:local": "public",
    "hashtag": "hashtag",
    "hashtag:local": "hashtag",
    "list": "list",
}


class MalformedFrame(ValueError):
    """A frame that cannot be routed."""


def _decode(payload: Any) -> Any:
    if isinstance(payload, (str, bytes)):
        try:
            return json.loads(payload)
        except ValueError as exc:
            raise MalformedFrame(f"payload is not JSON: {exc}") from exc
    return payload


def _as_object(payload: Any) -> dict[str, Any]:
    data = _decode(payload)
    if not isinstance(data, Mapping):
        raise MalformedFrame(f"expected an object payload, got {type(data).__name__}")
    return dict(data)


class LiveUpdateRouter:
    """Apply streaming events to cached views.

    Args:
        services: Injected collaborators; ``config.live_timelines`` and
            ``config.live_prepend_limit`` shape the ``update`` route.

    """

    def __init__(self, services: SyncServices) -> None:
        self._cache = services.cache
        self._collector = services.collector
        self._config = services.config
        self.transform = TransformPropagator(services.cache, services.collector)
        self.removal = RemovalPropagator(
            services.cache,
            services.collector,
            invalidate_contexts=services.config.invalidate_contexts_on_delete,
        )
        self._routes: dict[str, Callable[[Any, tuple[str, ...]], tuple[str, bool]]] = {
            "update": self._on_update,
            "status.update": self._on_status_update,
            "delete": self._on_delete,
            "notification": self._on_notification,
            "conversation": self._on_conversation,
        }

    def handle(self, frame: Mapping[str, Any] | str | bytes) -> bool:
        """Route one frame.  Returns True if any view changed.

        Unknown events and malformed frames are recorded and ignored.
        """
        try:
            message = _as_object(frame)
            event = message["event"]
            stream = tuple(str(part) for part in message.get("stream") or ())
            route = self._routes.get(event)
            if route is None:
                self._collector.record_live(str(event), "", applied=False)
                return False
            entity_id, applied = route(message.get("payload"), stream)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            self._collector.record_skipped("live", "live", f"malformed frame: {exc}")
            return False
        self._collector.record_live(event, entity_id, applied=applied)
        return applied

    # ----- Routes -----

    def _on_update(self, payload: Any, stream: tuple[str, ...]) -> tuple[str, bool]:
        status = Status.from_dict(_as_object(payload))
        result = self._cache.for_each_view(
            self._live_timelines(stream),
            self._prepender(status),
        )
        return status.id, result.changed > 0

    def _on_status_update(self, payload: Any, stream: tuple[str, ...]) -> tuple[str, bool]:
        status = Status.from_dict(_as_object(payload))
        result = self.transform.replace(status, operation="live.status.update")
        return status.id, result.changed > 0

    def _on_delete(self, payload: Any, stream: tuple[str, ...]) -> tuple[str, bool]:
        if payload is None:
            raise MalformedFrame("delete without an id")
        status_id = str(payload)
        result = self.removal.remove(status_id, operation="live.delete")
        return status_id, result.changed > 0

    def _on_notification(self, payload: Any, stream: tuple[str, ...]) -> tuple[str, bool]:
        notification = Notification.from_dict(_as_object(payload))

        def accepts(key: ViewKey) -> bool:
            if key.category != "notifications":
                return False
            types = key.param("types")
            excluded = key.param("exclude_types") or ()
            return (not types or notification.type in types) and notification.type not in excluded

        result = self._cache.for_each_view(accepts, self._prepender(notification))
        self._cache.invalidate(keys.in_categories("unread_count"), reason="live.notification")
        return notification.id, result.changed > 0

    def _on_conversation(self, payload: Any, stream: tuple[str, ...]) -> tuple[str, bool]:
        conversation = Conversation.from_dict(_as_object(payload))
        result = self._cache.for_each_view(
            keys.in_categories("conversations"),
            self._prepender(conversation, upsert=True),
        )
        return conversation.id, result.changed > 0

    # ----- Helpers -----

    def _live_timelines(self, stream: tuple[str, ...]) -> KeyPredicate:
        kinds = frozenset(self._config.live_timelines)
        if not stream:
            return lambda key: keys.is_timeline(key) and key.scope[0] in kinds
        kind = _STREAM_KINDS.get(stream[0])
        local = stream[0].endswith(":local")
        scope = (kind, *(part.lower() if kind == "hashtag" else part for part in stream[1:]))
        return lambda key: (
            keys.is_timeline(key)
            and kind in kinds
            and key.scope[: len(scope)] == scope
            and bool(key.param("local")) == local
        )

    def _prepender(self, item: Any, *, upsert: bool = False) -> Callable[[ViewEntry], Any]:
        limit = self._config.live_prepend_limit

        def prepend(view: ViewEntry) -> Any:
            adapter = view.adapter
            if not isinstance(adapter, PaginatedAdapter):
                raise ViewShapeMismatch(str(view.key), "paginated", view.shape.value)
            data = view.data
            if data is not None and any(
                getattr(existing, "id", None) == item.id
                for existing in adapter.iter_items(view.key, data)
            ):
                if not upsert:
                    return data
                data = adapter.filter_items(
                    view.key, data, lambda existing: getattr(existing, "id", None) != item.id
                )
            return adapter.prepend(view.key, data, item, limit=limit)

        return prepend
