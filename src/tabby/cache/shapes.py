"""Shape adapters — shape-agnostic traversal of view data.

Three physical shapes exist (``ViewShape``): paginated, flat, and singleton.
Each has an adapter resolved once per view key, so propagators express
"map every status" or "drop every status matching X" without knowing how a
view lays out its data.

All operations are pure and identity-preserving: when nothing changes, the
exact input object is returned. The cache relies on this to skip writes and
notifications for untouched views.

Paginated pages arrive in two forms and both are supported everywhere:

- ``Page(items, cursors)`` from Link-header pagination
- a bare tuple/list of items (legacy and trending shape)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, replace
from typing import Any

from tabby._errors import ViewShapeMismatch
from tabby.cache.keys import ViewKey, ViewShape, shape_for
from tabby.models import Status


@dataclass(frozen=True, slots=True)
class Cursors:
    """Pagination cursors parsed from a Link header."""

    next: str | None = None
    prev: str | None = None


@dataclass(frozen=True, slots=True)
class Page:
    items: tuple[Any, ...] = ()
    cursors: Cursors = Cursors()


@dataclass(frozen=True, slots=True)
class PaginatedData:
    """Ordered pages of an infinite view.

    Attributes:
        pages: ``Page`` objects or bare item sequences.
        page_params: The cursor each page was fetched with, in page order.

    """

    pages: tuple[Page | Sequence[Any], ...] = ()
    page_params: tuple[Any, ...] = ()


def _map_seq(items: Sequence[Any], fn: Callable[[Any], Any]) -> Sequence[Any]:
    changed = False
    out = []
    for item in items:
        new = fn(item)
        if new is not item:
            changed = True
        out.append(new)
    if not changed:
        return items
    return type(items)(out) if isinstance(items, (list, tuple)) else tuple(out)


def _filter_seq(items: Sequence[Any], keep: Callable[[Any], bool]) -> Sequence[Any]:
    out = [item for item in items if keep(item)]
    if len(out) == len(items):
        return items
    return type(items)(out) if isinstance(items, (list, tuple)) else tuple(out)


class ShapeAdapter:
    """Base adapter. Subclasses implement the item-level primitives."""

    shape: ViewShape

    def map_items(self, key: ViewKey, data: Any, fn: Callable[[Any], Any]) -> Any:
        raise NotImplementedError

    def filter_items(self, key: ViewKey, data: Any, keep: Callable[[Any], bool]) -> Any:
        raise NotImplementedError

    def iter_items(self, key: ViewKey, data: Any) -> Iterator[Any]:
        raise NotImplementedError

    # Status views hold statuses as their items; singletons override these.

    def map_statuses(self, key: ViewKey, data: Any, fn: Callable[[Status], Status]) -> Any:
        return self.map_items(key, data, lambda item: fn(item) if isinstance(item, Status) else item)

    def filter_statuses(self, key: ViewKey, data: Any, keep: Callable[[Status], bool]) -> Any:
        return self.filter_items(key, data, lambda item: not isinstance(item, Status) or keep(item))

    def iter_statuses(self, key: ViewKey, data: Any) -> Iterator[Status]:
        for item in self.iter_items(key, data):
            if isinstance(item, Status):
                yield item

    def _mismatch(self, key: ViewKey, data: Any) -> ViewShapeMismatch:
        return ViewShapeMismatch(str(key), self.shape.value, type(data).__name__)


class PaginatedAdapter(ShapeAdapter):
    """``PaginatedData`` whose pages are ``Page`` objects or bare sequences."""

    shape = ViewShape.PAGINATED

    def _check(self, key: ViewKey, data: Any) -> PaginatedData:
        if not isinstance(data, PaginatedData):
            raise self._mismatch(key, data)
        return data

    def _page_items(self, key: ViewKey, page: Any) -> Sequence[Any]:
        if isinstance(page, Page):
            return page.items
        if isinstance(page, (list, tuple)):
            return page
        raise self._mismatch(key, page)

    def _with_items(self, page: Any, items: Sequence[Any]) -> Any:
        if isinstance(page, Page):
            return replace(page, items=tuple(items))
        return items

    def _map_pages(self, key: ViewKey, data: Any, per_page: Callable[[Sequence[Any]], Sequence[Any]]) -> Any:
        paginated = self._check(key, data)
        changed = False
        pages = []
        for page in paginated.pages:
            items = self._page_items(key, page)
            new_items = per_page(items)
            if new_items is items:
                pages.append(page)
            else:
                changed = True
                pages.append(self._with_items(page, new_items))
        if not changed:
            return data
        return replace(paginated, pages=tuple(pages))

    def map_items(self, key: ViewKey, data: Any, fn: Callable[[Any], Any]) -> Any:
        return self._map_pages(key, data, lambda items: _map_seq(items, fn))

    def filter_items(self, key: ViewKey, data: Any, keep: Callable[[Any], bool]) -> Any:
        return self._map_pages(key, data, lambda items: _filter_seq(items, keep))

    def iter_items(self, key: ViewKey, data: Any) -> Iterator[Any]:
        for page in self._check(key, data).pages:
            yield from self._page_items(key, page)

    def prepend(self, key: ViewKey, data: Any, item: Any, *, limit: int = 0) -> Any:
        """Insert ``item`` at the head of the first page (creating one if empty).

        Args:
            limit: Trim the first page to this many items (0 = no cap).

        """
        if data is None:
            return PaginatedData(pages=(Page(items=(item,)),), page_params=(None,))
        paginated = self._check(key, data)
        if not paginated.pages:
            return replace(paginated, pages=(Page(items=(item,)),), page_params=(None,))
        first = paginated.pages[0]
        items = (item, *self._page_items(key, first))
        if limit > 0:
            items = items[:limit]
        return replace(paginated, pages=(self._with_items(first, items), *paginated.pages[1:]))


class FlatAdapter(ShapeAdapter):
    """A bare ordered sequence (pinned statuses, legacy trending)."""

    shape = ViewShape.FLAT

    def _check(self, key: ViewKey, data: Any) -> Sequence[Any]:
        if not isinstance(data, (list, tuple)):
            raise self._mismatch(key, data)
        return data

    def map_items(self, key: ViewKey, data: Any, fn: Callable[[Any], Any]) -> Any:
        return _map_seq(self._check(key, data), fn)

    def filter_items(self, key: ViewKey, data: Any, keep: Callable[[Any], bool]) -> Any:
        return _filter_seq(self._check(key, data), keep)

    def iter_items(self, key: ViewKey, data: Any) -> Iterator[Any]:
        yield from self._check(key, data)


class SingletonAdapter(ShapeAdapter):
    """One entity or one composite object.

    Composites (``StatusContext``, ``SearchResults``) name their status-bearing
    sub-lists in ``status_fields``; each sub-list is patched independently.
    A bare ``Status`` singleton is mapped directly. Filtering a bare status
    leaves it in place: removing a detail view is the caller's decision.

    """

    shape = ViewShape.SINGLETON

    def _fields(self, data: Any) -> tuple[str, ...]:
        return getattr(type(data), "status_fields", ())

    def map_items(self, key: ViewKey, data: Any, fn: Callable[[Any], Any]) -> Any:
        if data is None:
            return data
        fields = self._fields(data)
        if not fields:
            return fn(data)
        changes = {}
        for name in fields:
            items = getattr(data, name)
            new_items = _map_seq(items, fn)
            if new_items is not items:
                changes[name] = new_items
        return replace(data, **changes) if changes else data

    def filter_items(self, key: ViewKey, data: Any, keep: Callable[[Any], bool]) -> Any:
        if data is None:
            return data
        fields = self._fields(data)
        if not fields:
            return data
        changes = {}
        for name in fields:
            items = getattr(data, name)
            new_items = _filter_seq(items, keep)
            if new_items is not items:
                changes[name] = new_items
        return replace(data, **changes) if changes else data

    def iter_items(self, key: ViewKey, data: Any) -> Iterator[Any]:
        if data is None:
            return
        fields = self._fields(data)
        if not fields:
            yield data
            return
        for name in fields:
            yield from getattr(data, name)

    def map_statuses(self, key: ViewKey, data: Any, fn: Callable[[Status], Status]) -> Any:
        if data is not None and not isinstance(data, Status) and not self._fields(data):
            raise self._mismatch(key, data)
        return super().map_statuses(key, data, fn)


_ADAPTERS: dict[ViewShape, ShapeAdapter] = {
    ViewShape.PAGINATED: PaginatedAdapter(),
    ViewShape.FLAT: FlatAdapter(),
    ViewShape.SINGLETON: SingletonAdapter(),
}


def adapter_for(shape: ViewShape) -> ShapeAdapter:
    return _ADAPTERS[shape]


def adapter_for_key(key: ViewKey) -> ShapeAdapter:
    return _ADAPTERS[shape_for(key)]
