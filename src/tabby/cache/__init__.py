"""View cache layer — keys, shapes, and the store.

Addresses named views uniformly and iterates/fans out over their contents
without callers knowing each view's physical shape.
"""

from tabby.cache.keys import ViewKey, ViewShape, shape_for
from tabby.cache.shapes import (
    Cursors,
    FlatAdapter,
    Page,
    PaginatedAdapter,
    PaginatedData,
    ShapeAdapter,
    SingletonAdapter,
    adapter_for,
    adapter_for_key,
)
from tabby.cache.store import FanOutResult, FetchTicket, ViewCache, ViewEntry

__all__ = [
    "Cursors",
    "FanOutResult",
    "FetchTicket",
    "FlatAdapter",
    "Page",
    "PaginatedAdapter",
    "PaginatedData",
    "ShapeAdapter",
    "SingletonAdapter",
    "ViewCache",
    "ViewEntry",
    "ViewKey",
    "ViewShape",
    "adapter_for",
    "adapter_for_key",
    "shape_for",
]
