"""Application state: the in-memory mirror, its filters and selections."""

from promption.state.app_store import AppStore
from promption.state.filters import ItemFilter, filter_items
from promption.state.selection import Selection

__all__ = [
    "AppStore",
    "ItemFilter",
    "Selection",
    "filter_items",
]
