"""Pure item filtering: substring search, type match, and tag intersection."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from promption.models import Item, ItemType


@dataclass(frozen=True)
class ItemFilter:
    """The three filter predicates; an empty predicate matches everything."""

    search: str = ""
    item_type: ItemType | None = None
    tag_ids: frozenset[str] = frozenset()

    def is_empty(self) -> bool:
        return not self.search and self.item_type is None and not self.tag_ids


def matches_search(item: Item, query: str) -> bool:
    if not query:
        return True
    q = query.lower()
    return q in item.name.lower() or q in item.content.lower()


def matches_type(item: Item, item_type: ItemType | None) -> bool:
    return item_type is None or item.item_type == item_type


def matches_tags(item: Item, tag_ids: frozenset[str]) -> bool:
    # Any selected tag is enough (OR across the tag filter).
    if not tag_ids:
        return True
    return not tag_ids.isdisjoint(item.tag_ids())


def filter_items(items: Iterable[Item], filt: ItemFilter) -> list[Item]:
    """Return the items satisfying every predicate, preserving input order."""
    return [
        item
        for item in items
        if matches_search(item, filt.search)
        and matches_type(item, filt.item_type)
        and matches_tags(item, filt.tag_ids)
    ]
