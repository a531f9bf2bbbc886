"""Generic selection set shared by the item and agent collections."""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)


class Selection(Generic[K]):
    _ids: set[K]

    def __init__(self, ids: Iterable[K] = ()) -> None:
        self._ids = set(ids)

    def toggle(self, key: K) -> bool:
        """Flip membership of ``key``. Returns True if it is now selected."""
        if key in self._ids:
            self._ids.discard(key)
            return False
        self._ids.add(key)
        return True

    def select_all(self, keys: Iterable[K]) -> None:
        """Replace the selection with exactly ``keys``."""
        self._ids = set(keys)

    def deselect_all(self) -> None:
        self._ids = set()

    def discard(self, key: K) -> None:
        self._ids.discard(key)

    @property
    def ids(self) -> frozenset[K]:
        return frozenset(self._ids)

    def __contains__(self, key: object) -> bool:
        return key in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[K]:
        return iter(self._ids)

    def __repr__(self) -> str:
        return f"Selection({sorted(map(str, self._ids))})"
