"""Recency-ordered, duplicate-free tab history."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator


@dataclass(frozen=True)
class TabRef:
    """A tab and the window it lives in.

    Two refs are equal when they point at the same tab, whatever the window.
    """

    tab_id: int
    window_id: int = field(compare=False)

    def to_dict(self) -> dict[str, int]:
        return {"tab_id": self.tab_id, "window_id": self.window_id}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "TabRef":
        return cls(tab_id=int(raw["tab_id"]), window_id=int(raw["window_id"]))


def tab_key(value: object) -> object:
    """Identity used for comparisons: the tab id for refs, the value itself otherwise."""
    if isinstance(value, TabRef):
        return value.tab_id
    return value


def same_tab(a: object, b: object) -> bool:
    return tab_key(a) == tab_key(b)


class RecencyQueue:
    """Ordered history where index 0 is the most recently touched tab.

    - add_first moves an existing entry to the front instead of duplicating it
    - capacity is not enforced here; callers trim with remove_last
    - anything that takes an item also accepts a bare tab id
    """

    def __init__(
        self,
        items: Iterable[TabRef] | None = None,
        equals: Callable[[object, object], bool] | None = None,
    ):
        """Initialize the queue.

        Args:
            items: Initial entries, most recent first. Later duplicates are dropped.
            equals: Equality used by lookups; defaults to comparing tab ids.
        """
        self.equals = equals or same_tab
        self._items: list[TabRef] = []
        for item in items or ():
            if self.index_of(item) is None:
                self._items.append(item)

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[TabRef]:
        return iter(list(self._items))

    def __contains__(self, item: object) -> bool:
        return self.index_of(item) is not None

    def __repr__(self) -> str:
        return f"RecencyQueue({self._items!r})"

    def to_list(self) -> list[TabRef]:
        """Return a copy of the entries, most recent first."""
        return list(self._items)

    def index_of(self, item_or_predicate: object) -> int | None:
        """Find the first matching entry.

        Args:
            item_or_predicate: A tab, a tab id, or a callable taking an entry

        Returns:
            Index of the first match, or None if nothing matches
        """
        if callable(item_or_predicate):
            predicate = item_or_predicate
        else:
            def predicate(entry: TabRef) -> bool:
                return self.equals(entry, item_or_predicate)

        for idx, entry in enumerate(self._items):
            if predicate(entry):
                return idx
        return None

    def contains(self, item: object) -> bool:
        return item in self

    def first(self) -> TabRef:
        return self.at(0)

    def last(self) -> TabRef:
        return self.at(len(self._items) - 1)

    def at(self, index: int) -> TabRef:
        """Get the entry at `index`.

        Raises:
            IndexError: If index is outside 0..size()-1 (no negative wrap-around)
        """
        if index < 0 or index >= len(self._items):
            raise IndexError(f"history index {index} out of range (size={len(self._items)})")
        return self._items[index]

    def add_first(self, item: TabRef) -> None:
        """Move `item` to the front, dropping any older entry for the same tab."""
        self.remove(item)
        self._items.insert(0, item)

    def remove_last(self) -> None:
        if self._items:
            self._items.pop()

    def remove(self, item: object) -> bool:
        """Remove the first entry matching `item` (a tab or tab id).

        Returns:
            True if an entry was removed
        """
        idx = self.index_of(item)
        if idx is None:
            return False
        del self._items[idx]
        return True

    def clear(self) -> None:
        self._items = []
