from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Set


class OrderedIdSet:
    """Insertion-ordered set of identifiers with oldest-first eviction."""

    def __init__(self, ids: Optional[Iterable[str]] = None) -> None:
        self._order: List[str] = []
        self._members: Set[str] = set()
        for item in ids or ():
            self.add(item)

    def __contains__(self, item: object) -> bool:
        return item in self._members

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._order))

    def add(self, item: str) -> bool:
        """Append ``item`` unless present. Re-adding does not refresh its position."""
        if item in self._members:
            return False
        self._members.add(item)
        self._order.append(item)
        return True

    def evict_to(self, cap: int) -> List[str]:
        if cap < 0:
            raise ValueError("cap must be >= 0")
        overflow = len(self._order) - cap
        if overflow <= 0:
            return []
        evicted = self._order[:overflow]
        del self._order[:overflow]
        self._members.difference_update(evicted)
        return evicted

    def to_list(self) -> List[str]:
        return list(self._order)
