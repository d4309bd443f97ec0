from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from .ordered_ids import OrderedIdSet
from .state_store import StateRepository
from .utils import iso_utc

SEEN_CAP = 200


@dataclass
class SeenSetState:
    seen_ids: List[str] = field(default_factory=list)
    last_updated: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "SeenSetState":
        if not isinstance(raw, dict):
            return cls()
        ids = raw.get("seenIds")
        seen = [str(item) for item in ids if item] if isinstance(ids, list) else []
        updated = raw.get("lastUpdated")
        return cls(seen_ids=seen, last_updated=updated if isinstance(updated, str) else None)

    def to_dict(self) -> dict:
        return {"seenIds": list(self.seen_ids), "lastUpdated": self.last_updated}


@dataclass
class DedupOutcome:
    new: List[str]
    already_seen: List[str]
    saved: bool


class SeenSetDeduplicator:
    def __init__(
        self,
        repository: StateRepository,
        cap: int = SEEN_CAP,
        clock: Callable[[], str] = iso_utc,
    ) -> None:
        if cap < 1:
            raise ValueError("cap must be >= 1")
        self.repository = repository
        self.cap = cap
        self.clock = clock

    def load(self, key: str) -> SeenSetState:
        return SeenSetState.from_dict(self.repository.load(key))

    def filter_new(self, key: str, candidates: Iterable[Optional[str]]) -> DedupOutcome:
        """Split ``candidates`` into unseen and seen ids, persisting only when something is new."""
        state = self.load(key)
        seen = OrderedIdSet(state.seen_ids)
        new: List[str] = []
        already: List[str] = []
        batch = set()
        for candidate in candidates:
            if not candidate or candidate in batch:
                continue
            batch.add(candidate)
            if candidate in seen:
                already.append(candidate)
            else:
                new.append(candidate)

        if not new:
            return DedupOutcome(new=[], already_seen=already, saved=False)

        for item in new:
            seen.add(item)
        seen.evict_to(self.cap)
        updated = SeenSetState(seen_ids=seen.to_list(), last_updated=self.clock())
        self.repository.save(key, updated.to_dict())
        return DedupOutcome(new=new, already_seen=already, saved=True)
