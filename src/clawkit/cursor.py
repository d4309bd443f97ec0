from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .state_store import StateRepository

DEFAULT_CURSOR_KEY = "session_log"

# Receives the newly read bytes, returns how many of them were fully processed.
ChunkProcessor = Callable[[bytes], int]


@dataclass
class CursorState:
    tracked_resource_id: str = ""
    byte_offset: int = 0

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "CursorState":
        if not isinstance(raw, dict):
            return cls()
        resource = raw.get("lastFile")
        try:
            offset = int(raw.get("lastProcessedBytes") or 0)
        except (TypeError, ValueError):
            offset = 0
        return cls(
            tracked_resource_id=resource if isinstance(resource, str) else "",
            byte_offset=max(0, offset),
        )

    def to_dict(self) -> dict:
        return {"lastFile": self.tracked_resource_id, "lastProcessedBytes": self.byte_offset}


@dataclass
class TailOutcome:
    resource_id: str
    start: int
    size: int
    read_bytes: int = 0
    consumed_bytes: int = 0
    rotated: bool = False
    saved: bool = False

    @property
    def has_new_data(self) -> bool:
        return self.read_bytes > 0


class ByteCursorTailer:
    """Reads only the bytes appended to a file since the last successful run.

    The stored offset moves forward by what ``process`` reports as consumed and
    is persisted only after ``process`` returns. If it raises, the cursor stays
    put and the same bytes are offered again next run.
    """

    def __init__(self, repository: StateRepository, key: str = DEFAULT_CURSOR_KEY) -> None:
        self.repository = repository
        self.key = key

    def load_state(self) -> CursorState:
        return CursorState.from_dict(self.repository.load(self.key))

    def run(self, resource: Path, process: ChunkProcessor) -> TailOutcome:
        resource_id = str(resource)
        state = self.load_state()
        rotated = state.tracked_resource_id != resource_id
        start = 0 if rotated else state.byte_offset
        size = resource.stat().st_size
        outcome = TailOutcome(resource_id=resource_id, start=start, size=size, rotated=rotated)
        if size <= start:
            return outcome

        with resource.open("rb") as f:
            f.seek(start)
            data = f.read(size - start)
        outcome.read_bytes = len(data)

        consumed = process(data)
        if consumed < 0 or consumed > len(data):
            raise ValueError(f"processor consumed {consumed} of {len(data)} bytes")
        outcome.consumed_bytes = consumed

        updated = CursorState(tracked_resource_id=resource_id, byte_offset=start + consumed)
        if updated != state:
            self.repository.save(self.key, updated.to_dict())
            outcome.saved = True
        return outcome
