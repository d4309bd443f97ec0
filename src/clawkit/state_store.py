from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from .joblog import SkillLogger
from .utils import read_json, write_json_atomic


class StateRepository(Protocol):
    def load(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    def save(self, key: str, state: Dict[str, Any]) -> None:
        ...


class MemoryRepository:
    """In-process repository; ``writes`` counts saves so callers can assert no-ops."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self._data: Dict[str, Dict[str, Any]] = copy.deepcopy(initial or {})
        self.writes = 0

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        state = self._data.get(key)
        return copy.deepcopy(state) if state is not None else None

    def save(self, key: str, state: Dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(state)
        self.writes += 1


class JsonFileRepository:
    """Keyed states stored together in one JSON object on disk.

    A missing file, unreadable JSON or a non-object document all load as an
    empty mapping. Saves rewrite the whole mapping atomically.

    ``flat_key`` names a state that older files stored as the whole document
    instead of under its key. Such a file loads as that state, and the first
    save migrates it to the keyed layout.
    """

    def __init__(
        self,
        path: Path,
        logger: Optional[SkillLogger] = None,
        flat_key: Optional[str] = None,
    ) -> None:
        self.path = path
        self.logger = logger
        self.flat_key = flat_key

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = read_json(self.path)
        except (OSError, ValueError) as exc:
            if self.logger:
                self.logger.log(f"State file {self.path} unreadable ({exc}); starting empty.")
            return {}
        if not isinstance(data, dict):
            if self.logger:
                self.logger.log(f"State file {self.path} is not a JSON object; starting empty.")
            return {}
        return data

    def _is_flat(self, data: Dict[str, Any], key: str) -> bool:
        return key == self.flat_key and bool(data) and key not in data

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        data = self._read_all()
        if self._is_flat(data, key):
            return data
        state = data.get(key)
        return state if isinstance(state, dict) else None

    def save(self, key: str, state: Dict[str, Any]) -> None:
        data = self._read_all()
        if self._is_flat(data, key):
            data = {}
        data[key] = state
        write_json_atomic(self.path, data)
