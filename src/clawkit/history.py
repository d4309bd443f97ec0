from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .joblog import SkillLogger
from .normalizer import AccumulatorRecord
from .utils import read_json, write_json_atomic


class HistoryStore:
    """``{"sessions": [...]}`` document that normalized records are appended to."""

    def __init__(self, path: Path, logger: Optional[SkillLogger] = None) -> None:
        self.path = path
        self.logger = logger

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"sessions": []}
        try:
            data = read_json(self.path)
        except (OSError, ValueError) as exc:
            if self.logger:
                self.logger.log(f"History file {self.path} unreadable ({exc}); treating as empty.")
            return {"sessions": []}
        if not isinstance(data, dict):
            return {"sessions": []}
        if not isinstance(data.get("sessions"), list):
            data["sessions"] = []
        return data

    def records(self) -> List[Dict[str, Any]]:
        return list(self.load()["sessions"])

    def append(self, records: Iterable[AccumulatorRecord]) -> int:
        batch = [record.to_dict() for record in records]
        if not batch:
            return 0
        data = self.load()
        data["sessions"].extend(batch)
        write_json_atomic(self.path, data)
        return len(batch)
