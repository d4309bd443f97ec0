"""Turn raw session-log bytes into conversation records.

Session logs are JSONL. Each complete line is one event; only ``message``
events with a role and some text become records. Anything else, including
garbage lines, is skipped without raising.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from .utils import iso_utc


@dataclass(frozen=True)
class ParsedEvent:
    payload: Dict[str, Any]


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseResult = Union[ParsedEvent, ParseFailure]


@dataclass(frozen=True)
class AccumulatorRecord:
    timestamp: str
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"timestamp": self.timestamp, "role": self.role, "content": self.content}


@dataclass
class NormalizeResult:
    records: List[AccumulatorRecord]
    consumed_bytes: int
    skipped_lines: int = 0


def parse_line(line: str) -> ParseResult:
    text = line.strip()
    if not text:
        return ParseFailure("blank")
    try:
        value = json.loads(text)
    except ValueError:
        return ParseFailure("invalid_json")
    if not isinstance(value, dict):
        return ParseFailure("not_an_object")
    return ParsedEvent(value)


def flatten_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for fragment in content:
            if isinstance(fragment, dict):
                text = fragment.get("text")
                if isinstance(text, str):
                    parts.append(text)
        return "".join(parts)
    return ""


def event_to_record(event: ParsedEvent, clock: Callable[[], str] = iso_utc) -> Optional[AccumulatorRecord]:
    payload = event.payload
    if payload.get("type") != "message":
        return None
    message = payload.get("message")
    if not isinstance(message, dict):
        return None
    role = message.get("role")
    if not isinstance(role, str) or not role:
        return None
    content = flatten_content(message.get("content"))
    if not content:
        return None
    stamp = payload.get("timestamp")
    return AccumulatorRecord(
        timestamp=stamp if isinstance(stamp, str) and stamp else clock(),
        role=role,
        content=content,
    )


def normalize_buffer(raw: bytes, clock: Callable[[], str] = iso_utc) -> NormalizeResult:
    """Normalize every complete line in ``raw``.

    ``consumed_bytes`` stops at the last newline: a trailing partial line is
    neither parsed nor counted, so the caller's cursor leaves it for next time.
    """
    end = raw.rfind(b"\n")
    if end < 0:
        return NormalizeResult(records=[], consumed_bytes=0)
    complete = raw[: end + 1]
    records: List[AccumulatorRecord] = []
    skipped = 0
    for chunk in complete.split(b"\n")[:-1]:
        result = parse_line(chunk.decode("utf-8", errors="replace"))
        if isinstance(result, ParseFailure):
            if result.reason != "blank":
                skipped += 1
            continue
        record = event_to_record(result, clock=clock)
        if record is None:
            continue
        records.append(record)
    return NormalizeResult(records=records, consumed_bytes=len(complete), skipped_lines=skipped)
