import json

import pytest

from clawkit.cursor import ByteCursorTailer, CursorState
from clawkit.history import HistoryStore
from clawkit.interaction_logger import sync_session_log
from clawkit.normalizer import normalize_buffer
from clawkit.state_store import MemoryRepository


def _line(role: str, text: str) -> str:
    return json.dumps({"type": "message", "message": {"role": role, "content": text}, "timestamp": "t"}) + "\n"


def _collecting_processor(sink: list):
    def process(chunk: bytes) -> int:
        result = normalize_buffer(chunk)
        sink.extend((r.role, r.content) for r in result.records)
        return result.consumed_bytes

    return process


def test_second_run_without_new_data_is_a_no_op(tmp_path) -> None:
    log = tmp_path / "s.jsonl"
    log.write_text(_line("user", "a") + _line("assistant", "b"), encoding="utf-8")
    repo = MemoryRepository()
    tailer = ByteCursorTailer(repo)
    seen: list = []
    first = tailer.run(log, _collecting_processor(seen))
    assert first.saved is True
    writes = repo.writes
    offset = tailer.load_state().byte_offset

    second = tailer.run(log, _collecting_processor(seen))
    assert second.has_new_data is False
    assert second.saved is False
    assert repo.writes == writes
    assert tailer.load_state().byte_offset == offset == log.stat().st_size
    assert seen == [("user", "a"), ("assistant", "b")]


def test_two_runs_over_growing_file_match_single_run(tmp_path) -> None:
    lines = [_line("user", f"m{i}") for i in range(6)]
    grown = tmp_path / "grown.jsonl"
    grown.write_text("".join(lines[:3]), encoding="utf-8")
    incremental: list = []
    tailer = ByteCursorTailer(MemoryRepository())
    tailer.run(grown, _collecting_processor(incremental))
    with grown.open("a", encoding="utf-8") as f:
        f.write("".join(lines[3:]))
    tailer.run(grown, _collecting_processor(incremental))

    whole = tmp_path / "whole.jsonl"
    whole.write_text("".join(lines), encoding="utf-8")
    single: list = []
    ByteCursorTailer(MemoryRepository()).run(whole, _collecting_processor(single))

    assert incremental == single
    assert len(single) == 6


def test_partial_line_is_picked_up_once_completed(tmp_path) -> None:
    log = tmp_path / "s.jsonl"
    full = _line("user", "split")
    log.write_text(_line("user", "first") + full[:10], encoding="utf-8")
    seen: list = []
    tailer = ByteCursorTailer(MemoryRepository())
    tailer.run(log, _collecting_processor(seen))
    assert seen == [("user", "first")]
    with log.open("a", encoding="utf-8") as f:
        f.write(full[10:])
    tailer.run(log, _collecting_processor(seen))
    assert seen == [("user", "first"), ("user", "split")]


def test_new_resource_resets_offset(tmp_path) -> None:
    old = tmp_path / "old.jsonl"
    new = tmp_path / "new.jsonl"
    old.write_text(_line("user", "old") * 5, encoding="utf-8")
    new.write_text(_line("user", "new"), encoding="utf-8")
    repo = MemoryRepository()
    tailer = ByteCursorTailer(repo)
    tailer.run(old, _collecting_processor([]))
    seen: list = []
    outcome = tailer.run(new, _collecting_processor(seen))
    assert outcome.rotated is True
    assert outcome.start == 0
    assert seen == [("user", "new")]
    assert tailer.load_state() == CursorState(str(new), new.stat().st_size)


def test_cursor_not_saved_when_processing_fails(tmp_path) -> None:
    log = tmp_path / "s.jsonl"
    log.write_text(_line("user", "a"), encoding="utf-8")
    repo = MemoryRepository()
    tailer = ByteCursorTailer(repo)

    def boom(chunk: bytes) -> int:
        raise RuntimeError("downstream failed")

    with pytest.raises(RuntimeError):
        tailer.run(log, boom)
    assert repo.writes == 0
    seen: list = []
    tailer.run(log, _collecting_processor(seen))
    assert seen == [("user", "a")]


def test_sync_creates_history_with_two_records_in_order(tmp_path) -> None:
    log = tmp_path / "session.jsonl"
    log.write_text(_line("user", "question") + _line("assistant", "answer"), encoding="utf-8")
    history_path = tmp_path / "memory" / "master_history.json"
    report = sync_session_log(log, ByteCursorTailer(MemoryRepository()), HistoryStore(history_path))
    assert report.appended == 2
    data = json.loads(history_path.read_text(encoding="utf-8"))
    assert [(r["role"], r["content"]) for r in data["sessions"]] == [("user", "question"), ("assistant", "answer")]
