import json
import os

from clawkit import interaction_logger
from clawkit.interaction_logger import find_latest_session_file


def _line(text: str) -> str:
    return json.dumps({"type": "message", "message": {"role": "user", "content": text}}) + "\n"


def test_find_latest_session_file_picks_newest_jsonl(tmp_path) -> None:
    older = tmp_path / "a.jsonl"
    newer = tmp_path / "b.jsonl"
    other = tmp_path / "c.txt"
    for path in (older, newer, other):
        path.write_text("", encoding="utf-8")
    os.utime(older, (1_000, 1_000))
    os.utime(newer, (2_000, 2_000))
    os.utime(other, (3_000, 3_000))
    assert find_latest_session_file(tmp_path) == newer


def test_find_latest_session_file_missing_dir(tmp_path) -> None:
    assert find_latest_session_file(tmp_path / "missing") is None
    assert find_latest_session_file(tmp_path) is None


def test_main_syncs_and_is_idempotent(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CLAWKIT_WORKSPACE", str(tmp_path))
    sessions = tmp_path / "sessions"
    sessions.mkdir()
    (sessions / "run.jsonl").write_text(_line("one") + "garbage\n" + _line("two"), encoding="utf-8")
    argv = ["--sessions-dir", str(sessions), "--quiet"]

    assert interaction_logger.main(argv) == 0
    assert interaction_logger.main(argv) == 0

    history = json.loads((tmp_path / "memory" / "master_history.json").read_text(encoding="utf-8"))
    assert [r["content"] for r in history["sessions"]] == ["one", "two"]
    state = json.loads((tmp_path / "skills" / "interaction-logger" / "sync_state.json").read_text(encoding="utf-8"))
    assert state["session_log"]["lastProcessedBytes"] == (sessions / "run.jsonl").stat().st_size


def test_main_without_sessions_is_silent_success(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CLAWKIT_WORKSPACE", str(tmp_path))
    assert interaction_logger.main(["--sessions-dir", str(tmp_path / "none"), "--quiet"]) == 0
    assert not (tmp_path / "memory").exists()


def test_main_reports_synced_count_on_stdout(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("CLAWKIT_WORKSPACE", str(tmp_path))
    sessions = tmp_path / "sessions"
    sessions.mkdir()
    log = sessions / "run.jsonl"
    log.write_text(_line("one") + _line("two"), encoding="utf-8")
    argv = ["--sessions-dir", str(sessions), "--quiet"]

    assert interaction_logger.main(argv) == 0
    assert capsys.readouterr().out == "Synced 2 messages.\n"
    assert interaction_logger.main(argv) == 0
    assert capsys.readouterr().out == "Synced 0 messages.\n"
    assert interaction_logger.main(["--sessions-dir", str(tmp_path / "none"), "--quiet"]) == 0
    assert capsys.readouterr().out == "Synced 0 messages.\n"


def test_main_resumes_from_flat_legacy_state(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CLAWKIT_WORKSPACE", str(tmp_path))
    sessions = tmp_path / "sessions"
    sessions.mkdir()
    log = sessions / "run.jsonl"
    log.write_text(_line("one") + _line("two"), encoding="utf-8")
    state_file = tmp_path / "skills" / "interaction-logger" / "sync_state.json"
    state_file.parent.mkdir(parents=True)
    state_file.write_text(
        json.dumps({"lastProcessedBytes": log.stat().st_size, "lastFile": str(log)}), encoding="utf-8"
    )
    history_file = tmp_path / "memory" / "master_history.json"
    history_file.parent.mkdir(parents=True)
    history_file.write_text(
        json.dumps({"sessions": [{"timestamp": "t", "role": "user", "content": c} for c in ("one", "two")]}),
        encoding="utf-8",
    )

    with log.open("a", encoding="utf-8") as f:
        f.write(_line("three"))
    assert interaction_logger.main(["--sessions-dir", str(sessions), "--quiet"]) == 0

    history = json.loads(history_file.read_text(encoding="utf-8"))
    assert [r["content"] for r in history["sessions"]] == ["one", "two", "three"]
    state = json.loads(state_file.read_text(encoding="utf-8"))
    assert state == {"session_log": {"lastFile": str(log), "lastProcessedBytes": log.stat().st_size}}
