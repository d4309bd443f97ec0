from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .config import SkillConfig
from .cursor import DEFAULT_CURSOR_KEY, ByteCursorTailer, TailOutcome
from .history import HistoryStore
from .joblog import SkillLogger, build_logger
from .normalizer import normalize_buffer
from .state_store import JsonFileRepository

SESSION_LOG_SUFFIX = ".jsonl"


@dataclass
class SyncReport:
    session_file: Optional[Path]
    appended: int = 0
    skipped_lines: int = 0
    tail: Optional[TailOutcome] = None


def find_latest_session_file(sessions_dir: Path) -> Optional[Path]:
    if not sessions_dir.is_dir():
        return None
    candidates = []
    for path in sessions_dir.iterdir():
        if path.suffix != SESSION_LOG_SUFFIX or not path.is_file():
            continue
        try:
            candidates.append((path.stat().st_mtime, path.name, path))
        except OSError:
            continue
    if not candidates:
        return None
    candidates.sort(reverse=True)
    return candidates[0][2]


def sync_session_log(
    session_file: Path,
    tailer: ByteCursorTailer,
    history: HistoryStore,
    logger: Optional[SkillLogger] = None,
) -> SyncReport:
    report = SyncReport(session_file=session_file)

    def process(chunk: bytes) -> int:
        result = normalize_buffer(chunk)
        report.appended = history.append(result.records)
        report.skipped_lines = result.skipped_lines
        return result.consumed_bytes

    report.tail = tailer.run(session_file, process)
    if report.skipped_lines and logger:
        logger.log(f"Skipped {report.skipped_lines} unreadable lines in {session_file.name}.")
    return report


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Append new conversation turns from the newest agent session log to the history file.",
    )
    add_arguments(ap)
    return ap


def add_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--sessions-dir", help="Directory holding *.jsonl session logs (default: OPENCLAW_SESSIONS_DIR).")
    ap.add_argument("--history", help="History JSON file (default: <workspace>/memory/master_history.json).")
    ap.add_argument("--state", help="Cursor state file (default: <workspace>/skills/interaction-logger/sync_state.json).")
    ap.add_argument("--log-file", help="Also append diagnostics to this file.")
    ap.add_argument("--quiet", action="store_true", help="Suppress diagnostics on stderr.")


def run(args: argparse.Namespace, config: Optional[SkillConfig] = None) -> int:
    cfg = config or SkillConfig.from_env()
    logger = build_logger(args.log_file or cfg.log_file, quiet=args.quiet)
    sessions_dir = Path(args.sessions_dir).expanduser() if args.sessions_dir else cfg.sessions_dir
    session_file = find_latest_session_file(sessions_dir)
    if session_file is None:
        print("Synced 0 messages.", flush=True)
        return 0

    state_path = Path(args.state).expanduser() if args.state else cfg.cursor_state_file
    history_path = Path(args.history).expanduser() if args.history else cfg.history_file
    repository = JsonFileRepository(state_path, logger=logger, flat_key=DEFAULT_CURSOR_KEY)
    tailer = ByteCursorTailer(repository, key=DEFAULT_CURSOR_KEY)
    history = HistoryStore(history_path, logger=logger)
    try:
        report = sync_session_log(session_file, tailer, history, logger=logger)
    except OSError as exc:
        logger.log(f"Session sync failed for {session_file}: {exc}")
        return 1
    print(f"Synced {report.appended} messages.", flush=True)
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
