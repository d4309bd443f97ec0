from __future__ import annotations

import datetime as dt
import sys
from pathlib import Path
from typing import Optional, TextIO


class SkillLogger:
    """Timestamped diagnostics for a single skill run.

    Lines go to stderr so stdout stays reserved for the result payload, and are
    optionally mirrored into ``log_path``.
    """

    def __init__(
        self,
        log_path: Optional[Path] = None,
        also_stderr: bool = True,
        stream: Optional[TextIO] = None,
    ):
        self.log_path = log_path
        self.also_stderr = also_stderr
        self.stream = stream
        self.lines: list[str] = []

    def log(self, msg: str) -> None:
        stamp = dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{stamp}] {msg}"
        self.lines.append(line)
        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        if self.also_stderr:
            print(line, file=self.stream or sys.stderr, flush=True)


def build_logger(log_file: Optional[str] = None, quiet: bool = False) -> SkillLogger:
    path = Path(log_file).expanduser() if log_file else None
    return SkillLogger(log_path=path, also_stderr=not quiet)
