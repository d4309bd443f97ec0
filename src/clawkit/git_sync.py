from __future__ import annotations

import argparse
import os
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import SkillConfig
from .joblog import SkillLogger, build_logger


def build_command(script: Path, args: Sequence[str]) -> List[str]:
    if os.access(script, os.X_OK):
        return [str(script), *args]
    shell = shutil.which("bash") or "/bin/sh"
    return [shell, str(script), *args]


def launch(script: Path, args: Sequence[str], logger: SkillLogger) -> int:
    """Run the sync script with inherited stdio and hand back its exit code."""
    if not script.is_file():
        logger.log(f"Failed to start subprocess: {script} not found")
        return 1
    command = build_command(script, args)
    try:
        proc = subprocess.run(command, cwd=str(script.parent), check=False)
    except OSError as exc:
        logger.log(f"Failed to start subprocess: {exc}")
        return 1
    return proc.returncode


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Run the workspace git sync script, forwarding any arguments.")
    add_arguments(ap)
    return ap


def add_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--script", help="Path to sync.sh (default: GIT_SYNC_SCRIPT or <workspace>/skills/git-sync/sync.sh).")
    ap.add_argument("script_args", nargs=argparse.REMAINDER, help="Arguments passed through to sync.sh.")


def run(args: argparse.Namespace, config: Optional[SkillConfig] = None) -> int:
    cfg = config or SkillConfig.from_env()
    logger = build_logger(cfg.log_file)
    script = Path(args.script).expanduser() if args.script else cfg.git_sync_script
    forwarded = list(args.script_args or [])
    if forwarded and forwarded[0] == "--":
        forwarded = forwarded[1:]
    return launch(script, forwarded, logger)


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
