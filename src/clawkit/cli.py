import argparse
import shutil
from typing import Iterable, Optional

from . import __version__
from . import arxiv_watcher, git_sync, interaction_logger, sticker_analyzer


def build_parser() -> argparse.ArgumentParser:
    epilog = (
        "Examples:\n"
        "  clawkit arxiv \"cat:cs.AI AND ti:agents\" --limit 10 --days 7 --format markdown\n"
        "  clawkit arxiv \"diffusion models\" --watch --notify https://hooks.example/arxiv\n"
        "  clawkit sync-log\n"
        "  clawkit git-sync -- --push\n"
        "  clawkit stickers --dir ~/.openclaw/media/stickers\n"
        "  python run.py sync-log --sessions-dir ./sessions --history ./memory/master_history.json\n"
        "\n"
        "Settings come from the environment and <workspace>/.env (CLAWKIT_WORKSPACE, OPENCLAW_SESSIONS_DIR,\n"
        "STICKER_DIR, GEMINI_API_KEY, GEMINI_MODEL, GIT_SYNC_SCRIPT, FFMPEG_BIN, CLAWKIT_LOG_FILE).\n"
    )

    class CleanHelpFormatter(argparse.RawDescriptionHelpFormatter):
        def __init__(self, prog: str) -> None:
            width = shutil.get_terminal_size((120, 20)).columns
            super().__init__(prog, width=width, max_help_position=32)

    ap = argparse.ArgumentParser(
        prog="clawkit",
        description="Agent workspace skills: arXiv watch, session history sync, git sync and sticker triage.",
        formatter_class=CleanHelpFormatter,
        epilog=epilog,
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = ap.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    arxiv = sub.add_parser("arxiv", help="Search arXiv (cached); --watch reports only unseen papers.")
    arxiv_watcher.add_arguments(arxiv)
    arxiv.set_defaults(handler=arxiv_watcher.run)

    sync_log = sub.add_parser("sync-log", help="Append new session-log turns to the history file.")
    interaction_logger.add_arguments(sync_log)
    sync_log.set_defaults(handler=interaction_logger.run)

    git = sub.add_parser("git-sync", help="Run the workspace sync.sh with forwarded arguments.")
    git_sync.add_arguments(git)
    git.set_defaults(handler=git_sync.run)

    stickers = sub.add_parser("stickers", help="Classify pending sticker images and update index.json.")
    sticker_analyzer.add_arguments(stickers)
    stickers.set_defaults(handler=sticker_analyzer.run)
    return ap


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.handler(args)
