"""Sticker directory triage.

Pending images are classified by a vision model in small concurrent groups.
Stickers land in ``index.json``; everything else is moved to ``trash/``.
GIFs are converted to WebP first when ffmpeg is available.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Container, Dict, Iterable, List, Optional, Protocol

from .config import SkillConfig
from .errors import ConversionError
from .joblog import SkillLogger, build_logger
from .media import convert_gif_to_webp, resolve_ffmpeg_command
from .utils import now_ms, read_json, write_json_atomic
from .vision import GeminiVisionClient, StickerVerdict
from .worker_pool import (
    DEFAULT_GROUP_PAUSE_SEC,
    DEFAULT_ITEM_TIMEOUT_SEC,
    DEFAULT_WIDTH,
    run_in_groups,
)

IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
INDEX_NAME = "index.json"

ACTION_INDEX = "index"
ACTION_TRASH = "trash"
ACTION_SKIP = "skip"


class StickerClassifier(Protocol):
    def classify(self, image_bytes: bytes, mime_type: str) -> StickerVerdict:
        ...


def mime_type_for(name: str) -> str:
    ext = Path(name).suffix.lower()
    if ext == ".png":
        return "image/png"
    if ext == ".webp":
        return "image/webp"
    return "image/jpeg"


class StickerIndex:
    def __init__(self, path: Path, logger: SkillLogger) -> None:
        self.path = path
        self.logger = logger

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = read_json(self.path)
            if not isinstance(data, dict):
                raise ValueError("index is not a JSON object")
            return data
        except (OSError, ValueError):
            self.logger.log(f"Failed to parse {self.path.name}. Backing up and starting fresh.")
            try:
                os.replace(self.path, self.path.with_name(self.path.name + ".bak"))
            except OSError as exc:
                self.logger.log(f"Backup of {self.path.name} failed: {exc}")
            return {}

    def save(self, index: Dict[str, Any]) -> bool:
        try:
            write_json_atomic(self.path, index)
        except OSError as exc:
            self.logger.log(f"Failed to save index atomically: {exc}")
            return False
        return True


@dataclass
class StickerResult:
    action: str
    name: str
    entry: Optional[Dict[str, Any]] = None


@dataclass
class AnalysisReport:
    pending: int = 0
    indexed: int = 0
    trashed: int = 0
    skipped: int = 0
    failed: int = 0
    stale_removed: int = 0
    failures: List[str] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"Indexed {self.indexed}, trashed {self.trashed}, skipped {self.skipped}, "
            f"failed {self.failed} of {self.pending} pending files."
        )


class StickerAnalyzer:
    def __init__(
        self,
        sticker_dir: Path,
        classifier: StickerClassifier,
        logger: SkillLogger,
        ffmpeg: Optional[str] = None,
        trash_dir: Optional[Path] = None,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        self.sticker_dir = sticker_dir
        self.trash_dir = trash_dir or sticker_dir / "trash"
        self.classifier = classifier
        self.logger = logger
        self.ffmpeg = ffmpeg
        self.clock_ms = clock_ms

    def analyze(self, name: str, indexed: Container[str]) -> StickerResult:
        """Classify one file. Raises on conversion or classification failure."""
        file_path = self.sticker_dir / name
        current = name

        if file_path.suffix.lower() == ".gif":
            if not self.ffmpeg:
                self.logger.log(f"[SKIP] {name} (no ffmpeg)")
                return StickerResult(ACTION_SKIP, name)
            webp_path = file_path.with_suffix(".webp")
            if webp_path.exists():
                self.logger.log(f"[ reusing ] Found existing conversion for {name}")
            else:
                self.logger.log(f"[ converting ] {name} -> WebP")
                try:
                    webp_path = convert_gif_to_webp(self.ffmpeg, file_path)
                except ConversionError as exc:
                    raise ConversionError(f"Failed to convert {name}: {exc}") from exc
            file_path = webp_path
            current = webp_path.name
            if current in indexed:
                self.logger.log(f"[ skip ] {current} is already indexed.")
                return StickerResult(ACTION_SKIP, current)

        self.logger.log(f"[ analyzing ] {current}")
        verdict = self.classifier.classify(file_path.read_bytes(), mime_type_for(current))

        if not verdict.is_sticker:
            self.logger.log(f"[ TRASH ] {current} (Not a sticker)")
            self.trash_dir.mkdir(parents=True, exist_ok=True)
            os.replace(file_path, self.trash_dir / current)
            return StickerResult(ACTION_TRASH, current)

        self.logger.log(f"[ INDEX ] {current}: {verdict.emotion}")
        entry = {
            "path": str(file_path),
            "emotion": verdict.emotion,
            "keywords": list(verdict.keywords),
            "addedAt": self.clock_ms(),
        }
        return StickerResult(ACTION_INDEX, current, entry)


def remove_stale_entries(index: Dict[str, Any], sticker_dir: Path, present: Container[str]) -> int:
    removed = 0
    for key in list(index):
        if key not in present and not (sticker_dir / key).exists():
            del index[key]
            removed += 1
    return removed


def select_pending(names: Iterable[str], index: Dict[str, Any]) -> List[str]:
    return [name for name in names if Path(name).suffix.lower() in IMAGE_EXTS and name not in index]


def apply_result(index: Dict[str, Any], result: StickerResult) -> bool:
    if result.action == ACTION_INDEX and result.entry is not None:
        index[result.name] = result.entry
        return True
    if result.action == ACTION_TRASH:
        index.pop(result.name, None)
        return True
    return False


def run_analysis(
    analyzer: StickerAnalyzer,
    store: StickerIndex,
    width: int = DEFAULT_WIDTH,
    item_timeout: float = DEFAULT_ITEM_TIMEOUT_SEC,
    pause: float = DEFAULT_GROUP_PAUSE_SEC,
    sleep: Optional[Callable[[float], None]] = None,
) -> AnalysisReport:
    """Triage every pending file; raises ``OSError`` if the directory cannot be listed."""
    logger = analyzer.logger
    report = AnalysisReport()
    index = store.load()

    with os.scandir(analyzer.sticker_dir) as it:
        names = sorted(entry.name for entry in it if entry.is_file() and entry.name != store.path.name)
    present = set(names)

    report.stale_removed = remove_stale_entries(index, analyzer.sticker_dir, present)
    dirty = report.stale_removed > 0
    if dirty:
        logger.log(f"Cleaned up {report.stale_removed} stale entries.")

    pending = select_pending(names, index)
    report.pending = len(pending)
    logger.log(f"Found {len(pending)} pending files.")
    if not pending:
        if dirty:
            store.save(index)
        return report

    indexed = frozenset(index)
    pool_kwargs: Dict[str, Any] = {"width": width, "item_timeout": item_timeout, "pause": pause}
    if sleep is not None:
        pool_kwargs["sleep"] = sleep
    for group in run_in_groups(pending, lambda name: analyzer.analyze(name, indexed), **pool_kwargs):
        logger.log(f"Processing batch {group.start + 1}-{group.end} / {group.total}")
        changed = False
        for outcome in group.outcomes:
            if not outcome.ok or outcome.value is None:
                report.failed += 1
                report.failures.append(outcome.item)
                logger.log(f"[ ERROR ] {outcome.item}: {outcome.error}")
                continue
            result = outcome.value
            if result.action == ACTION_INDEX:
                report.indexed += 1
            elif result.action == ACTION_TRASH:
                report.trashed += 1
            else:
                report.skipped += 1
            changed = apply_result(index, result) or changed
        if changed or dirty:
            store.save(index)
            dirty = False

    logger.log("Analysis complete.")
    return report


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Classify pending sticker images with a vision model and maintain index.json.",
    )
    add_arguments(ap)
    return ap


def add_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--dir", dest="sticker_dir", help="Sticker directory (default: STICKER_DIR).")
    ap.add_argument("--model", help="Vision model (default: GEMINI_MODEL or gemini-2.0-flash).")
    ap.add_argument("--concurrency", type=int, default=DEFAULT_WIDTH, help="Files classified at once (default: 3).")
    ap.add_argument("--timeout", type=float, default=DEFAULT_ITEM_TIMEOUT_SEC, help="Per-file timeout in seconds.")
    ap.add_argument("--log-file", help="Also append diagnostics to this file.")


def run(args: argparse.Namespace, config: Optional[SkillConfig] = None) -> int:
    if args.concurrency < 1:
        raise SystemExit("--concurrency must be >= 1.")
    cfg = config or SkillConfig.from_env()
    logger = build_logger(args.log_file or cfg.log_file)
    if not cfg.gemini_api_key:
        logger.log("Error: GEMINI_API_KEY not set")
        return 1

    sticker_dir = Path(args.sticker_dir).expanduser() if args.sticker_dir else cfg.sticker_dir
    ffmpeg = resolve_ffmpeg_command(cfg.ffmpeg_bin)
    if not ffmpeg:
        logger.log("Warning: ffmpeg not found. GIF conversion will be skipped.")
    client = GeminiVisionClient(
        cfg.gemini_api_key,
        model=args.model or cfg.gemini_model,
        base_url=cfg.gemini_base_url,
        timeout=args.timeout,
    )
    analyzer = StickerAnalyzer(sticker_dir, client, logger, ffmpeg=ffmpeg)
    store = StickerIndex(sticker_dir / INDEX_NAME, logger)
    try:
        report = run_analysis(analyzer, store, width=args.concurrency, item_timeout=args.timeout)
    except OSError as exc:
        logger.log(f"Error reading directory {sticker_dir}: {exc}")
        return 1
    print(report.summary(), flush=True)
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
