from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from .errors import ConversionError

WEBP_ARGS = ["-c:v", "libwebp", "-lossless", "0", "-q:v", "75", "-loop", "0", "-an", "-vsync", "0", "-y"]
CONVERT_TIMEOUT_SEC = 120


def resolve_ffmpeg_command(explicit: Optional[str] = None) -> Optional[str]:
    env_bin = str(explicit or os.getenv("FFMPEG_BIN", "")).strip()
    if env_bin and Path(env_bin).is_file():
        return env_bin
    return shutil.which("ffmpeg")


def build_webp_command(ffmpeg: str, src: Path, dst: Path) -> List[str]:
    return [ffmpeg, "-i", str(src), *WEBP_ARGS, str(dst)]


def convert_gif_to_webp(ffmpeg: str, gif_path: Path) -> Path:
    """Convert ``gif_path`` to a sibling ``.webp``; the GIF is removed only once the output exists."""
    webp_path = gif_path.with_suffix(".webp")
    try:
        proc = subprocess.run(
            build_webp_command(ffmpeg, gif_path, webp_path),
            capture_output=True,
            text=True,
            timeout=CONVERT_TIMEOUT_SEC,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise ConversionError(f"ffmpeg failed for {gif_path.name}: {exc}") from exc
    if proc.returncode != 0:
        detail = (proc.stderr or "").strip().splitlines()[-1:] or ["no output"]
        raise ConversionError(f"ffmpeg exited {proc.returncode} for {gif_path.name}: {detail[0]}")
    if not webp_path.exists():
        raise ConversionError("Conversion failed (no output file)")
    gif_path.unlink()
    return webp_path
