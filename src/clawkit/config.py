from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .utils import env_float

DEFAULT_SESSIONS_DIR = "~/.openclaw/agents/main/sessions"
DEFAULT_STICKER_DIR = "~/.openclaw/media/stickers"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_FETCH_JITTER_SEC = 2.0


def _env_path(name: str, default: str) -> Path:
    raw = (os.getenv(name) or "").strip()
    return Path(raw or default).expanduser()


@dataclass
class SkillConfig:
    workspace: Path
    sessions_dir: Path
    sticker_dir: Path
    git_sync_script: Path
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_base_url: Optional[str] = None
    ffmpeg_bin: Optional[str] = None
    fetch_jitter_sec: float = DEFAULT_FETCH_JITTER_SEC
    log_file: Optional[str] = None

    @property
    def memory_dir(self) -> Path:
        return self.workspace / "memory"

    @property
    def history_file(self) -> Path:
        return self.memory_dir / "master_history.json"

    @property
    def cursor_state_file(self) -> Path:
        return self.workspace / "skills" / "interaction-logger" / "sync_state.json"

    @property
    def seen_state_file(self) -> Path:
        return self.memory_dir / "arxiv_watch_state.json"

    @property
    def arxiv_cache_dir(self) -> Path:
        return self.memory_dir / "arxiv_cache"

    @classmethod
    def from_env(cls, workspace: Optional[Path] = None) -> "SkillConfig":
        """Resolve settings from the environment after loading ``<workspace>/.env``.

        Variables already present in the process environment take precedence
        over the ``.env`` file.
        """
        root = workspace or _env_path("CLAWKIT_WORKSPACE", os.getcwd())
        root = root.expanduser().resolve()
        env_file = root / ".env"
        if env_file.exists():
            load_dotenv(env_file, override=False)
        script_raw = (os.getenv("GIT_SYNC_SCRIPT") or "").strip()
        return cls(
            workspace=root,
            sessions_dir=_env_path("OPENCLAW_SESSIONS_DIR", DEFAULT_SESSIONS_DIR),
            sticker_dir=_env_path("STICKER_DIR", DEFAULT_STICKER_DIR),
            git_sync_script=Path(script_raw).expanduser() if script_raw else root / "skills" / "git-sync" / "sync.sh",
            gemini_api_key=(os.getenv("GEMINI_API_KEY") or "").strip(),
            gemini_model=(os.getenv("GEMINI_MODEL") or "").strip() or DEFAULT_GEMINI_MODEL,
            gemini_base_url=(os.getenv("GEMINI_BASE_URL") or "").strip() or None,
            ffmpeg_bin=(os.getenv("FFMPEG_BIN") or "").strip() or None,
            fetch_jitter_sec=max(0.0, env_float("ARXIV_FETCH_JITTER_SEC", DEFAULT_FETCH_JITTER_SEC)),
            log_file=(os.getenv("CLAWKIT_LOG_FILE") or "").strip() or None,
        )
