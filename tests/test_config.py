from pathlib import Path

from clawkit.config import DEFAULT_GEMINI_MODEL, SkillConfig

ENV_NAMES = [
    "OPENCLAW_SESSIONS_DIR",
    "STICKER_DIR",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GIT_SYNC_SCRIPT",
    "FFMPEG_BIN",
    "ARXIV_FETCH_JITTER_SEC",
    "CLAWKIT_LOG_FILE",
]


def _clear(monkeypatch) -> None:
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_workspace_paths(tmp_path, monkeypatch) -> None:
    _clear(monkeypatch)
    cfg = SkillConfig.from_env(tmp_path)
    root = tmp_path.resolve()
    assert cfg.history_file == root / "memory" / "master_history.json"
    assert cfg.cursor_state_file == root / "skills" / "interaction-logger" / "sync_state.json"
    assert cfg.seen_state_file == root / "memory" / "arxiv_watch_state.json"
    assert cfg.arxiv_cache_dir == root / "memory" / "arxiv_cache"
    assert cfg.git_sync_script == root / "skills" / "git-sync" / "sync.sh"
    assert cfg.gemini_model == DEFAULT_GEMINI_MODEL
    assert cfg.fetch_jitter_sec == 2.0


def test_dotenv_fills_missing_values_only(tmp_path, monkeypatch) -> None:
    _clear(monkeypatch)
    (tmp_path / ".env").write_text(
        "GEMINI_API_KEY=from-file\nGEMINI_MODEL=gemini-file\nARXIV_FETCH_JITTER_SEC=0\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("GEMINI_MODEL", "gemini-env")
    cfg = SkillConfig.from_env(tmp_path)
    assert cfg.gemini_api_key == "from-file"
    assert cfg.gemini_model == "gemini-env"
    assert cfg.fetch_jitter_sec == 0.0
    # load_dotenv writes into os.environ; drop what it added.
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("ARXIV_FETCH_JITTER_SEC", raising=False)


def test_sticker_dir_override(tmp_path, monkeypatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv("STICKER_DIR", str(tmp_path / "s"))
    cfg = SkillConfig.from_env(tmp_path)
    assert cfg.sticker_dir == Path(tmp_path / "s")
