import pytest

from clawkit import __version__, arxiv_watcher, git_sync, interaction_logger, sticker_analyzer
from clawkit.cli import build_parser, main


def test_subcommands_dispatch_to_skill_runners() -> None:
    parser = build_parser()
    assert parser.parse_args(["arxiv", "agents", "--days", "3"]).handler is arxiv_watcher.run
    assert parser.parse_args(["sync-log", "--quiet"]).handler is interaction_logger.run
    assert parser.parse_args(["git-sync", "--", "--push"]).handler is git_sync.run
    assert parser.parse_args(["stickers", "--concurrency", "2"]).handler is sticker_analyzer.run


def test_arxiv_arguments() -> None:
    args = build_parser().parse_args(["arxiv", "cat:cs.AI", "--max-results", "7", "--watch", "--format", "markdown"])
    assert args.query == "cat:cs.AI"
    assert args.limit == 7
    assert args.watch is True
    assert args.output_format == "markdown"


def test_command_is_required(capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 2


def test_version_flag(capsys) -> None:
    with pytest.raises(SystemExit):
        main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_sync_log_without_sessions_is_a_no_op(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CLAWKIT_WORKSPACE", str(tmp_path))
    assert main(["sync-log", "--sessions-dir", str(tmp_path / "none"), "--quiet"]) == 0
    assert not (tmp_path / "memory").exists()
