import os

from clawkit import git_sync
from clawkit.git_sync import build_command, launch
from clawkit.joblog import SkillLogger


def _script(tmp_path, body: str, executable: bool = True):
    script = tmp_path / "sync.sh"
    script.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    if executable:
        script.chmod(0o755)
    return script


def test_exit_code_is_propagated(tmp_path) -> None:
    script = _script(tmp_path, 'echo "$@" > args.txt\nexit 3')
    code = launch(script, ["--push", "-m", "msg"], SkillLogger(also_stderr=False))
    assert code == 3
    assert (tmp_path / "args.txt").read_text(encoding="utf-8").strip() == "--push -m msg"


def test_non_executable_script_runs_through_shell(tmp_path) -> None:
    script = _script(tmp_path, "exit 0", executable=False)
    command = build_command(script, ["a"])
    assert command[-2:] == [str(script), "a"]
    assert len(command) == 3
    assert launch(script, [], SkillLogger(also_stderr=False)) == 0


def test_missing_script_returns_one(tmp_path) -> None:
    logger = SkillLogger(also_stderr=False)
    assert launch(tmp_path / "missing.sh", [], logger) == 1
    assert any("Failed to start subprocess" in line for line in logger.lines)


def test_main_strips_separator(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CLAWKIT_WORKSPACE", str(tmp_path))
    script = _script(tmp_path, 'echo "$@" > args.txt')
    monkeypatch.setenv("GIT_SYNC_SCRIPT", str(script))
    assert git_sync.main(["--", "--dry-run"]) == 0
    assert (tmp_path / "args.txt").read_text(encoding="utf-8").strip() == "--dry-run"
    assert os.access(script, os.X_OK)
