"""Tests for hook execution."""

from __future__ import annotations

from borg_hive.drone.hooks import run_hook
from borg_hive.drone.types import HookError
from borg_hive.models.reports import HookStats, Stage


def test_successful_hook_reports_duration() -> None:
    result = run_hook("echo hello", Stage.PRE_HOOK)
    assert isinstance(result, HookStats)
    assert result.duration > 0
    assert set(result.model_dump()) == {"duration"}


def test_failing_hook_captures_output() -> None:
    result = run_hook("false", Stage.PRE_HOOK)
    assert isinstance(result, HookError)
    assert result.stage is Stage.PRE_HOOK
    assert result.message == "Hook exited with status code: 1"
    assert result.stdout == ""
    assert result.stderr == ""


def test_output_of_failing_hook_is_kept() -> None:
    result = run_hook("sh -c 'echo out; echo err >&2; exit 3'", Stage.POST_HOOK)
    assert isinstance(result, HookError)
    assert result.stage is Stage.POST_HOOK
    assert result.message.endswith("3")
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"


def test_invalid_utf8_output_is_substituted() -> None:
    command = "sh -c \"printf '\\377'; exit 1\""
    result = run_hook(command, Stage.PRE_HOOK)
    assert isinstance(result, HookError)
    assert result.stdout == "***Invalid stdout***"
    assert result.stderr == ""


def test_whitespace_command_is_faulty() -> None:
    result = run_hook(" ", Stage.PRE_HOOK)
    assert isinstance(result, HookError)
    assert result.message == "hook command was faulty"
    assert result.stdout is None and result.stderr is None


def test_unbalanced_quotes_fail_to_split() -> None:
    result = run_hook("echo 'unterminated", Stage.POST_HOOK)
    assert isinstance(result, HookError)
    assert result.message.startswith("Could not split given hook command")


def test_missing_executable_is_a_spawn_error(tmp_path) -> None:
    result = run_hook(str(tmp_path / "does-not-exist"), Stage.PRE_HOOK)
    assert isinstance(result, HookError)
    assert result.message.startswith("Error spawning command")
    assert result.stdout is None


def test_hook_error_converts_to_error_report() -> None:
    error = HookError(Stage.POST_HOOK, "boom", stdout="o", stderr="e")
    report = error.to_report()
    assert report.model_dump(mode="json") == {
        "state": "PostHook",
        "custom": "boom",
        "stdout": "o",
        "stderr": "e",
    }


def test_null_byte_in_command_is_a_spawn_error() -> None:
    result = run_hook("echo a\x00b", Stage.PRE_HOOK)
    assert isinstance(result, HookError)
    assert result.stage is Stage.PRE_HOOK
    assert result.message.startswith("Error spawning command:")
    assert result.stdout is None
    assert result.stderr is None
