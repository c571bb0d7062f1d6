"""Tests for archive creation."""

from __future__ import annotations

import logging
from pathlib import Path

import orjson
import pytest

from borg_hive.drone import create as create_module
from borg_hive.drone.create import build_create_command, create_archive, format_bytes
from borg_hive.drone.types import CreateError, CreateOptions
from borg_hive.models.reports import CreateStats

FINAL_STATS = {
    "archive": {
        "name": "2024-01-01T00:00:00",
        "duration": 1.5,
        "stats": {
            "original_size": 4096,
            "compressed_size": 2048,
            "deduplicated_size": 1024,
            "nfiles": 7,
        },
    }
}


@pytest.fixture
def options(fake_borg: Path, tmp_path: Path) -> CreateOptions:
    return CreateOptions(
        repository="user@backup:drone",
        passphrase="hunter2",
        pattern_file=tmp_path / "patterns.lst",
        borg_path=str(fake_borg),
    )


@pytest.fixture
def borg_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    args_file = tmp_path / "args.txt"
    stdout_file = tmp_path / "stdout.json"
    stdout_file.write_bytes(orjson.dumps(FINAL_STATS))
    monkeypatch.setenv("FAKE_BORG_ARGS", str(args_file))
    monkeypatch.setenv("FAKE_BORG_STDOUT", str(stdout_file))
    monkeypatch.delenv("FAKE_BORG_STDERR", raising=False)
    monkeypatch.delenv("FAKE_BORG_EXIT", raising=False)
    return args_file


def _write_events(path: Path, events: list[dict]) -> Path:
    path.write_bytes(b"\n".join(orjson.dumps(event) for event in events) + b"\n")
    return path


def test_build_create_command_applies_policy() -> None:
    options = CreateOptions(
        repository="repo",
        passphrase="secret",
        pattern_file=Path("/etc/borg/patterns"),
        remote_path="borg-1.2",
    )
    argv = build_create_command(options, progress=True)
    assert argv[:3] == ["borg", "--remote-path", "borg-1.2"]
    assert argv[3:6] == ["create", "--json", "--log-json"]
    assert "--progress" in argv
    assert argv[argv.index("--compression") + 1] == "lz4"
    assert "--sparse" in argv
    for flag in ("--noxattrs", "--noacls", "--noflags", "--numeric-ids", "--exclude-caches"):
        assert flag not in argv
    assert argv[-3:] == ["--patterns-from", "/etc/borg/patterns", "repo::{utcnow}"]
    assert "secret" not in " ".join(argv)


def test_build_create_command_without_progress() -> None:
    options = CreateOptions(repository="repo", passphrase="p", pattern_file=Path("p"))
    argv = build_create_command(options, progress=False)
    assert "--progress" not in argv
    assert "--remote-path" not in argv


def test_create_archive_returns_stats(options: CreateOptions, borg_env: Path, tmp_path: Path) -> None:
    result = create_archive(options)
    assert isinstance(result, CreateStats)
    assert result.original_size == 4096
    assert result.compressed_size == 2048
    assert result.deduplicated_size == 1024
    assert result.nfiles == 7
    assert result.duration >= 0
    assert Path(f"{borg_env}.passphrase").read_text() == "hunter2"
    assert "user@backup:drone::{utcnow}" in borg_env.read_text().splitlines()


def test_progress_events_are_logged(
    options: CreateOptions,
    borg_env: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    events = [
        {"type": "archive_progress", "original_size": 1500, "compressed_size": 900,
         "deduplicated_size": 10, "nfiles": 1, "path": "home/a.txt", "finished": False},
        {"type": "log_message", "levelname": "INFO", "name": "borg", "message": "hello"},
        {"type": "archive_progress", "original_size": 3000, "compressed_size": 1800,
         "deduplicated_size": 20, "nfiles": 2, "path": "home/b.txt", "finished": False},
        {"type": "archive_progress", "finished": True},
    ]
    monkeypatch.setenv("FAKE_BORG_STDERR", str(_write_events(tmp_path / "events.jsonl", events)))
    with caplog.at_level(logging.INFO, logger="borg_hive.drone.create"):
        result = create_archive(options, progress=True)
    assert isinstance(result, CreateStats)
    progress_lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("O: ")]
    assert progress_lines == [
        "O: 1.50 KB, C: 900 B, D: 10 B, Path: home/a.txt",
        "O: 3.00 KB, C: 1.80 KB, D: 20 B, Path: home/b.txt",
    ]
    assert "--progress" in borg_env.read_text().splitlines()


def test_non_zero_exit_is_a_create_error(
    options: CreateOptions, borg_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    events = [
        {"type": "log_message", "levelname": "ERROR", "name": "borg", "message": "passphrase supplied is incorrect"},
    ]
    monkeypatch.setenv("FAKE_BORG_STDERR", str(_write_events(tmp_path / "events.jsonl", events)))
    monkeypatch.setenv("FAKE_BORG_EXIT", "2")
    result = create_archive(options, progress=True)
    assert isinstance(result, CreateError)
    assert result.message == "passphrase supplied is incorrect"
    assert result.to_report().state.value == "Create"


def test_exit_code_used_when_tool_is_silent(
    options: CreateOptions, borg_env: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("FAKE_BORG_EXIT", "1")
    result = create_archive(options)
    assert isinstance(result, CreateError)
    assert result.message == "borg exited with status code: 1"


def test_missing_tool_is_a_create_error(tmp_path: Path) -> None:
    options = CreateOptions(
        repository="repo",
        passphrase="p",
        pattern_file=tmp_path / "patterns",
        borg_path=str(tmp_path / "no-borg-here"),
    )
    result = create_archive(options, progress=True)
    assert isinstance(result, CreateError)
    assert result.message.startswith("Could not start")


def test_unparsable_statistics_are_a_create_error(
    options: CreateOptions, borg_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    monkeypatch.setenv("FAKE_BORG_STDOUT", str(broken))
    result = create_archive(options)
    assert isinstance(result, CreateError)


def test_format_bytes() -> None:
    assert format_bytes(999) == "999 B"
    assert format_bytes(1000) == "1.00 KB"
    assert format_bytes(2_500_000) == "2.50 MB"


def test_malformed_progress_event_is_skipped(
    options: CreateOptions,
    borg_env: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    events = [
        {"type": "archive_progress", "original_size": None, "path": "home/broken", "finished": False},
        {"type": "archive_progress", "original_size": "lots", "path": "home/worse", "finished": False},
        {"type": "archive_progress", "original_size": 2000, "compressed_size": 1000,
         "deduplicated_size": 5, "path": "home/ok.txt", "finished": False},
    ]
    monkeypatch.setenv("FAKE_BORG_STDERR", str(_write_events(tmp_path / "events.jsonl", events)))
    with caplog.at_level(logging.INFO, logger="borg_hive.drone.create"):
        result = create_archive(options, progress=True)
    assert isinstance(result, CreateStats)
    progress_lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("O: ")]
    assert progress_lines == ["O: 2.00 KB, C: 1.00 KB, D: 5 B, Path: home/ok.txt"]


def test_failure_while_reading_output_is_a_create_error(
    options: CreateOptions, borg_env: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_follow(stream, snapshots):
        raise RuntimeError("stream exploded")

    monkeypatch.setattr(create_module, "_follow_log", broken_follow)
    result = create_archive(options, progress=True)
    assert isinstance(result, CreateError)
    assert "stream exploded" in result.message
