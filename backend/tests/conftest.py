"""Test fixtures for borg-hive."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

ADMIN_TOKEN = "admin-secret"


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("VINCULUM_DB_PATH", str(tmp_path / "vinculum.db"))
    monkeypatch.setenv("VINCULUM_ADMIN_TOKEN", ADMIN_TOKEN)
    monkeypatch.delenv("VINCULUM_CONFIG", raising=False)

    from borg_hive.api import dependencies as deps
    from borg_hive.core.config import get_settings

    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    deps._DB = None
    deps._DISPATCHER = None
    yield
    if deps._DB is not None:
        deps._DB.close()
    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    deps._DB = None
    deps._DISPATCHER = None


@pytest.fixture
def fake_borg(tmp_path: Path) -> Path:
    """A stand-in for the borg binary driven by FAKE_BORG_* environment variables."""
    script = tmp_path / "borg"
    script.write_text(
        """#!/bin/sh
printf '%s\\n' "$@" > "$FAKE_BORG_ARGS"
printf '%s' "$BORG_PASSPHRASE" > "$FAKE_BORG_ARGS.passphrase"
if [ -n "$FAKE_BORG_STDERR" ]; then cat "$FAKE_BORG_STDERR" >&2; fi
if [ -n "$FAKE_BORG_STDOUT" ]; then cat "$FAKE_BORG_STDOUT"; fi
exit "${FAKE_BORG_EXIT:-0}"
"""
    )
    script.chmod(0o755)
    return script
