"""Drone-side backup run components."""

from .api import VinculumApi
from .create import build_create_command, create_archive
from .hooks import run_hook
from .pipeline import BackupRun, RunOutcome, RunState

__all__ = [
    "VinculumApi",
    "build_create_command",
    "create_archive",
    "run_hook",
    "BackupRun",
    "RunOutcome",
    "RunState",
]
