"""Execution of operator-supplied pre and post hooks."""

from __future__ import annotations

import shlex
import subprocess
import time

from borg_hive.core.logging import get_logger
from borg_hive.drone.types import HookError
from borg_hive.models.reports import HookStats, Stage

logger = get_logger(__name__)


def run_hook(command: str, stage: Stage) -> HookStats | HookError:
    """Run a hook command once and measure how long it took.

    The command is split with POSIX shell rules but never passed to a shell.
    Callers skip empty commands; an empty string here is treated as faulty.
    """
    try:
        argv = shlex.split(command)
    except ValueError:
        return HookError(stage, f"Could not split given hook command: {command}")
    if not argv:
        return HookError(stage, "hook command was faulty")

    logger.debug("Running %s: %s", stage, argv)
    start = time.monotonic()
    try:
        completed = subprocess.run(argv, capture_output=True, check=False)
    except (OSError, ValueError) as exc:
        return HookError(stage, f"Error spawning command: {exc}")
    duration = time.monotonic() - start

    if completed.returncode != 0:
        return HookError(
            stage,
            f"Hook exited with status code: {completed.returncode}",
            stdout=_decode(completed.stdout, "***Invalid stdout***"),
            stderr=_decode(completed.stderr, "***Invalid stderr***"),
        )

    logger.info("Finished %s in %.2fs", stage, duration)
    return HookStats(duration=duration)


def _decode(output: bytes, placeholder: str) -> str:
    try:
        return output.decode("utf-8")
    except UnicodeDecodeError:
        return placeholder


__all__ = ["run_hook"]
