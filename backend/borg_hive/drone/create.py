"""Creation of archives through the borg command line."""

from __future__ import annotations

import os
import queue
import subprocess
import threading
import time
from typing import IO, Any

import orjson

from borg_hive.core.logging import get_logger
from borg_hive.drone.types import CreateError, CreateOptions, ProgressSnapshot
from borg_hive.models.reports import CreateStats

logger = get_logger(__name__)

_ERROR_LEVELS = {"ERROR", "CRITICAL"}
_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")


def build_create_command(options: CreateOptions, progress: bool) -> list[str]:
    """Return the argv for `borg create` honoring the fixed archive policy."""
    argv = [options.borg_path]
    if options.remote_path:
        argv += ["--remote-path", options.remote_path]
    argv += ["create", "--json", "--log-json"]
    if progress:
        argv.append("--progress")
    argv += ["--compression", options.compression]
    flags = {
        "--sparse": options.sparse,
        "--noxattrs": options.no_xattrs,
        "--noacls": options.no_acls,
        "--noflags": options.no_flags,
        "--numeric-ids": options.numeric_ids,
        "--exclude-caches": options.exclude_caches,
    }
    argv += [flag for flag, enabled in flags.items() if enabled]
    argv += ["--patterns-from", str(options.pattern_file)]
    argv.append(f"{options.repository}::{options.archive}")
    return argv


def create_archive(options: CreateOptions, progress: bool = False) -> CreateStats | CreateError:
    """Create one archive and return its statistics.

    With ``progress`` enabled, progress events are handed one at a time to a
    logging thread; reading the tool's output waits while that thread is busy.
    """
    argv = build_create_command(options, progress)
    env = dict(os.environ, BORG_PASSPHRASE=options.passphrase)

    snapshots: queue.Queue[ProgressSnapshot | None] | None = None
    consumer: threading.Thread | None = None
    if progress:
        snapshots = queue.Queue(maxsize=1)
        consumer = threading.Thread(target=_log_progress, args=(snapshots,), name="borg-progress", daemon=True)
        consumer.start()

    logger.info("Starting to create the archive")
    start = time.monotonic()
    try:
        try:
            proc = subprocess.Popen(argv, stdout=subprocess.PIPE, stderr=subprocess.PIPE, env=env)
        except (OSError, ValueError) as exc:
            return CreateError(f"Could not start {options.borg_path}: {exc}")
        assert proc.stderr is not None and proc.stdout is not None
        try:
            last_error = _follow_log(proc.stderr, snapshots)
            stdout = proc.stdout.read()
        except Exception as exc:
            logger.exception("Failed to follow the output of borg")
            proc.kill()
            proc.wait()
            return CreateError(f"Error while reading the output of borg: {exc}")
        returncode = proc.wait()
    finally:
        if snapshots is not None and consumer is not None:
            snapshots.put(None)
            consumer.join()
    duration = time.monotonic() - start

    if returncode != 0:
        return CreateError(last_error or f"borg exited with status code: {returncode}")

    try:
        archive_stats = orjson.loads(stdout)["archive"]["stats"]
        stats = CreateStats(
            original_size=archive_stats["original_size"],
            compressed_size=archive_stats["compressed_size"],
            deduplicated_size=archive_stats["deduplicated_size"],
            nfiles=archive_stats["nfiles"],
            duration=duration,
        )
    except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        return CreateError(f"Could not parse archive statistics: {exc}")

    logger.info(
        "Archive created, O: %s, C: %s, D: %s, took %.1fs",
        format_bytes(stats.original_size),
        format_bytes(stats.compressed_size),
        format_bytes(stats.deduplicated_size),
        duration,
    )
    return stats


def format_bytes(size: int) -> str:
    """Render a byte count with the largest fitting decimal unit."""
    value = float(size)
    index = 0
    while value >= 1000 and index < len(_UNITS) - 1:
        value /= 1000
        index += 1
    if index == 0:
        return f"{size} B"
    return f"{value:.2f} {_UNITS[index]}"


def _follow_log(stream: IO[bytes], snapshots: queue.Queue[ProgressSnapshot | None] | None) -> str | None:
    """Consume `--log-json` lines; returns the last error message seen."""
    last_error: str | None = None
    for raw in stream:
        line = raw.decode("utf-8", "replace").strip()
        if not line:
            continue
        try:
            event: Any = orjson.loads(line)
        except orjson.JSONDecodeError:
            logger.debug("borg: %s", line)
            last_error = line
            continue
        if not isinstance(event, dict):
            continue
        kind = event.get("type")
        if kind == "archive_progress":
            if snapshots is None or event.get("finished", False):
                continue
            try:
                snapshot = ProgressSnapshot(
                    original_size=int(event.get("original_size", 0)),
                    compressed_size=int(event.get("compressed_size", 0)),
                    deduplicated_size=int(event.get("deduplicated_size", 0)),
                    path=str(event.get("path", "")),
                )
            except (TypeError, ValueError):
                logger.debug("Skipping malformed progress event: %s", line)
                continue
            snapshots.put(snapshot)
        elif kind == "log_message":
            message = str(event.get("message", ""))
            if event.get("levelname") in _ERROR_LEVELS:
                logger.error("borg: %s", message)
                last_error = message
            else:
                logger.debug("borg: %s", message)
    return last_error


def _log_progress(snapshots: queue.Queue[ProgressSnapshot | None]) -> None:
    while True:
        snapshot = snapshots.get()
        if snapshot is None:
            return
        logger.info(
            "O: %s, C: %s, D: %s, Path: %s",
            format_bytes(snapshot.original_size),
            format_bytes(snapshot.compressed_size),
            format_bytes(snapshot.deduplicated_size),
            snapshot.path,
        )


__all__ = ["build_create_command", "create_archive", "format_bytes"]
