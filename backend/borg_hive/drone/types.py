"""Data structures shared by the drone-side pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from borg_hive.models.reports import ErrorReport, Stage


@dataclass(slots=True, frozen=True)
class HookError:
    """A hook that could not be split, spawned, or exited non-zero."""

    stage: Stage
    message: str
    stdout: str | None = None
    stderr: str | None = None

    def to_report(self) -> ErrorReport:
        return ErrorReport(state=self.stage, custom=self.message, stdout=self.stdout, stderr=self.stderr)


@dataclass(slots=True, frozen=True)
class CreateError:
    """The backup tool failed to produce an archive."""

    message: str
    stage: Stage = Stage.CREATE

    def to_report(self) -> ErrorReport:
        return ErrorReport(state=self.stage, custom=self.message)


@dataclass(slots=True, frozen=True)
class ReportError:
    """A report could not be delivered to the vinculum."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class CreateOptions:
    """Everything needed for one `borg create` invocation."""

    repository: str
    passphrase: str
    pattern_file: Path
    remote_path: str | None = None
    borg_path: str = "borg"
    archive: str = "{utcnow}"
    compression: str = "lz4"
    sparse: bool = True
    no_xattrs: bool = False
    no_acls: bool = False
    no_flags: bool = False
    numeric_ids: bool = False
    exclude_caches: bool = False


@dataclass(slots=True, frozen=True)
class ProgressSnapshot:
    """One progress event emitted by the backup tool while archiving."""

    original_size: int
    compressed_size: int
    deduplicated_size: int
    path: str


__all__ = [
    "HookError",
    "CreateError",
    "ReportError",
    "CreateOptions",
    "ProgressSnapshot",
]
