"""Backup run orchestration: hooks around archive creation, then one report."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from borg_hive.core.config import DroneSettings
from borg_hive.core.logging import get_logger
from borg_hive.drone.api import VinculumApi
from borg_hive.drone.create import create_archive
from borg_hive.drone.hooks import run_hook
from borg_hive.drone.types import CreateError, CreateOptions, HookError, ReportError
from borg_hive.models.reports import CreateStats, ErrorReport, HookStats, Stage, StatReport

logger = get_logger(__name__)

HookRunner = Callable[[str, Stage], HookStats | HookError]
ArchiveCreator = Callable[[CreateOptions, bool], CreateStats | CreateError]


class Reporter(Protocol):
    def send_stats(self, report: StatReport) -> ReportError | None: ...

    def send_error(self, report: ErrorReport) -> ReportError | None: ...


class RunState(str, Enum):
    IDLE = "idle"
    PRE_HOOK = "pre_hook"
    CREATE = "create"
    POST_HOOK = "post_hook"
    REPORTED = "reported"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(slots=True)
class RunOutcome:
    """Final state of a run and what was reported about it."""

    state: RunState
    report_sent: bool = False
    error: HookError | CreateError | None = None
    stats: StatReport | None = None

    @property
    def ok(self) -> bool:
        return self.state is RunState.DONE


class BackupRun:
    """Sequence pre hook, archive creation and post hook for a single run.

    The first failing stage aborts the run and is reported once. A stat report
    is only sent when an archive was actually created and nothing failed.
    """

    def __init__(
        self,
        options: CreateOptions,
        reporter: Reporter,
        pre_hook: str = "",
        post_hook: str = "",
        hook_runner: HookRunner = run_hook,
        archive_creator: ArchiveCreator = create_archive,
    ) -> None:
        self.options = options
        self.reporter = reporter
        self.pre_hook = pre_hook
        self.post_hook = post_hook
        self.hook_runner = hook_runner
        self.archive_creator = archive_creator
        self.state = RunState.IDLE

    @classmethod
    def from_settings(cls, settings: DroneSettings) -> "BackupRun":
        options = CreateOptions(
            repository=settings.repository,
            passphrase=settings.passphrase,
            pattern_file=settings.pattern_file_path,
            remote_path=settings.remote_path,
            borg_path=settings.borg_path,
        )
        reporter = VinculumApi(settings.vinculum_address, settings.vinculum_token)
        return cls(options, reporter, pre_hook=settings.pre_hook, post_hook=settings.post_hook)

    def run(self, dry_run: bool = False, progress: bool = False) -> RunOutcome:
        pre_stats: HookStats | None = None
        if self.pre_hook:
            self.state = RunState.PRE_HOOK
            result = self.hook_runner(self.pre_hook, Stage.PRE_HOOK)
            if isinstance(result, HookError):
                return self._abort(result)
            pre_stats = result

        create_stats: CreateStats | None = None
        if dry_run:
            logger.info("Dry run, skipping archive creation")
        else:
            self.state = RunState.CREATE
            result = self.archive_creator(self.options, progress)
            if isinstance(result, CreateError):
                return self._abort(result)
            create_stats = result

        post_stats: HookStats | None = None
        if self.post_hook:
            self.state = RunState.POST_HOOK
            result = self.hook_runner(self.post_hook, Stage.POST_HOOK)
            if isinstance(result, HookError):
                return self._abort(result)
            post_stats = result

        if create_stats is None:
            self.state = RunState.DONE
            return RunOutcome(self.state)

        report = StatReport(pre_hook_stats=pre_stats, create_stats=create_stats, post_hook_stats=post_stats)
        self.state = RunState.REPORTED
        failure = self.reporter.send_stats(report)
        if failure is not None:
            logger.error("Error while sending stats to vinculum: %s", failure)
        self.state = RunState.DONE
        return RunOutcome(self.state, report_sent=failure is None, stats=report)

    def _abort(self, error: HookError | CreateError) -> RunOutcome:
        logger.error("Error in %s: %s", error.stage, error.message)
        self.state = RunState.ABORTED
        failure = self.reporter.send_error(error.to_report())
        if failure is not None:
            logger.error("Error while sending error to vinculum: %s", failure)
        return RunOutcome(self.state, report_sent=failure is None, error=error)


__all__ = ["BackupRun", "RunOutcome", "RunState", "Reporter"]
