"""Report payloads exchanged between drones and the vinculum."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Stage(str, Enum):
    """The stage of a backup run."""

    PRE_HOOK = "PreHook"
    CREATE = "Create"
    POST_HOOK = "PostHook"

    def __str__(self) -> str:
        return _STAGE_NAMES[self]


_STAGE_NAMES = {
    Stage.PRE_HOOK: "pre hook",
    Stage.CREATE: "archive creation",
    Stage.POST_HOOK: "post hook",
}


class HookStats(BaseModel):
    duration: float = Field(ge=0, description="Duration of the hook in seconds")


class CreateStats(BaseModel):
    original_size: int = Field(ge=0, description="Original file size in bytes")
    compressed_size: int = Field(ge=0, description="Compressed file size in bytes")
    deduplicated_size: int = Field(ge=0, description="Deduplicated file size in bytes")
    nfiles: int = Field(ge=0, description="Number of archived files")
    duration: float = Field(ge=0, description="Duration of the archive creation in seconds")


class StatReport(BaseModel):
    pre_hook_stats: HookStats | None = None
    create_stats: CreateStats
    post_hook_stats: HookStats | None = None

    @property
    def complete_duration(self) -> float:
        total = self.create_stats.duration
        for hook in (self.pre_hook_stats, self.post_hook_stats):
            if hook is not None:
                total += hook.duration
        return total


class ErrorReport(BaseModel):
    state: Stage
    custom: str | None = None
    stdout: str | None = None
    stderr: str | None = None


class ApiErrorResponse(BaseModel):
    code: int
    message: str


__all__ = [
    "Stage",
    "HookStats",
    "CreateStats",
    "StatReport",
    "ErrorReport",
    "ApiErrorResponse",
]
