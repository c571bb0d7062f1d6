"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from borg_hive.models.reports import ErrorReport


@dataclass(slots=True)
class Drone:
    id: str
    name: str
    token: str
    repository: str
    active: bool
    created_at: datetime
    last_activity_at: datetime | None = None


@dataclass(slots=True)
class DroneStats:
    id: str
    drone_id: str
    pre_hook_duration: float | None
    post_hook_duration: float | None
    create_duration: float
    complete_duration: float
    original_size: int
    compressed_size: int
    deduplicated_size: int
    nfiles: int
    created_at: datetime


class DroneLookup(Protocol):
    """Resolve the drone owning a bearer token and record that it was seen."""

    def find_by_token(self, token: str) -> Drone | None: ...

    def touch(self, drone_id: str) -> None: ...


class AlertSink(Protocol):
    """Accept a failed run for operator alerting."""

    async def enqueue(self, drone: Drone, report: ErrorReport) -> None: ...
