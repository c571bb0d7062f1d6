"""Drone persistence used by the drone-facing API."""

from __future__ import annotations

import sqlite3
from typing import Any

from borg_hive.db.sqlite import SQLiteDatabase
from borg_hive.models.entities import Drone, DroneStats
from borg_hive.models.reports import StatReport
from borg_hive.utils.ids import new_id
from borg_hive.utils.time import ms_to_datetime, now_ms

DRONE_COLUMNS = "id, name, token, repository, active, created_at, last_activity_at"
STATS_COLUMNS = (
    "id, drone_id, pre_hook_duration, post_hook_duration, create_duration, complete_duration, "
    "original_size, compressed_size, deduplicated_size, nfiles, created_at"
)


class DroneRepository:
    """Token lookup, activity tracking and stats storage for drones."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self.db = database

    def find_by_token(self, token: str) -> Drone | None:
        row = self.db.fetch_one(f"SELECT {DRONE_COLUMNS} FROM drones WHERE token = ?", [token])
        return row_to_drone(row) if row else None

    def touch(self, drone_id: str) -> None:
        with self.db.transaction() as cursor:
            cursor.execute("UPDATE drones SET last_activity_at = ? WHERE id = ?", [now_ms(), drone_id])

    def insert_stats(self, drone_id: str, report: StatReport) -> str:
        stats_id = new_id("stat")
        create = report.create_stats
        with self.db.transaction() as cursor:
            cursor.execute(
                f"INSERT INTO drone_stats ({STATS_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    stats_id,
                    drone_id,
                    report.pre_hook_stats.duration if report.pre_hook_stats else None,
                    report.post_hook_stats.duration if report.post_hook_stats else None,
                    create.duration,
                    report.complete_duration,
                    create.original_size,
                    create.compressed_size,
                    create.deduplicated_size,
                    create.nfiles,
                    now_ms(),
                ],
            )
        return stats_id

    def list_stats(self, drone_id: str) -> list[DroneStats]:
        rows = self.db.query(
            f"SELECT {STATS_COLUMNS} FROM drone_stats WHERE drone_id = ? ORDER BY created_at DESC",
            [drone_id],
        )
        return [row_to_stats(row) for row in rows]


def row_to_drone(row: sqlite3.Row) -> Drone:
    return Drone(
        id=row["id"],
        name=row["name"],
        token=row["token"],
        repository=row["repository"],
        active=bool(row["active"]),
        created_at=ms_to_datetime(row["created_at"]),
        last_activity_at=_optional_datetime(row["last_activity_at"]),
    )


def row_to_stats(row: sqlite3.Row) -> DroneStats:
    return DroneStats(
        id=row["id"],
        drone_id=row["drone_id"],
        pre_hook_duration=row["pre_hook_duration"],
        post_hook_duration=row["post_hook_duration"],
        create_duration=row["create_duration"],
        complete_duration=row["complete_duration"],
        original_size=row["original_size"],
        compressed_size=row["compressed_size"],
        deduplicated_size=row["deduplicated_size"],
        nfiles=row["nfiles"],
        created_at=ms_to_datetime(row["created_at"]),
    )


def _optional_datetime(value: Any):
    return None if value is None else ms_to_datetime(value)


__all__ = ["DroneRepository", "DRONE_COLUMNS", "row_to_drone", "row_to_stats"]
