"""Administrative drone management routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from borg_hive.api.dependencies import get_database, get_drone_repository, require_admin
from borg_hive.api.errors import ApiError, ApiStatusCode
from borg_hive.db.drones import DRONE_COLUMNS, DroneRepository, row_to_drone
from borg_hive.db.sqlite import SQLiteDatabase
from borg_hive.models.dto import (
    CreateDroneRequest,
    CreateDroneResponse,
    DeleteResponse,
    DroneResponse,
    DroneStatsResponse,
)
from borg_hive.models.entities import Drone
from borg_hive.utils.ids import new_id, random_alphanumeric
from borg_hive.utils.time import now_ms

TOKEN_LENGTH = 255

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/drones", response_model=list[DroneResponse], summary="List registered drones")
async def list_drones(db: SQLiteDatabase = Depends(get_database)) -> list[DroneResponse]:
    rows = db.query(f"SELECT {DRONE_COLUMNS} FROM drones ORDER BY name", [])
    return [_to_response(row_to_drone(row)) for row in rows]


@router.post("/drones", response_model=CreateDroneResponse, summary="Register a new drone")
async def create_drone(
    request: CreateDroneRequest,
    db: SQLiteDatabase = Depends(get_database),
) -> CreateDroneResponse:
    name = request.name.strip()
    if not name:
        raise ApiError(ApiStatusCode.INVALID_NAME)
    if db.fetch_one("SELECT id FROM drones WHERE name = ?", [name]):
        raise ApiError(ApiStatusCode.NAME_ALREADY_EXISTS)
    if db.fetch_one("SELECT id FROM drones WHERE repository = ?", [request.repository]):
        raise ApiError(ApiStatusCode.REPOSITORY_ALREADY_EXISTS)

    drone_id = new_id("drone")
    token = random_alphanumeric(TOKEN_LENGTH)
    with db.transaction() as cursor:
        cursor.execute(
            """
            INSERT INTO drones (id, name, token, repository, active, created_at)
            VALUES (?, ?, ?, ?, 1, ?)
            """,
            [drone_id, name, token, request.repository, now_ms()],
        )
    return CreateDroneResponse(id=drone_id, token=token)


@router.get("/drones/{drone_id}", response_model=DroneResponse, summary="Get a single drone")
async def get_drone(drone_id: str, db: SQLiteDatabase = Depends(get_database)) -> DroneResponse:
    return _to_response(_fetch_drone(db, drone_id))


@router.delete("/drones/{drone_id}", response_model=DeleteResponse, summary="Remove a drone and its stats")
async def delete_drone(drone_id: str, db: SQLiteDatabase = Depends(get_database)) -> DeleteResponse:
    _fetch_drone(db, drone_id)
    with db.transaction() as cursor:
        cursor.execute("DELETE FROM drones WHERE id = ?", [drone_id])
    return DeleteResponse(status="ok", deleted=1)


@router.get(
    "/drones/{drone_id}/stats",
    response_model=list[DroneStatsResponse],
    summary="List the reported stats of a drone, newest first",
)
async def get_drone_stats(
    drone_id: str,
    db: SQLiteDatabase = Depends(get_database),
    drones: DroneRepository = Depends(get_drone_repository),
) -> list[DroneStatsResponse]:
    _fetch_drone(db, drone_id)
    return [
        DroneStatsResponse(
            id=stats.id,
            pre_hook_duration=stats.pre_hook_duration,
            post_hook_duration=stats.post_hook_duration,
            create_duration=stats.create_duration,
            complete_duration=stats.complete_duration,
            original_size=stats.original_size,
            compressed_size=stats.compressed_size,
            deduplicated_size=stats.deduplicated_size,
            nfiles=stats.nfiles,
            created_at=stats.created_at,
        )
        for stats in drones.list_stats(drone_id)
    ]


def _fetch_drone(db: SQLiteDatabase, drone_id: str) -> Drone:
    row = db.fetch_one(f"SELECT {DRONE_COLUMNS} FROM drones WHERE id = ?", [drone_id])
    if not row:
        raise ApiError(ApiStatusCode.NOT_FOUND)
    return row_to_drone(row)


def _to_response(drone: Drone) -> DroneResponse:
    return DroneResponse(
        id=drone.id,
        name=drone.name,
        repository=drone.repository,
        active=drone.active,
        created_at=drone.created_at,
        last_activity_at=drone.last_activity_at,
    )


__all__ = ["router"]
