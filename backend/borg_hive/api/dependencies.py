"""Shared FastAPI dependencies."""

from __future__ import annotations

import secrets
from functools import lru_cache

from fastapi import Depends, Header

from borg_hive.alerts.dispatcher import AlertDispatcher
from borg_hive.alerts.matrix import MatrixClient
from borg_hive.api.errors import ApiError, ApiStatusCode
from borg_hive.core.config import VinculumSettings, get_settings
from borg_hive.core.logging import get_logger
from borg_hive.db.drones import DroneRepository
from borg_hive.db.sqlite import SQLiteDatabase
from borg_hive.models.entities import AlertSink, Drone, DroneLookup

logger = get_logger(__name__)

_DB: SQLiteDatabase | None = None
_DISPATCHER: AlertDispatcher | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> VinculumSettings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_drone_repository() -> DroneRepository:
    return DroneRepository(get_database())


def get_alert_dispatcher() -> AlertDispatcher:
    global _DISPATCHER
    if _DISPATCHER is None:
        settings = get_app_settings()
        _DISPATCHER = AlertDispatcher(
            matrix=MatrixClient(settings.matrix_homeserver),
            username=settings.matrix_username,
            password=settings.matrix_password,
            room_id=settings.matrix_room,
        )
    return _DISPATCHER


def get_alert_sink() -> AlertSink:
    return get_alert_dispatcher()


def bearer_token(authorization: str | None) -> str:
    """Extract the token of an `Authorization: Bearer <token>` header."""
    if authorization is None:
        raise ApiError(ApiStatusCode.UNAUTHENTICATED)
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise ApiError(ApiStatusCode.UNAUTHENTICATED)
    return parts[1]


def require_drone(
    authorization: str | None = Header(default=None),
    drones: DroneLookup = Depends(get_drone_repository),
) -> Drone:
    drone = drones.find_by_token(bearer_token(authorization))
    if drone is None:
        raise ApiError(ApiStatusCode.UNAUTHENTICATED)
    drones.touch(drone.id)
    return drone


def require_admin(authorization: str | None = Header(default=None)) -> None:
    expected = get_app_settings().admin_token
    token = bearer_token(authorization)
    if not expected or not secrets.compare_digest(token.encode(), expected.encode()):
        raise ApiError(ApiStatusCode.UNAUTHENTICATED)


__all__ = [
    "get_app_settings",
    "get_database",
    "get_drone_repository",
    "get_alert_dispatcher",
    "get_alert_sink",
    "require_drone",
    "require_admin",
]
