"""Report routes used by drones."""

from __future__ import annotations

import sqlite3

from fastapi import APIRouter, Depends, Response

from borg_hive.api.dependencies import get_alert_sink, get_drone_repository, require_drone
from borg_hive.api.errors import ApiError, ApiStatusCode
from borg_hive.core.logging import get_logger
from borg_hive.core.metrics import REPORTS_RECEIVED
from borg_hive.db.drones import DroneRepository
from borg_hive.models.entities import AlertSink, Drone
from borg_hive.models.reports import ErrorReport, StatReport

logger = get_logger(__name__)

router = APIRouter()


@router.post("/stats", summary="Report the stats of a successful run")
async def report_stats(
    report: StatReport,
    drone: Drone = Depends(require_drone),
    drones: DroneRepository = Depends(get_drone_repository),
) -> Response:
    try:
        drones.insert_stats(drone.id, report)
    except sqlite3.Error as exc:
        logger.error("Database error: %s", exc)
        raise ApiError(ApiStatusCode.DATABASE_ERROR) from exc
    REPORTS_RECEIVED.labels(kind="stats").inc()
    logger.info("Stored stats of drone %s", drone.name)
    return Response(status_code=200)


@router.post("/error", summary="Report the failure of a run")
async def report_error(
    report: ErrorReport,
    drone: Drone = Depends(require_drone),
    alerts: AlertSink = Depends(get_alert_sink),
) -> Response:
    REPORTS_RECEIVED.labels(kind="error").inc()
    logger.info("Drone %s failed in %s", drone.name, report.state)
    await alerts.enqueue(drone, report)
    return Response(status_code=200)


__all__ = ["router"]
