"""FastAPI application setup for the vinculum."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from borg_hive.api.dependencies import get_alert_dispatcher, get_app_settings, get_database
from borg_hive.api.errors import install_error_handlers
from borg_hive.api.routes_admin import router as admin_router
from borg_hive.api.routes_drone import router as drone_router
from borg_hive.core.metrics import metrics_response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database and bring up the alert dispatcher.

    A failed chat login aborts startup.
    """
    get_app_settings()
    get_database()
    dispatcher = get_alert_dispatcher()
    await dispatcher.start()
    try:
        yield
    finally:
        await dispatcher.stop()
        get_database().close()


app = FastAPI(
    title="borg-vinculum",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

install_error_handlers(app)

app.include_router(drone_router, prefix="/api/drone/v1", tags=["drone"])
app.include_router(admin_router, prefix="/api/admin/v1", tags=["admin"])


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}


@app.get("/metrics", tags=["admin"], summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()
