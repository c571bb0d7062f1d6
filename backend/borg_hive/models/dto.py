"""Pydantic DTOs exposed via the admin API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateDroneRequest(BaseModel):
    name: str = Field(examples=["one_of_nine"])
    repository: str = Field(examples=["user@example.com:server/1_of_9"])


class CreateDroneResponse(BaseModel):
    id: str
    token: str


class DroneResponse(BaseModel):
    id: str
    name: str
    repository: str
    active: bool
    created_at: datetime
    last_activity_at: datetime | None = None


class DroneStatsResponse(BaseModel):
    id: str
    pre_hook_duration: float | None
    post_hook_duration: float | None
    create_duration: float
    complete_duration: float
    original_size: int
    compressed_size: int
    deduplicated_size: int
    nfiles: int
    created_at: datetime


class DeleteResponse(BaseModel):
    status: str
    deleted: int


__all__ = [
    "CreateDroneRequest",
    "CreateDroneResponse",
    "DroneResponse",
    "DroneStatsResponse",
    "DeleteResponse",
]
