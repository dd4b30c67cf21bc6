"""Sync Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ReferralResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    referrer_address: str
    referred_address: str
    level: int
    created_at: datetime


class PoolSyncResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    address: str
    ok: bool
    error: str | None = None
    code: str | None = None


class SyncAllPoolsResponse(BaseModel):
    results: list[PoolSyncResultResponse]
    synced: int
    failed: int
