"""Analytics endpoint: /api/analytics?type=user|pool|overview."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from mukando.analytics.schemas import OverviewResponse, PoolAnalyticsResponse, UserAnalyticsResponse
from mukando.analytics.service import get_overview
from mukando.dependencies import get_sync_service
from mukando.pools.schemas import PoolResponse
from mukando.sync.service import SyncService
from mukando.users.schemas import UserResponse

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


@router.get("", response_model=UserAnalyticsResponse | PoolAnalyticsResponse | OverviewResponse | None)
async def get_analytics(
    type: str | None = Query(None),  # noqa: A002
    address: str | None = Query(None),
    sync: SyncService = Depends(get_sync_service),
) -> UserAnalyticsResponse | PoolAnalyticsResponse | OverviewResponse | None:
    """Per-user, per-pool or platform-wide figures. Unknown users and pools give null."""
    if type == "user":
        if not address:
            raise HTTPException(status_code=400, detail="Address is required for user analytics")
        data = await sync.get_user_analytics(address)
        if data is None:
            return None
        return UserAnalyticsResponse(**{**data, "user": UserResponse.model_validate(data["user"])})

    if type == "pool":
        if not address:
            raise HTTPException(status_code=400, detail="Pool address is required for pool analytics")
        data = await sync.get_pool_analytics(address)
        if data is None:
            return None
        return PoolAnalyticsResponse(**{**data, "pool": PoolResponse.model_validate(data["pool"])})

    if type == "overview":
        return await get_overview(sync.db)

    raise HTTPException(status_code=400, detail="Invalid analytics type. Use: user, pool, or overview")
