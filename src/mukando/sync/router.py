"""Sync endpoints: refresh the mirror from the chain on demand."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from mukando.dependencies import get_sync_service
from mukando.pools.schemas import PoolResponse
from mukando.pools.service import get_pool
from mukando.sync.schemas import PoolSyncResultResponse, ReferralResponse, SyncAllPoolsResponse
from mukando.sync.service import SyncService
from mukando.users.schemas import UserResponse

router = APIRouter(prefix="/api/sync", tags=["Sync"])


@router.post("/users/{address}", response_model=UserResponse)
async def sync_user_endpoint(
    address: str,
    sync: SyncService = Depends(get_sync_service),
) -> UserResponse:
    """Create the user if needed and refresh tree membership."""
    try:
        user = await sync.sync_user(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return UserResponse.model_validate(user)


@router.post("/referrals/{address}", response_model=ReferralResponse | None)
async def sync_referral_endpoint(
    address: str,
    sync: SyncService = Depends(get_sync_service),
) -> ReferralResponse | None:
    """Mirror the direct inviter edge for ``address`` (null when it has none)."""
    try:
        referral = await sync.sync_referral(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return ReferralResponse.model_validate(referral) if referral else None


@router.post("/pools/{address}", response_model=PoolResponse)
async def sync_pool_endpoint(
    address: str,
    sync: SyncService = Depends(get_sync_service),
) -> PoolResponse:
    """Mirror one pool and its payout order."""
    try:
        await sync.sync_pool(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return await get_pool(sync.db, address)  # type: ignore[return-value]


@router.post("/pools", response_model=SyncAllPoolsResponse)
async def sync_all_pools_endpoint(
    sync: SyncService = Depends(get_sync_service),
) -> SyncAllPoolsResponse:
    """Mirror every pool from the factory. Per-pool failures are reported, not raised."""
    results = await sync.sync_all_pools()
    synced = sum(1 for r in results if r.ok)
    return SyncAllPoolsResponse(
        results=[PoolSyncResultResponse.model_validate(r) for r in results],
        synced=synced,
        failed=len(results) - synced,
    )
