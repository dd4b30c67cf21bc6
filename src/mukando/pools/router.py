"""Pool endpoints: /api/pools."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mukando.database import get_session
from mukando.dependencies import get_sync_service
from mukando.pools.schemas import (
    REQUIRED_POOL_FIELDS,
    ContributionCreateRequest,
    ContributionResponse,
    PayoutCreateRequest,
    PayoutResponse,
    PoolCreateRequest,
    PoolMemberResponse,
    PoolResponse,
)
from mukando.pools.service import (
    PoolAlreadyExistsError,
    create_pool,
    get_pool,
    get_pool_row,
    list_members,
    list_pools,
)
from mukando.sync.service import SyncService

router = APIRouter(prefix="/api/pools", tags=["Pools"])


@router.get("", response_model=PoolResponse | list[PoolResponse])
async def get_pools(
    address: str | None = Query(None),
    creator: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> PoolResponse | list[PoolResponse]:
    """One pool by ``address``, a creator's pools, or all pools (newest first)."""
    if address:
        pool = await get_pool(db, address)
        if pool is None:
            raise HTTPException(status_code=404, detail="Pool not found")
        return pool

    return await list_pools(db, creator=creator)


@router.post("", response_model=PoolResponse, status_code=201)
async def create_pool_endpoint(
    body: PoolCreateRequest,
    db: AsyncSession = Depends(get_session),
) -> PoolResponse:
    """Mirror a newly deployed pool."""
    if body.missing_fields():
        raise HTTPException(
            status_code=400,
            detail=f"All pool fields are required: {', '.join(REQUIRED_POOL_FIELDS)}",
        )

    try:
        return await create_pool(
            db,
            address=body.address,  # type: ignore[arg-type]
            creator_address=body.creator_address,  # type: ignore[arg-type]
            size=body.size,  # type: ignore[arg-type]
            contribution=body.contribution,  # type: ignore[arg-type]
            round_duration=body.round_duration,  # type: ignore[arg-type]
            start_time=body.start_time,  # type: ignore[arg-type]
        )
    except PoolAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail="Pool already exists") from e


async def _require_pool(db: AsyncSession, address: str) -> None:
    if await get_pool_row(db, address) is None:
        raise HTTPException(status_code=404, detail="Pool not found")


@router.get("/{address}/members", response_model=list[PoolMemberResponse])
async def get_pool_members(
    address: str,
    db: AsyncSession = Depends(get_session),
) -> list[PoolMemberResponse]:
    """Members in payout order."""
    await _require_pool(db, address)
    return [PoolMemberResponse.model_validate(m) for m in await list_members(db, address)]


@router.post("/{address}/contributions", response_model=ContributionResponse, status_code=201)
async def record_contribution_endpoint(
    address: str,
    body: ContributionCreateRequest,
    sync: SyncService = Depends(get_sync_service),
) -> ContributionResponse:
    """Append a contribution to the pool's ledger."""
    await _require_pool(sync.db, address)
    contribution = await sync.record_contribution(
        address, body.member_address, body.round_number, body.amount, body.transaction_hash
    )
    return ContributionResponse.model_validate(contribution)


@router.post("/{address}/payouts", response_model=PayoutResponse, status_code=201)
async def record_payout_endpoint(
    address: str,
    body: PayoutCreateRequest,
    sync: SyncService = Depends(get_sync_service),
) -> PayoutResponse:
    """Append a payout to the pool's ledger."""
    await _require_pool(sync.db, address)
    payout = await sync.record_payout(
        address, body.recipient_address, body.round_number, body.amount, body.transaction_hash
    )
    return PayoutResponse.model_validate(payout)
