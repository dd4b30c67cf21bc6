"""Pool reads and writes against the mirror."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError

from mukando.db.models import Pool, PoolMember, User
from mukando.pools.schemas import PoolResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class PoolAlreadyExistsError(Exception):
    """A pool row already exists for the address."""


def _with_creator() -> Select:  # type: ignore[type-arg]
    """Pools left-joined with the creator's username."""
    return select(Pool, User.username.label("creator_username")).outerjoin(
        User, Pool.creator_address == User.address
    )


def _to_response(pool: Pool, creator_username: str | None) -> PoolResponse:
    response = PoolResponse.model_validate(pool)
    response.creator_username = creator_username
    return response


async def get_pool_row(db: AsyncSession, address: str) -> Pool | None:
    result = await db.execute(select(Pool).where(Pool.address == address))
    return result.scalar_one_or_none()


async def get_pool(db: AsyncSession, address: str) -> PoolResponse | None:
    result = await db.execute(_with_creator().where(Pool.address == address))
    row = result.first()
    if row is None:
        return None
    return _to_response(row.Pool, row.creator_username)


async def list_pools(db: AsyncSession, creator: str | None = None) -> list[PoolResponse]:
    """Pools newest first, optionally only those created by ``creator``."""
    query = _with_creator()
    if creator:
        query = query.where(Pool.creator_address == creator)
    result = await db.execute(query.order_by(Pool.created_at.desc(), Pool.id.desc()))
    return [_to_response(row.Pool, row.creator_username) for row in result.all()]


async def create_pool(
    db: AsyncSession,
    address: str,
    creator_address: str,
    size: int,
    contribution: float,
    round_duration: int,
    start_time: int,
) -> PoolResponse:
    """Insert a new pool and commit.

    Raises:
        PoolAlreadyExistsError: If the address is already mirrored.
    """
    if await get_pool_row(db, address) is not None:
        raise PoolAlreadyExistsError(address)

    pool = Pool(
        address=address,
        creator_address=creator_address,
        size=size,
        contribution=contribution,
        round_duration=round_duration,
        start_time=start_time,
    )
    db.add(pool)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise PoolAlreadyExistsError(address) from e
    logger.info("pool_created", address=address, creator=creator_address)

    return await get_pool(db, address)  # type: ignore[return-value]


async def list_members(db: AsyncSession, pool_address: str) -> list[PoolMember]:
    """Members of a pool in payout order."""
    result = await db.execute(
        select(PoolMember)
        .where(PoolMember.pool_address == pool_address)
        .order_by(PoolMember.payout_order.asc())
    )
    return list(result.scalars().all())
