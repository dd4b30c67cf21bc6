"""Platform-wide analytics over the mirror.

Each figure is its own query against the current table contents; nothing is
cached and the queries do not share a snapshot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from mukando.analytics.schemas import OverviewResponse, RecentActivityItem, TopPoolItem
from mukando.db.models import Pool, PoolMember, User, UserActivity

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

RECENT_ACTIVITY_LIMIT = 10
TOP_POOLS_LIMIT = 5


async def _scalar_count(db: AsyncSession, query) -> int:  # noqa: ANN001
    result = await db.execute(query)
    return int(result.scalar_one() or 0)


async def get_recent_activity(db: AsyncSession, limit: int = RECENT_ACTIVITY_LIMIT) -> list[RecentActivityItem]:
    """Newest activity rows with the actor's username, if mirrored."""
    result = await db.execute(
        select(UserActivity, User.username)
        .outerjoin(User, UserActivity.user_address == User.address)
        .order_by(UserActivity.created_at.desc(), UserActivity.id.desc())
        .limit(limit)
    )
    items = []
    for activity, username in result.all():
        item = RecentActivityItem.model_validate(activity)
        item.username = username
        items.append(item)
    return items


async def get_top_pools(db: AsyncSession, limit: int = TOP_POOLS_LIMIT) -> list[TopPoolItem]:
    """Pools with the most mirrored members."""
    member_count = func.count(PoolMember.member_address).label("member_count")
    result = await db.execute(
        select(Pool.address, Pool.size, Pool.contribution, member_count)
        .outerjoin(PoolMember, Pool.address == PoolMember.pool_address)
        .group_by(Pool.address, Pool.size, Pool.contribution)
        .order_by(member_count.desc(), Pool.address.asc())
        .limit(limit)
    )
    return [
        TopPoolItem(address=row.address, size=row.size, contribution=row.contribution, member_count=row.member_count)
        for row in result.all()
    ]


async def get_overview(db: AsyncSession) -> OverviewResponse:
    return OverviewResponse(
        totalUsers=await _scalar_count(db, select(func.count()).select_from(User)),
        totalPools=await _scalar_count(db, select(func.count()).select_from(Pool)),
        activePools=await _scalar_count(db, select(func.count()).select_from(Pool).where(Pool.status == "active")),
        totalMembers=await _scalar_count(
            db, select(func.count()).select_from(User).where(User.is_member.is_(True))
        ),
        recentActivity=await get_recent_activity(db),
        topPools=await get_top_pools(db),
    )
