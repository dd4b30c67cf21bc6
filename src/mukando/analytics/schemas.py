"""Analytics Pydantic schemas (field names match the dashboard's camelCase)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from mukando.pools.schemas import PoolResponse
from mukando.users.schemas import UserResponse


class UserAnalyticsResponse(BaseModel):
    user: UserResponse
    activityCount: int  # noqa: N815
    poolsCreated: int  # noqa: N815
    poolsJoined: int  # noqa: N815


class PoolAnalyticsResponse(BaseModel):
    pool: PoolResponse
    memberCount: int  # noqa: N815
    totalContributions: float  # noqa: N815
    contributionCount: int  # noqa: N815
    totalPayouts: float  # noqa: N815
    payoutCount: int  # noqa: N815


class RecentActivityItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_address: str
    activity_type: str
    details: str | None = None
    created_at: datetime
    username: str | None = None


class TopPoolItem(BaseModel):
    address: str
    size: int
    contribution: float
    member_count: int


class OverviewResponse(BaseModel):
    """Platform-wide counts plus recent activity and the busiest pools."""

    totalUsers: int  # noqa: N815
    totalPools: int  # noqa: N815
    activePools: int  # noqa: N815
    totalMembers: int  # noqa: N815
    recentActivity: list[RecentActivityItem]  # noqa: N815
    topPools: list[TopPoolItem]  # noqa: N815
