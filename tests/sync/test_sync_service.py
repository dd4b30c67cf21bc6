"""Sync service tests against an in-memory chain."""

import json

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import ALICE, BOB, CAROL, DAVE, POOL_A, POOL_B, TOKEN_ADDRESS, FakeChain
from mukando.chain.networks import ZERO_ADDRESS
from mukando.db.models import Pool, PoolMember, Referral, User, UserActivity
from mukando.sync.service import SyncService


async def _members(db: AsyncSession, pool: str) -> list[tuple[str, int]]:
    result = await db.execute(
        select(PoolMember.member_address, PoolMember.payout_order)
        .where(PoolMember.pool_address == pool)
        .order_by(PoolMember.payout_order)
    )
    return [tuple(row) for row in result.all()]


@pytest.mark.asyncio
async def test_sync_user_creates_member(sync_service: SyncService, fake_chain: FakeChain) -> None:
    fake_chain.inviters[ALICE] = BOB
    user = await sync_service.sync_user(ALICE)
    assert user.address == ALICE
    assert user.is_member is True


@pytest.mark.asyncio
async def test_sync_user_not_in_tree(sync_service: SyncService) -> None:
    user = await sync_service.sync_user(ALICE)
    assert user.is_member is False


@pytest.mark.asyncio
async def test_sync_user_is_idempotent(
    sync_service: SyncService, fake_chain: FakeChain, db_session: AsyncSession
) -> None:
    """Syncing twice against unchanged chain state leaves one identical row."""
    fake_chain.inviters[ALICE] = BOB
    first = await sync_service.sync_user(ALICE)
    snapshot = (first.id, first.is_member, first.referral_count, first.updated_at)

    second = await sync_service.sync_user(ALICE)
    assert (second.id, second.is_member, second.referral_count, second.updated_at) == snapshot
    assert await db_session.scalar(select(func.count()).select_from(User)) == 1


@pytest.mark.asyncio
async def test_sync_user_tracks_membership_change(sync_service: SyncService, fake_chain: FakeChain) -> None:
    assert (await sync_service.sync_user(ALICE)).is_member is False
    fake_chain.inviters[ALICE] = BOB
    assert (await sync_service.sync_user(ALICE)).is_member is True


@pytest.mark.asyncio
async def test_sync_referral(sync_service: SyncService, fake_chain: FakeChain, db_session: AsyncSession) -> None:
    """The inviter is mirrored and credited once per referred address."""
    fake_chain.inviters[ALICE] = BOB
    referral = await sync_service.sync_referral(ALICE)
    assert referral is not None
    assert referral.referrer_address == BOB
    assert referral.level == 1

    again = await sync_service.sync_referral(ALICE)
    assert again is not None
    assert again.id == referral.id

    bob = (await db_session.execute(select(User).where(User.address == BOB))).scalar_one()
    assert bob.referral_count == 1
    assert await db_session.scalar(select(func.count()).select_from(Referral)) == 1


@pytest.mark.asyncio
async def test_sync_referral_without_inviter(sync_service: SyncService, db_session: AsyncSession) -> None:
    assert await sync_service.sync_referral(ALICE) is None
    assert await db_session.scalar(select(func.count()).select_from(Referral)) == 0


@pytest.mark.asyncio
async def test_sync_pool_inserts_pool_and_members(
    sync_service: SyncService, fake_chain: FakeChain, db_session: AsyncSession
) -> None:
    fake_chain.add_pool(POOL_A, [ALICE, BOB, CAROL], size=3, contribution_wei=25 * 10**17)
    pool = await sync_service.sync_pool(POOL_A)

    assert pool.size == 3
    assert pool.contribution == 2.5
    assert pool.creator_address == ZERO_ADDRESS
    assert pool.current_round == 0
    assert await _members(db_session, POOL_A) == [(ALICE, 0), (BOB, 1), (CAROL, 2)]


@pytest.mark.asyncio
async def test_sync_pool_uses_token_decimals(sync_service: SyncService, fake_chain: FakeChain) -> None:
    fake_chain.decimals[TOKEN_ADDRESS] = 6
    fake_chain.add_pool(POOL_A, [ALICE], size=1, contribution_wei=10_000_000, token=TOKEN_ADDRESS)
    pool = await sync_service.sync_pool(POOL_A)
    assert pool.contribution == 10.0


@pytest.mark.asyncio
async def test_resync_updates_round_only(
    sync_service: SyncService, fake_chain: FakeChain, db_session: AsyncSession
) -> None:
    fake_chain.add_pool(POOL_A, [ALICE, BOB], size=2)
    await sync_service.sync_pool(POOL_A)

    fake_chain.add_pool(POOL_A, [ALICE, BOB], size=2, current_round=1)
    pool = await sync_service.sync_pool(POOL_A)
    assert pool.current_round == 1
    assert await db_session.scalar(select(func.count()).select_from(Pool)) == 1
    assert await _members(db_session, POOL_A) == [(ALICE, 0), (BOB, 1)]


@pytest.mark.asyncio
async def test_member_sync_is_idempotent(sync_service: SyncService, db_session: AsyncSession) -> None:
    order = [ALICE, BOB, CAROL]
    assert await sync_service.sync_pool_members(POOL_A, order) == 3
    assert await sync_service.sync_pool_members(POOL_A, order) == 3
    assert await _members(db_session, POOL_A) == [(ALICE, 0), (BOB, 1), (CAROL, 2)]


@pytest.mark.asyncio
async def test_member_sync_reorders_and_prunes(sync_service: SyncService, db_session: AsyncSession) -> None:
    """Members dropped from the payout order are removed, the rest renumbered."""
    await sync_service.sync_pool_members(POOL_A, [ALICE, BOB, CAROL])
    await sync_service.sync_pool_members(POOL_A, [CAROL, DAVE, ALICE])
    assert await _members(db_session, POOL_A) == [(CAROL, 0), (DAVE, 1), (ALICE, 2)]


@pytest.mark.asyncio
async def test_member_sync_leaves_other_pools_alone(sync_service: SyncService, db_session: AsyncSession) -> None:
    await sync_service.sync_pool_members(POOL_A, [ALICE, BOB])
    await sync_service.sync_pool_members(POOL_B, [CAROL])
    await sync_service.sync_pool_members(POOL_A, [BOB])
    assert await _members(db_session, POOL_A) == [(BOB, 0)]
    assert await _members(db_session, POOL_B) == [(CAROL, 0)]


@pytest.mark.asyncio
async def test_member_sync_rejects_duplicates(sync_service: SyncService, db_session: AsyncSession) -> None:
    await sync_service.sync_pool_members(POOL_A, [ALICE, BOB])
    with pytest.raises(ValueError, match="Duplicate member"):
        await sync_service.sync_pool_members(POOL_A, [ALICE, BOB, ALICE])
    assert await _members(db_session, POOL_A) == [(ALICE, 0), (BOB, 1)]


@pytest.mark.asyncio
async def test_sync_all_pools_isolates_failures(
    sync_service: SyncService, fake_chain: FakeChain, db_session: AsyncSession
) -> None:
    """One bad pool is reported without stopping the rest."""
    fake_chain.add_pool(POOL_A, [ALICE, BOB])
    fake_chain.add_pool(POOL_B, [CAROL])
    fake_chain.failing_pools.add(POOL_A)

    results = await sync_service.sync_all_pools()
    by_address = {r.address: r for r in results}
    assert by_address[POOL_A].ok is False
    assert by_address[POOL_A].code == "CONTRACT_REVERT"
    assert by_address[POOL_B].ok is True
    assert by_address[POOL_B].error is None

    addresses = (await db_session.execute(select(Pool.address))).scalars().all()
    assert addresses == [POOL_B]


@pytest.mark.asyncio
async def test_sync_all_pools_reports_duplicate_payout_order(
    sync_service: SyncService, fake_chain: FakeChain
) -> None:
    fake_chain.add_pool(POOL_A, [ALICE, ALICE])
    fake_chain.add_pool(POOL_B, [BOB])
    results = await sync_service.sync_all_pools()
    assert [r.ok for r in results] == [False, True]
    assert results[0].code is None
    assert "Duplicate member" in results[0].error


@pytest.mark.asyncio
async def test_track_activity(sync_service: SyncService, db_session: AsyncSession) -> None:
    assert await sync_service.track_activity(ALICE, "join_pool", {"pool": POOL_A}) is True
    assert await sync_service.track_activity(ALICE, "visit") is True
    rows = (await db_session.execute(select(UserActivity).order_by(UserActivity.id))).scalars().all()
    assert [r.activity_type for r in rows] == ["join_pool", "visit"]
    assert json.loads(rows[0].details) == {"pool": POOL_A}
    assert rows[1].details is None


@pytest.mark.asyncio
async def test_record_payout_credits_known_recipient(sync_service: SyncService, db_session: AsyncSession) -> None:
    await sync_service.sync_user(ALICE)
    await sync_service.record_payout(POOL_A, ALICE, 0, 30.0)
    await sync_service.record_payout(POOL_A, ALICE, 1, 12.5)
    await sync_service.record_payout(POOL_A, BOB, 2, 99.0)

    alice = (await db_session.execute(select(User).where(User.address == ALICE))).scalar_one()
    assert alice.total_earnings == 42.5
    assert await db_session.scalar(select(func.count()).select_from(User)) == 1


@pytest.mark.asyncio
async def test_pool_analytics_sums(sync_service: SyncService, fake_chain: FakeChain) -> None:
    fake_chain.add_pool(POOL_A, [ALICE, BOB])
    await sync_service.sync_pool(POOL_A)
    await sync_service.record_contribution(POOL_A, ALICE, 0, 10.0)
    await sync_service.record_contribution(POOL_A, BOB, 0, 10.0)
    await sync_service.record_payout(POOL_A, ALICE, 0, 20.0)

    data = await sync_service.get_pool_analytics(POOL_A)
    assert data is not None
    assert data["memberCount"] == 2
    assert data["totalContributions"] == 20.0
    assert data["contributionCount"] == 2
    assert data["totalPayouts"] == 20.0
    assert data["payoutCount"] == 1

    assert await sync_service.get_pool_analytics(POOL_B) is None


@pytest.mark.asyncio
async def test_user_analytics_counts(sync_service: SyncService, fake_chain: FakeChain) -> None:
    fake_chain.add_pool(POOL_A, [ALICE, BOB])
    await sync_service.sync_user(ALICE)
    await sync_service.sync_pool(POOL_A)
    await sync_service.track_activity(ALICE, "join_pool")

    data = await sync_service.get_user_analytics(ALICE)
    assert data is not None
    assert data["activityCount"] == 1
    assert data["poolsCreated"] == 0
    assert data["poolsJoined"] == 1
    assert await sync_service.get_user_analytics(CAROL) is None
