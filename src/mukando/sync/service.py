"""Pull-based mirroring of on-chain state into the local database.

Nothing here is scheduled. Each operation runs when an API call asks for it,
reads the chain through the contract accessor and writes the mirror through
the request's session. Operations are idempotent per row but not atomic
across operations.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from mukando.chain.contracts import from_base_units
from mukando.chain.errors import ChainError
from mukando.chain.networks import ZERO_ADDRESS
from mukando.db.models import (
    Pool,
    PoolContribution,
    PoolMember,
    PoolPayout,
    Referral,
    User,
    UserActivity,
)
from mukando.users.service import get_or_create_user

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from mukando.chain.contracts import ChainAccessor

logger = structlog.get_logger()

# Direct inviter edges only; deeper levels are walked client-side.
DIRECT_REFERRAL_LEVEL = 1


@dataclass
class PoolSyncResult:
    """Outcome of syncing one pool inside a batch."""

    address: str
    ok: bool
    error: str | None = None
    code: str | None = None


class SyncService:
    """Mirror operations bound to one session and one contract accessor."""

    def __init__(self, db: AsyncSession, chain: ChainAccessor) -> None:
        self.db = db
        self.chain = chain

    # ------------------------------------------------------------------
    # Users & referrals
    # ------------------------------------------------------------------

    async def sync_user(self, address: str) -> User:
        """Ensure a user row exists and refresh ``is_member`` from the tree."""
        is_member = await self.chain.is_tree_member(address)

        user, created = await get_or_create_user(self.db, address)
        # Unchanged chain state leaves the row untouched, timestamp included.
        if created or user.is_member != is_member:
            user.is_member = is_member
            user.updated_at = datetime.now(timezone.utc)
        await self.db.commit()

        logger.info("user_synced", address=address, is_member=is_member, created=created)
        return user

    async def sync_referral(self, address: str) -> Referral | None:
        """Mirror the direct ``inviter -> address`` edge if not already present."""
        inviter = await self.chain.get_inviter(address)
        if inviter.lower() == ZERO_ADDRESS:
            return None

        result = await self.db.execute(select(Referral).where(Referral.referred_address == address))
        existing = result.scalar_one_or_none()
        if existing is not None:
            return existing

        await get_or_create_user(self.db, inviter)
        stmt = sqlite_insert(Referral).values(
            referrer_address=inviter,
            referred_address=address,
            level=DIRECT_REFERRAL_LEVEL,
        )
        result = await self.db.execute(stmt.on_conflict_do_nothing(index_elements=["referred_address"]))
        # Only the caller that inserted the edge credits the referrer.
        if result.rowcount == 1:
            await self.db.execute(
                update(User)
                .where(User.address == inviter)
                .values(referral_count=User.referral_count + 1, updated_at=datetime.now(timezone.utc))
            )
            logger.info("referral_synced", referrer=inviter, referred=address)
        await self.db.commit()

        result = await self.db.execute(select(Referral).where(Referral.referred_address == address))
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Pools
    # ------------------------------------------------------------------

    async def _get_pool(self, address: str) -> Pool | None:
        result = await self.db.execute(select(Pool).where(Pool.address == address))
        return result.scalar_one_or_none()

    async def sync_pool(self, address: str) -> Pool:
        """Insert the pool if absent, else refresh ``current_round``; then its members."""
        info = await self.chain.get_pool_info(address)
        payout_order = await self.chain.get_payout_order(address)

        pool = await self._get_pool(address)
        created = False

        if pool is None:
            decimals = await self.chain.get_token_decimals(info.token)
            # poolInfo() does not expose the creator.
            stmt = sqlite_insert(Pool).values(
                address=address,
                creator_address=ZERO_ADDRESS,
                size=info.size,
                contribution=from_base_units(info.contribution_wei, decimals),
                round_duration=info.round_duration,
                start_time=info.start_time,
                current_round=info.current_round,
            )
            result = await self.db.execute(stmt.on_conflict_do_nothing(index_elements=["address"]))
            created = result.rowcount == 1
            pool = (await self.db.execute(select(Pool).where(Pool.address == address))).scalar_one()
            if created:
                logger.info("pool_mirrored", address=address, size=info.size)

        if not created:
            pool.current_round = info.current_round
            pool.updated_at = datetime.now(timezone.utc)
        await self.db.commit()

        await self.sync_pool_members(address, payout_order)
        return pool

    async def sync_pool_members(self, address: str, payout_order: list[str]) -> int:
        """Make the pool's member rows match ``payout_order`` in one transaction.

        Members still present get their position updated, new ones are
        inserted and the rest are deleted, so readers never see a pool with
        its members half-written. Returns the member count.

        Raises:
            ValueError: If ``payout_order`` lists an address twice.
        """
        if len(set(payout_order)) != len(payout_order):
            msg = f"Duplicate member in payout order for pool {address}"
            raise ValueError(msg)

        now = datetime.now(timezone.utc)
        rows = [
            {"pool_address": address, "member_address": member, "payout_order": index, "joined_at": now}
            for index, member in enumerate(payout_order)
        ]

        try:
            if rows:
                # Existing members keep joined_at; concurrent syncs resolve last write wins.
                stmt = sqlite_insert(PoolMember).values(rows)
                await self.db.execute(
                    stmt.on_conflict_do_update(
                        index_elements=["pool_address", "member_address"],
                        set_={"payout_order": stmt.excluded.payout_order},
                    )
                )
            result = await self.db.execute(
                delete(PoolMember)
                .where(PoolMember.pool_address == address)
                .where(PoolMember.member_address.not_in(payout_order))
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("pool_members_synced", address=address, members=len(payout_order), removed=removed)
        return len(payout_order)

    async def sync_all_pools(self) -> list[PoolSyncResult]:
        """Sync every pool known to the factory, isolating each pool's failure."""
        addresses = await self.chain.get_pools()
        results: list[PoolSyncResult] = []

        for address in addresses:
            try:
                await self.sync_pool(address)
            except ChainError as e:
                await self.db.rollback()
                logger.warning("pool_sync_failed", address=address, code=e.code.value, error=e.message)
                results.append(PoolSyncResult(address=address, ok=False, error=e.message, code=e.code.value))
            except Exception as e:
                await self.db.rollback()
                logger.error("pool_sync_failed", address=address, error=str(e), exc_info=e)
                results.append(PoolSyncResult(address=address, ok=False, error=str(e)))
            else:
                results.append(PoolSyncResult(address=address, ok=True))

        logger.info(
            "all_pools_synced",
            total=len(results),
            failed=sum(1 for r in results if not r.ok),
        )
        return results

    # ------------------------------------------------------------------
    # Activity & ledgers
    # ------------------------------------------------------------------

    async def track_activity(
        self,
        user_address: str,
        activity_type: str,
        details: str | dict[str, Any] | None = None,
    ) -> bool:
        """Append an activity row. Returns False instead of raising."""
        if isinstance(details, (dict, list)):
            details = json.dumps(details)
        try:
            self.db.add(
                UserActivity(user_address=user_address, activity_type=activity_type, details=details)
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error("activity_track_failed", address=user_address, type=activity_type, error=str(e))
            return False
        return True

    async def record_contribution(
        self,
        pool_address: str,
        member_address: str,
        round_number: int,
        amount: float,
        transaction_hash: str | None = None,
    ) -> PoolContribution:
        contribution = PoolContribution(
            pool_address=pool_address,
            member_address=member_address,
            round_number=round_number,
            amount=amount,
            transaction_hash=transaction_hash,
        )
        self.db.add(contribution)
        await self.db.commit()
        return contribution

    async def record_payout(
        self,
        pool_address: str,
        recipient_address: str,
        round_number: int,
        amount: float,
        transaction_hash: str | None = None,
    ) -> PoolPayout:
        """Append a payout and credit the recipient's ``total_earnings`` if mirrored."""
        payout = PoolPayout(
            pool_address=pool_address,
            recipient_address=recipient_address,
            round_number=round_number,
            amount=amount,
            transaction_hash=transaction_hash,
        )
        self.db.add(payout)

        result = await self.db.execute(select(User).where(User.address == recipient_address))
        recipient = result.scalar_one_or_none()
        if recipient is not None:
            recipient.total_earnings += amount
            recipient.updated_at = datetime.now(timezone.utc)

        await self.db.commit()
        return payout

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def _count(self, model: type, *criteria: Any) -> int:  # noqa: ANN401
        result = await self.db.execute(select(func.count()).select_from(model).where(*criteria))
        return int(result.scalar_one())

    async def get_user_analytics(self, address: str) -> dict[str, Any] | None:
        """Activity, created and joined pool counts for a user, or None if unknown."""
        result = await self.db.execute(select(User).where(User.address == address))
        user = result.scalar_one_or_none()
        if user is None:
            return None

        return {
            "user": user,
            "activityCount": await self._count(UserActivity, UserActivity.user_address == address),
            "poolsCreated": await self._count(Pool, Pool.creator_address == address),
            "poolsJoined": await self._count(PoolMember, PoolMember.member_address == address),
        }

    async def get_pool_analytics(self, address: str) -> dict[str, Any] | None:
        """Member, contribution and payout aggregates for a pool, or None if unknown."""
        result = await self.db.execute(select(Pool).where(Pool.address == address))
        pool = result.scalar_one_or_none()
        if pool is None:
            return None

        contributions = (
            await self.db.execute(
                select(func.count(), func.coalesce(func.sum(PoolContribution.amount), 0)).where(
                    PoolContribution.pool_address == address
                )
            )
        ).one()
        payouts = (
            await self.db.execute(
                select(func.count(), func.coalesce(func.sum(PoolPayout.amount), 0)).where(
                    PoolPayout.pool_address == address
                )
            )
        ).one()

        return {
            "pool": pool,
            "memberCount": await self._count(PoolMember, PoolMember.pool_address == address),
            "totalContributions": float(contributions[1]),
            "contributionCount": int(contributions[0]),
            "totalPayouts": float(payouts[1]),
            "payoutCount": int(payouts[0]),
        }
