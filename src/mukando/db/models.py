"""ORM models for the local mirror of on-chain state.

Every table is a loosely-consistent copy. Foreign keys are declared for
documentation and joins but SQLite does not enforce them here (the
``foreign_keys`` pragma is left off), so a pool can point at a creator
that has never been mirrored.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from mukando.db.base import Base, UTCDateTime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A wallet address seen by the API or by a sync."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    is_member: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    referral_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_earnings: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


# ---------------------------------------------------------------------------
# Pools
# ---------------------------------------------------------------------------


class Pool(Base):
    """A MUKANDO pool contract. ``current_round`` only moves on re-sync."""

    __tablename__ = "pools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    creator_address: Mapped[str] = mapped_column(String(42), ForeignKey("users.address"), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    contribution: Mapped[float] = mapped_column(Float, nullable=False)
    round_duration: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[int] = mapped_column(Integer, nullable=False)
    current_round: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="active", nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class PoolMember(Base):
    """Position of a member in a pool's payout order."""

    __tablename__ = "pool_members"
    __table_args__ = (UniqueConstraint("pool_address", "member_address", name="uq_pool_member"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pool_address: Mapped[str] = mapped_column(String(42), ForeignKey("pools.address"), nullable=False)
    member_address: Mapped[str] = mapped_column(String(42), ForeignKey("users.address"), nullable=False)
    payout_order: Mapped[int] = mapped_column(Integer, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class PoolContribution(Base):
    """Append-only contribution ledger. Duplicates are the caller's problem."""

    __tablename__ = "pool_contributions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pool_address: Mapped[str] = mapped_column(String(42), ForeignKey("pools.address"), nullable=False)
    member_address: Mapped[str] = mapped_column(String(42), ForeignKey("users.address"), nullable=False)
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    transaction_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    contributed_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class PoolPayout(Base):
    """Append-only payout ledger."""

    __tablename__ = "pool_payouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pool_address: Mapped[str] = mapped_column(String(42), ForeignKey("pools.address"), nullable=False)
    recipient_address: Mapped[str] = mapped_column(String(42), ForeignKey("users.address"), nullable=False)
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    transaction_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    paid_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


# ---------------------------------------------------------------------------
# Referral tree
# ---------------------------------------------------------------------------


class Referral(Base):
    """Denormalized referral edge. Only the referred side is unique."""

    __tablename__ = "referrals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    referrer_address: Mapped[str] = mapped_column(String(42), ForeignKey("users.address"), nullable=False)
    referred_address: Mapped[str] = mapped_column(
        String(42), ForeignKey("users.address"), unique=True, nullable=False
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


class UserActivity(Base):
    """Free-form audit trail entry."""

    __tablename__ = "user_activity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_address: Mapped[str] = mapped_column(String(42), ForeignKey("users.address"), nullable=False)
    activity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
