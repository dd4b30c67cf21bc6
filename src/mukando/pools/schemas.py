"""Pool Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

REQUIRED_POOL_FIELDS = ("address", "creator_address", "size", "contribution", "round_duration", "start_time")


class PoolCreateRequest(BaseModel):
    """Body of POST /api/pools. Presence of every field is checked by the handler."""

    address: str | None = None
    creator_address: str | None = None
    size: int | None = None
    contribution: float | None = None
    round_duration: int | None = None
    start_time: int | None = None

    def missing_fields(self) -> list[str]:
        return [name for name in REQUIRED_POOL_FIELDS if not getattr(self, name)]


class PoolResponse(BaseModel):
    """Mirrored pool joined with its creator's username."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    address: str
    creator_address: str
    size: int
    contribution: float
    round_duration: int
    start_time: int
    current_round: int
    status: str
    created_at: datetime
    updated_at: datetime
    creator_username: str | None = None


class PoolMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pool_address: str
    member_address: str
    payout_order: int
    joined_at: datetime


class ContributionCreateRequest(BaseModel):
    member_address: str
    round_number: int
    amount: float
    transaction_hash: str | None = None


class ContributionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    pool_address: str
    member_address: str
    round_number: int
    amount: float
    transaction_hash: str | None = None
    contributed_at: datetime


class PayoutCreateRequest(BaseModel):
    recipient_address: str
    round_number: int
    amount: float
    transaction_hash: str | None = None


class PayoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    pool_address: str
    recipient_address: str
    round_number: int
    amount: float
    transaction_hash: str | None = None
    paid_at: datetime
