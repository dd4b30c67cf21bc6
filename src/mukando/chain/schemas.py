"""Chain read Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel


class NetworkResponse(BaseModel):
    chain_id: int
    name: str
    supported: bool
    tree: str | None = None
    pool_factory: str | None = None


class ReferrerResponse(BaseModel):
    address: str
    referrer: str
    is_member: bool


class BalanceResponse(BaseModel):
    """Balance of ``owner`` in ``token`` (zero address = native coin)."""

    owner: str
    token: str
    balance: str
    decimals: int
    amount: float
