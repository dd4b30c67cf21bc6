"""Price Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel


class PriceResponse(BaseModel):
    """Token/USD quote, with the USD value of ``amount`` when one was requested."""

    symbol: str
    price: float
    change_24h: float
    market_cap: float
    volume_24h: float
    source: str
    timestamp: float
    amount: float | None = None
    usd_value: float | None = None
