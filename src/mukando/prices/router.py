"""Price endpoints."""

from fastapi import APIRouter, Depends, Query

from mukando.dependencies import get_price_oracle
from mukando.prices.schemas import PriceResponse
from mukando.prices.service import PriceOracle

router = APIRouter(prefix="/api/prices", tags=["Prices"])


@router.get("", response_model=PriceResponse)
async def get_price(
    symbol: str = Query("POL", min_length=1, max_length=16),
    amount: float | None = Query(None, ge=0),
    oracle: PriceOracle = Depends(get_price_oracle),
) -> PriceResponse:
    """Latest USD quote (cached for a minute)."""
    quote = await oracle.get_price(symbol)
    response = PriceResponse(symbol=symbol.upper(), **quote.to_dict())
    if amount is not None:
        response.amount = amount
        response.usd_value = oracle.usd_value(amount, quote.price)
    return response
