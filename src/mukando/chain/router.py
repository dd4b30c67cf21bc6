"""Live chain reads: /api/chain. Nothing here touches the mirror."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from mukando.chain.contracts import ChainAccessor, from_base_units
from mukando.chain.networks import ZERO_ADDRESS, is_supported, network_name
from mukando.chain.schemas import BalanceResponse, NetworkResponse, ReferrerResponse
from mukando.dependencies import get_chain

router = APIRouter(prefix="/api/chain", tags=["Chain"])


@router.get("/network", response_model=NetworkResponse)
async def get_network(
    request: Request,
    chain: ChainAccessor = Depends(get_chain),
) -> NetworkResponse:
    """Connected chain id and the contract addresses resolved for it."""
    chain_id = await chain.get_chain_id()
    addresses = await chain.addresses()
    return NetworkResponse(
        chain_id=chain_id,
        name=network_name(chain_id),
        supported=is_supported(request.app.state.settings, chain_id),
        tree=addresses.tree,
        pool_factory=addresses.pool_factory,
    )


@router.get("/referrers/{address}", response_model=ReferrerResponse)
async def get_referrer(
    address: str,
    chain: ChainAccessor = Depends(get_chain),
) -> ReferrerResponse:
    """Referrer recorded in the tree (zero address when not a member)."""
    try:
        referrer = await chain.get_referrer(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return ReferrerResponse(address=address, referrer=referrer, is_member=referrer.lower() != ZERO_ADDRESS)


@router.get("/balances/{owner}", response_model=BalanceResponse)
async def get_balance(
    owner: str,
    token: str = Query(ZERO_ADDRESS),
    chain: ChainAccessor = Depends(get_chain),
) -> BalanceResponse:
    """Token balance of ``owner``; the native coin by default."""
    try:
        balance = await chain.get_token_balance(token, owner)
        decimals = await chain.get_token_decimals(token)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return BalanceResponse(
        owner=owner,
        token=token,
        balance=str(balance),
        decimals=decimals,
        amount=from_base_units(balance, decimals),
    )
