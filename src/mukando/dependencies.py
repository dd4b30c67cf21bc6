"""Shared FastAPI dependencies.

Collaborators are created once in ``create_app`` and kept on ``app.state``;
handlers receive them through these functions so tests can swap any of them.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mukando.chain.contracts import ChainAccessor
from mukando.database import get_session
from mukando.prices.service import PriceOracle
from mukando.sync.service import SyncService


def get_chain(request: Request) -> ChainAccessor:
    """Get the contract accessor attached to the app."""
    return request.app.state.chain


def get_price_oracle(request: Request) -> PriceOracle:
    """Get the price oracle attached to the app."""
    return request.app.state.price_oracle


def get_sync_service(
    db: AsyncSession = Depends(get_session),
    chain: ChainAccessor = Depends(get_chain),
) -> SyncService:
    """Build a sync service bound to this request's session."""
    return SyncService(db, chain)
