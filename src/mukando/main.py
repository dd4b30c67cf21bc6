"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from mukando.activity.router import router as activity_router
from mukando.analytics.router import router as analytics_router
from mukando.chain.router import router as chain_router
from mukando.chain.contracts import ChainAccessor
from mukando.config import Settings, get_settings
from mukando.database import Database
from mukando.health.router import router as health_router
from mukando.middleware import setup_middleware
from mukando.pools.router import router as pools_router
from mukando.prices.router import router as prices_router
from mukando.prices.service import PriceOracle
from mukando.sync.router import router as sync_router
from mukando.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    database: Database = app.state.database
    await database.init_schema()
    logger.info("mirror_ready", database=database.url)

    yield

    await app.state.price_oracle.close()
    await database.close()


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    chain: ChainAccessor | None = None,
    price_oracle: PriceOracle | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Collaborators not passed in are built from ``settings``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="MUKANDO Mirror API",
        description="Local mirror and analytics for MUKANDO savings pools and the referral tree",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database(settings.database_url, echo=settings.debug)
    app.state.chain = chain or ChainAccessor.from_settings(settings)
    app.state.price_oracle = price_oracle or PriceOracle.from_settings(settings)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(pools_router)
    app.include_router(activity_router)
    app.include_router(analytics_router)
    app.include_router(sync_router)
    app.include_router(prices_router)
    app.include_router(chain_router)

    return app
