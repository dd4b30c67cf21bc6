"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from mukando.chain.contracts import PoolInfo
from mukando.chain.errors import ChainError, ChainErrorCode
from mukando.chain.networks import ZERO_ADDRESS, ContractAddresses
from mukando.config import Settings
from mukando.database import Database
from mukando.main import create_app
from mukando.prices.service import PriceOracle
from mukando.sync.service import SyncService

TREE_ADDRESS = "0x1111111111111111111111111111111111111111"
FACTORY_ADDRESS = "0x2222222222222222222222222222222222222222"
TOKEN_ADDRESS = "0x3333333333333333333333333333333333333333"

ALICE = "0x" + "a" * 39 + "1"
BOB = "0x" + "b" * 39 + "2"
CAROL = "0x" + "c" * 39 + "3"
DAVE = "0x" + "d" * 39 + "4"
POOL_A = "0x" + "e" * 39 + "1"
POOL_B = "0x" + "e" * 39 + "2"


def _require_address(address: str) -> None:
    if not (address.startswith("0x") and len(address) == 42):
        raise ValueError(f"Unknown format {address!r}, attempted to normalize to {address!r}")


class FakeChain:
    """In-memory stand-in for ChainAccessor with the same read methods."""

    def __init__(self) -> None:
        self.inviters: dict[str, str] = {}
        self.pools: dict[str, tuple[PoolInfo, list[str]]] = {}
        self.failing_pools: set[str] = set()
        self.decimals: dict[str, int] = {}
        self.balances: dict[tuple[str, str], int] = {}
        self.chain_id = 137
        self.unavailable = False

    def _check(self) -> None:
        if self.unavailable:
            raise ChainError(ChainErrorCode.RPC_UNAVAILABLE, "connection refused")

    def add_pool(
        self,
        address: str,
        order: list[str],
        size: int = 3,
        contribution_wei: int = 10 * 10**18,
        current_round: int = 0,
        token: str = ZERO_ADDRESS,
    ) -> PoolInfo:
        info = PoolInfo(
            token=token,
            size=size,
            contribution_wei=contribution_wei,
            round_duration=2_592_000,
            start_time=1_900_000_000,
            current_round=current_round,
            current_recipient=order[current_round] if current_round < len(order) else ZERO_ADDRESS,
            round_ends_at=1_900_000_000 + 2_592_000,
        )
        self.pools[address] = (info, list(order))
        return info

    async def get_chain_id(self) -> int:
        self._check()
        return self.chain_id

    async def addresses(self) -> ContractAddresses:
        return ContractAddresses(chain_id=await self.get_chain_id(), tree=TREE_ADDRESS, pool_factory=FACTORY_ADDRESS)

    async def get_referrer(self, address: str) -> str:
        _require_address(address)
        return await self.get_inviter(address)

    async def get_inviter(self, address: str) -> str:
        self._check()
        return self.inviters.get(address, ZERO_ADDRESS)

    async def is_tree_member(self, address: str) -> bool:
        return (await self.get_inviter(address)) != ZERO_ADDRESS

    async def get_pools(self) -> list[str]:
        self._check()
        return list(self.pools)

    async def get_pool_info(self, pool_address: str) -> PoolInfo:
        self._check()
        if pool_address in self.failing_pools:
            raise ChainError(ChainErrorCode.CONTRACT_REVERT, "execution reverted")
        if pool_address not in self.pools:
            raise ChainError(ChainErrorCode.CONTRACT_REVERT, "no contract code at address")
        return self.pools[pool_address][0]

    async def get_payout_order(self, pool_address: str) -> list[str]:
        self._check()
        return list(self.pools[pool_address][1])

    async def get_token_decimals(self, token: str) -> int:
        return self.decimals.get(token, 18)

    async def get_token_balance(self, token: str, owner: str) -> int:
        _require_address(owner)
        self._check()
        return self.balances.get((token, owner), 0)


def _unreachable_price_api(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, json={"error": "unavailable"})


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'mirror.db'}",
        log_format="console",
        log_level="WARNING",
        default_chain_id=137,
        tree_addresses={137: TREE_ADDRESS},
        pool_factory_addresses={137: FACTORY_ADDRESS},
    )


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings.database_url)
    yield db
    await db.close()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service tests and assertions."""
    async with database.session() as session:
        yield session


@pytest.fixture
def sync_service(db_session: AsyncSession, fake_chain: FakeChain) -> SyncService:
    return SyncService(db_session, fake_chain)  # type: ignore[arg-type]


@pytest_asyncio.fixture
async def price_oracle(settings: Settings) -> AsyncGenerator[PriceOracle, None]:
    oracle = PriceOracle(httpx.AsyncClient(transport=httpx.MockTransport(_unreachable_price_api)), settings)
    yield oracle
    await oracle.close()


@pytest.fixture
def app(
    settings: Settings,
    database: Database,
    fake_chain: FakeChain,
    price_oracle: PriceOracle,
) -> FastAPI:
    return create_app(settings, database=database, chain=fake_chain, price_oracle=price_oracle)  # type: ignore[arg-type]


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """An async HTTP test client over a fresh per-test mirror."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
