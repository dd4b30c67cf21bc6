"""Contract Accessor.

Typed read helpers over the referral tree, the pool factory, pool instances
and ERC-20 tokens. Transactions are signed by the user's wallet in the
browser, so nothing here holds a key.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, TypeVar

import structlog
from web3 import AsyncWeb3
from web3.contract import AsyncContract

from mukando.chain.errors import ChainError, ChainErrorCode, classify_chain_error
from mukando.chain.networks import ZERO_ADDRESS, ContractAddresses, network_name, resolve_addresses
from mukando.config import Settings

logger = structlog.get_logger()

_ABI_DIR = Path(__file__).parent / "abi"
DEFAULT_DECIMALS = 18

T = TypeVar("T")


@lru_cache
def load_abi(name: str) -> list[dict[str, Any]]:
    """Load a bundled ABI by contract name (Tree, PoolFactory, RoscaPool, IERC20)."""
    with open(_ABI_DIR / f"{name}.json") as f:
        return json.load(f)


def from_base_units(value: int, decimals: int = DEFAULT_DECIMALS) -> float:
    """Convert an integer token amount to token units."""
    return float(Decimal(int(value)) / (Decimal(10) ** decimals))


@dataclass(frozen=True)
class PoolInfo:
    """Aggregate parameters returned by a pool's ``poolInfo()``."""

    token: str
    size: int
    contribution_wei: int
    round_duration: int
    start_time: int
    current_round: int
    current_recipient: str
    round_ends_at: int

    @classmethod
    def from_call(cls, result: Any) -> PoolInfo:  # noqa: ANN401
        token, size, contribution, round_duration, start_time, current_round, recipient, ends_at = result
        return cls(
            token=token,
            size=int(size),
            contribution_wei=int(contribution),
            round_duration=int(round_duration),
            start_time=int(start_time),
            current_round=int(current_round),
            current_recipient=recipient,
            round_ends_at=int(ends_at),
        )


class ChainAccessor:
    """Read-side access to the MUKANDO contracts on one network."""

    def __init__(self, w3: AsyncWeb3, settings: Settings) -> None:
        self.w3 = w3
        self.settings = settings
        self._chain_id: int | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> ChainAccessor:
        provider = AsyncWeb3.AsyncHTTPProvider(
            settings.rpc_url,
            request_kwargs={"timeout": settings.rpc_timeout_seconds},
        )
        return cls(AsyncWeb3(provider), settings)

    @staticmethod
    def checksum(address: str) -> str:
        """Checksum an address. Raises ValueError for malformed input."""
        return AsyncWeb3.to_checksum_address(address)

    async def _call(self, label: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except Exception as exc:
            error = classify_chain_error(exc)
            logger.warning("chain_call_failed", call=label, code=error.code.value, error=error.message)
            raise error from exc

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    async def get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(await self._call("eth_chainId", self.w3.eth.chain_id))
            logger.info("chain_connected", chain_id=self._chain_id, network=network_name(self._chain_id))
        return self._chain_id

    async def addresses(self) -> ContractAddresses:
        return resolve_addresses(self.settings, await self.get_chain_id())

    def _contract(self, name: str, address: str) -> AsyncContract:
        return self.w3.eth.contract(address=self.checksum(address), abi=load_abi(name))

    async def _tree(self) -> AsyncContract:
        addresses = await self.addresses()
        if not addresses.tree:
            msg = f"No referral tree configured for chain {addresses.chain_id}"
            raise ChainError(ChainErrorCode.NOT_CONFIGURED, msg)
        return self._contract("Tree", addresses.tree)

    async def _factory(self) -> AsyncContract:
        addresses = await self.addresses()
        if not addresses.pool_factory:
            msg = f"No pool factory configured for chain {addresses.chain_id}"
            raise ChainError(ChainErrorCode.NOT_CONFIGURED, msg)
        return self._contract("PoolFactory", addresses.pool_factory)

    # ------------------------------------------------------------------
    # Referral tree
    # ------------------------------------------------------------------

    async def get_referrer(self, address: str) -> str:
        tree = await self._tree()
        return await self._call("getReferrer", tree.functions.getReferrer(self.checksum(address)).call())

    async def get_inviter(self, address: str) -> str:
        """Inviter recorded for ``address`` in the tree (zero address if none)."""
        tree = await self._tree()
        result = await self._call("tree", tree.functions.tree(self.checksum(address)).call())
        if isinstance(result, (list, tuple)):
            result = result[0]
        return result

    async def is_tree_member(self, address: str) -> bool:
        inviter = await self.get_inviter(address)
        return inviter.lower() != ZERO_ADDRESS

    # ------------------------------------------------------------------
    # Pools
    # ------------------------------------------------------------------

    async def get_pools(self) -> list[str]:
        factory = await self._factory()
        return list(await self._call("getPools", factory.functions.getPools().call()))

    async def get_pool_info(self, pool_address: str) -> PoolInfo:
        pool = self._contract("RoscaPool", pool_address)
        return PoolInfo.from_call(await self._call("poolInfo", pool.functions.poolInfo().call()))

    async def get_payout_order(self, pool_address: str) -> list[str]:
        pool = self._contract("RoscaPool", pool_address)
        return list(await self._call("getPayoutOrder", pool.functions.getPayoutOrder().call()))

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def get_token_decimals(self, token: str) -> int:
        """ERC-20 decimals; 18 for the native coin or tokens without ``decimals()``."""
        if token.lower() == ZERO_ADDRESS:
            return DEFAULT_DECIMALS
        erc20 = self._contract("IERC20", token)
        try:
            return int(await self._call("decimals", erc20.functions.decimals().call()))
        except ChainError:
            return DEFAULT_DECIMALS

    async def get_token_balance(self, token: str, owner: str) -> int:
        """Balance in base units; native balance for the zero address."""
        if token.lower() == ZERO_ADDRESS:
            return int(await self._call("eth_getBalance", self.w3.eth.get_balance(self.checksum(owner))))
        erc20 = self._contract("IERC20", token)
        return int(await self._call("balanceOf", erc20.functions.balanceOf(self.checksum(owner)).call()))
