"""Per-network contract address resolution."""

from __future__ import annotations

from dataclasses import dataclass

from mukando.config import Settings

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

NETWORK_NAMES: dict[int, str] = {
    137: "Polygon Mainnet",
    80002: "Amoy Testnet",
    1337: "Local development",
    5777: "Local Ganache",
}


@dataclass(frozen=True)
class ContractAddresses:
    """Addresses of the singleton contracts on one network."""

    chain_id: int
    tree: str | None
    pool_factory: str | None


def network_name(chain_id: int) -> str:
    return NETWORK_NAMES.get(chain_id, f"Network {chain_id}")


def is_supported(settings: Settings, chain_id: int | None) -> bool:
    """A network is supported when a referral tree is deployed on it."""
    return chain_id is not None and chain_id in settings.tree_addresses


def resolve_addresses(settings: Settings, chain_id: int) -> ContractAddresses:
    """Addresses configured for ``chain_id``, else those of the default network."""
    if not is_supported(settings, chain_id):
        chain_id = settings.default_chain_id
    return ContractAddresses(
        chain_id=chain_id,
        tree=settings.tree_addresses.get(chain_id),
        pool_factory=settings.pool_factory_addresses.get(chain_id),
    )
