"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with MUKANDO_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="MUKANDO_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///./cashround.db"
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"
    log_format: str = "json"

    # --- Chain ---
    rpc_url: str = "http://127.0.0.1:8545"
    rpc_timeout_seconds: int = 30
    default_chain_id: int = 137
    # JSON maps of chain id -> contract address, e.g. MUKANDO_TREE_ADDRESSES='{"137": "0x..."}'
    tree_addresses: dict[int, str] = {
        137: "0xa1268396c94543f42238accfaee9776fce12a52a",
        1337: "0x7501C433e99F1F1a94EDdcce6Fe0b881cA3a83D4",
        5777: "0xE20677F28c03F92Ff84C76BC8AF419a6e2D9D6e3",
    }
    pool_factory_addresses: dict[int, str] = {}

    # --- Prices ---
    coinmarketcap_api_key: str = ""
    price_cache_ttl_seconds: int = 60
    price_request_timeout_seconds: float = 10.0
    price_static_fallback: float = 0.24


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
