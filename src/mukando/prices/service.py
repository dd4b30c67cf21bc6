"""Token/USD price oracle.

Providers are tried in order (CoinGecko, CoinLore, CoinMarketCap). The first
success is cached in memory for ``ttl_seconds``. When every provider fails
the last quote is served even if expired, and failing that a static price.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass

import httpx
import structlog

from mukando.config import Settings

logger = structlog.get_logger()

COINGECKO_API_BASE = "https://api.coingecko.com/api/v3"
COINLORE_API_BASE = "https://api.coinlore.net/api"
COINMARKETCAP_API_BASE = "https://pro-api.coinmarketcap.com/v1"

# symbol -> provider-specific ids
COINGECKO_IDS = {"POL": "polygon-ecosystem-token"}
COINLORE_IDS = {"POL": "28321"}


class PriceProviderError(Exception):
    """A single price provider could not produce a quote."""


@dataclass
class PriceQuote:
    price: float
    change_24h: float
    market_cap: float
    volume_24h: float
    source: str
    timestamp: float

    def to_dict(self) -> dict[str, float | str]:
        return asdict(self)


@dataclass
class _CacheEntry:
    quote: PriceQuote
    stored_at: float


class PriceOracle:
    """Cached, multi-provider price lookup."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.coinmarketcap_api_key = settings.coinmarketcap_api_key
        self.static_price = settings.price_static_fallback
        self.ttl_seconds = settings.price_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._cache: dict[str, _CacheEntry] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> PriceOracle:
        client = httpx.AsyncClient(timeout=settings.price_request_timeout_seconds)
        return cls(client, settings)

    async def close(self) -> None:
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def get_cached(self, symbol: str) -> PriceQuote | None:
        """Cached quote if younger than the TTL."""
        entry = self._cache.get(symbol)
        if entry and self._clock() - entry.stored_at < self.ttl_seconds:
            return entry.quote
        return None

    def set_cached(self, symbol: str, quote: PriceQuote) -> None:
        self._cache[symbol] = _CacheEntry(quote=quote, stored_at=self._clock())

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    async def _get_json(self, url: str, **kwargs: object) -> object:
        try:
            response = await self.client.get(url, **kwargs)  # type: ignore[arg-type]
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PriceProviderError(str(e)) from e

    async def fetch_from_coingecko(self, symbol: str) -> PriceQuote:
        coin_id = COINGECKO_IDS.get(symbol)
        if coin_id is None:
            raise PriceProviderError(f"Unsupported symbol for CoinGecko: {symbol}")
        data = await self._get_json(
            f"{COINGECKO_API_BASE}/simple/price",
            params={
                "ids": coin_id,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_market_cap": "true",
                "include_24hr_vol": "true",
            },
        )
        entry = data.get(coin_id) if isinstance(data, dict) else None
        if not isinstance(entry, dict) or "usd" not in entry:
            raise PriceProviderError(f"{symbol} price data not found")
        try:
            return PriceQuote(
                price=float(entry["usd"]),
                change_24h=float(entry.get("usd_24h_change") or 0),
                market_cap=float(entry.get("usd_market_cap") or 0),
                volume_24h=float(entry.get("usd_24h_vol") or 0),
                source="coingecko",
                timestamp=self._clock(),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise PriceProviderError(f"Malformed CoinGecko response: {e}") from e

    async def fetch_from_coinlore(self, symbol: str) -> PriceQuote:
        coin_id = COINLORE_IDS.get(symbol)
        if coin_id is None:
            raise PriceProviderError(f"Unsupported symbol for CoinLore: {symbol}")
        data = await self._get_json(f"{COINLORE_API_BASE}/ticker/", params={"id": coin_id})
        if not isinstance(data, list) or not data:
            raise PriceProviderError(f"{symbol} price data not found")
        entry = data[0]
        try:
            return PriceQuote(
                price=float(entry["price_usd"]),
                change_24h=float(entry.get("percent_change_24h") or 0),
                market_cap=float(entry.get("market_cap_usd") or 0),
                volume_24h=float(entry.get("volume24") or 0),
                source="coinlore",
                timestamp=self._clock(),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise PriceProviderError(f"Malformed CoinLore response: {e}") from e

    async def fetch_from_coinmarketcap(self, symbol: str) -> PriceQuote:
        if not self.coinmarketcap_api_key:
            raise PriceProviderError("CoinMarketCap API key not configured")
        data = await self._get_json(
            f"{COINMARKETCAP_API_BASE}/cryptocurrency/quotes/latest",
            params={"symbol": symbol},
            headers={"X-CMC_PRO_API_KEY": self.coinmarketcap_api_key, "Accept": "application/json"},
        )
        try:
            listing = data["data"][symbol]
            if isinstance(listing, list):
                listing = listing[0]
            quote = listing["quote"]["USD"]
            return PriceQuote(
                price=float(quote["price"]),
                change_24h=float(quote.get("percent_change_24h") or 0),
                market_cap=float(quote.get("market_cap") or 0),
                volume_24h=float(quote.get("volume_24h") or 0),
                source="coinmarketcap",
                timestamp=self._clock(),
            )
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise PriceProviderError(f"{symbol} price data not found") from e

    def _providers(self) -> list[tuple[str, Callable[[str], Awaitable[PriceQuote]]]]:
        return [
            ("coingecko", self.fetch_from_coingecko),
            ("coinlore", self.fetch_from_coinlore),
            ("coinmarketcap", self.fetch_from_coinmarketcap),
        ]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_price(self, symbol: str = "POL") -> PriceQuote:
        """Current quote for ``symbol``. Never raises."""
        symbol = symbol.upper()
        cached = self.get_cached(symbol)
        if cached:
            return cached

        for name, fetch in self._providers():
            try:
                quote = await fetch(symbol)
            except PriceProviderError as e:
                logger.warning("price_provider_failed", provider=name, symbol=symbol, error=str(e))
                continue
            self.set_cached(symbol, quote)
            return quote

        expired = self._cache.get(symbol)
        if expired:
            logger.warning("price_using_expired_cache", symbol=symbol, source=expired.quote.source)
            return expired.quote

        logger.error("price_static_fallback", symbol=symbol, price=self.static_price)
        return PriceQuote(
            price=self.static_price,
            change_24h=0.0,
            market_cap=0.0,
            volume_24h=0.0,
            source="static_fallback",
            timestamp=self._clock(),
        )

    @staticmethod
    def usd_value(amount: float, price: float) -> float:
        return round(float(amount) * price, 2)
