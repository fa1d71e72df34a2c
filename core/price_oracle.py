"""
Price oracle adapter for Solana tokens.
Queries several market-data providers concurrently and merges their answers
into a single TokenMarketData, with a short-lived in-memory cache.
"""
import asyncio
import logging
import math
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import aiohttp
from pydantic import BaseModel

from core.models import TokenMarketData
from utils.tokens import SOL_MINT, SOL_SYMBOL, get_known_supply, symbol_for_mint

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 300  # 5 minutes
DEFAULT_PROVIDER_TIMEOUT = 3.0
DEFAULT_CACHE_MAX_ENTRIES = 2000


class ProviderQuote(BaseModel):
    """Normalized answer from a single provider. Zero means "no data"."""
    price: float = 0.0
    market_cap: float = 0.0
    price_change_24h: float = 0.0


def _to_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _non_negative(value: Any) -> float:
    return max(_to_float(value), 0.0)


def parse_jupiter(payload: Any, mint: str) -> ProviderQuote:
    """
    Jupiter price API.

    v3 returns {mint: {"usdPrice": ..., "priceChange24h": ...}}, older versions
    wrap entries in "data" and use "price".
    """
    if not isinstance(payload, dict):
        return ProviderQuote()

    entry = payload.get(mint)
    if entry is None and isinstance(payload.get("data"), dict):
        entry = payload["data"].get(mint)
    if not isinstance(entry, dict):
        return ProviderQuote()

    price = entry.get("usdPrice", entry.get("price"))
    return ProviderQuote(
        price=_non_negative(price),
        price_change_24h=_to_float(entry.get("priceChange24h")),
    )


def parse_birdeye(payload: Any) -> ProviderQuote:
    """Birdeye token overview: {"data": {"price", "marketCap"|"mc", "priceChange24hPercent"}}."""
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        return ProviderQuote()

    data = payload["data"]
    market_cap = data.get("marketCap") or data.get("mc") or 0
    return ProviderQuote(
        price=_non_negative(data.get("price")),
        market_cap=_non_negative(market_cap),
        price_change_24h=_to_float(data.get("priceChange24hPercent")),
    )


def parse_dexscreener(payload: Any) -> ProviderQuote:
    """DexScreener tokens endpoint. The first pair is the most liquid one."""
    if not isinstance(payload, dict):
        return ProviderQuote()

    pairs = payload.get("pairs")
    if not isinstance(pairs, list) or not pairs or not isinstance(pairs[0], dict):
        return ProviderQuote()

    pair = pairs[0]
    price_change = pair.get("priceChange") if isinstance(pair.get("priceChange"), dict) else {}
    return ProviderQuote(
        price=_non_negative(pair.get("priceUsd")),
        market_cap=_non_negative(pair.get("fdv") or pair.get("marketCap") or 0),
        price_change_24h=_to_float(price_change.get("h24")),
    )


def parse_coingecko(payload: Any) -> ProviderQuote:
    """CoinGecko contract endpoint: market_data.{current_price,market_cap}.usd."""
    if not isinstance(payload, dict) or not isinstance(payload.get("market_data"), dict):
        return ProviderQuote()

    market_data = payload["market_data"]
    current_price = market_data.get("current_price") if isinstance(market_data.get("current_price"), dict) else {}
    market_cap = market_data.get("market_cap") if isinstance(market_data.get("market_cap"), dict) else {}
    return ProviderQuote(
        price=_non_negative(current_price.get("usd")),
        market_cap=_non_negative(market_cap.get("usd")),
        price_change_24h=_to_float(market_data.get("price_change_percentage_24h")),
    )


def merge_quotes(quotes: List[ProviderQuote]) -> ProviderQuote:
    """Take the first non-zero value per field, in provider priority order."""
    merged = ProviderQuote()
    for quote in quotes:
        if not merged.price and quote.price > 0:
            merged.price = quote.price
        if not merged.market_cap and quote.market_cap > 0:
            merged.market_cap = quote.market_cap
        if not merged.price_change_24h and quote.price_change_24h:
            merged.price_change_24h = quote.price_change_24h
    return merged


class MarketDataCache:
    """
    In-memory TokenMarketData cache keyed by mint.

    Entries are fresh while now - fetched_at < ttl. All-zero results are cached
    too so a provider without data for a token is not hammered every cycle.
    Stale entries are dropped on read, and once the cache holds more than
    max_entries every stale entry is pruned, then the oldest inserted ones.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.time,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
    ):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.max_entries = max_entries
        self._entries: Dict[str, TokenMarketData] = {}

    def _is_stale(self, entry: TokenMarketData, now: float) -> bool:
        return now - entry.fetched_at >= self.ttl_seconds

    def get(self, mint: str) -> Optional[TokenMarketData]:
        entry = self._entries.get(mint)
        if entry is None:
            return None
        if self._is_stale(entry, self.clock()):
            del self._entries[mint]
            return None
        return entry

    def set(self, data: TokenMarketData):
        # Last writer wins when two lookups for the same mint overlap
        self._entries.pop(data.mint, None)
        self._entries[data.mint] = data
        if len(self._entries) > self.max_entries:
            self._prune()

    def _prune(self):
        now = self.clock()
        stale = [mint for mint, entry in self._entries.items() if self._is_stale(entry, now)]
        for mint in stale:
            del self._entries[mint]

        # Dicts keep insertion order, so the first keys are the oldest
        overflow = len(self._entries) - self.max_entries
        for mint in list(self._entries)[:max(overflow, 0)]:
            del self._entries[mint]

        logger.debug(f"Pruned market data cache to {len(self._entries)} entries")

    def __len__(self) -> int:
        return len(self._entries)


ProviderFetcher = Callable[[str], Awaitable[ProviderQuote]]


class PriceOracle:
    """
    Multi-provider market data lookup.

    Providers are queried concurrently, each bounded by its own timeout, and
    merged in a fixed priority order (Jupiter, Birdeye, DexScreener, CoinGecko).
    Tokens with a known supply skip the market-cap providers and derive the cap
    from price * supply. Lookups never raise.
    """

    def __init__(
        self,
        cache: Optional[MarketDataCache] = None,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT,
        jupiter_url: str = "https://lite-api.jup.ag/price/v3",
        birdeye_url: str = "https://public-api.birdeye.so/defi/token_overview",
        birdeye_api_key: Optional[str] = None,
        dexscreener_url: str = "https://api.dexscreener.com/latest/dex/tokens",
        coingecko_url: str = "https://api.coingecko.com/api/v3/coins/solana/contract",
    ):
        """Initialize the oracle with provider endpoints."""
        self.cache = cache if cache is not None else MarketDataCache()
        self.timeout = timeout
        self.jupiter_url = jupiter_url
        self.birdeye_url = birdeye_url
        self.birdeye_api_key = birdeye_api_key
        self.dexscreener_url = dexscreener_url.rstrip("/")
        self.coingecko_url = coingecko_url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_json(self, url: str, params: Optional[dict] = None, headers: Optional[dict] = None) -> Any:
        """GET a JSON document. Returns None on non-200 responses."""
        await self._ensure_session()

        async with self._session.get(url, params=params, headers=headers) as response:
            if response.status != 200:
                logger.debug(f"HTTP {response.status} from {url}")
                return None
            return await response.json(content_type=None)

    # Providers

    async def fetch_jupiter(self, mint: str) -> ProviderQuote:
        payload = await self._get_json(self.jupiter_url, params={"ids": mint})
        return parse_jupiter(payload, mint)

    async def fetch_birdeye(self, mint: str) -> ProviderQuote:
        if not self.birdeye_api_key:
            return ProviderQuote()
        payload = await self._get_json(
            self.birdeye_url,
            params={"address": mint},
            headers={"X-API-KEY": self.birdeye_api_key, "x-chain": "solana"},
        )
        return parse_birdeye(payload)

    async def fetch_dexscreener(self, mint: str) -> ProviderQuote:
        payload = await self._get_json(f"{self.dexscreener_url}/{mint}")
        return parse_dexscreener(payload)

    async def fetch_coingecko(self, mint: str) -> ProviderQuote:
        payload = await self._get_json(f"{self.coingecko_url}/{mint}")
        return parse_coingecko(payload)

    def _price_providers(self) -> List[Tuple[str, ProviderFetcher]]:
        """Providers that answer price quickly, used for the known-supply path."""
        return [
            ("Jupiter", self.fetch_jupiter),
            ("DexScreener", self.fetch_dexscreener),
        ]

    def _all_providers(self) -> List[Tuple[str, ProviderFetcher]]:
        return [
            ("Jupiter", self.fetch_jupiter),
            ("Birdeye", self.fetch_birdeye),
            ("DexScreener", self.fetch_dexscreener),
            ("CoinGecko", self.fetch_coingecko),
        ]

    async def _safe_quote(self, name: str, fetcher: ProviderFetcher, mint: str) -> ProviderQuote:
        """Run one provider with a deadline. Any failure yields a zero quote."""
        try:
            return await asyncio.wait_for(fetcher(mint), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug(f"{name} timed out for {mint}")
        except (aiohttp.ClientError, ValueError) as e:
            logger.debug(f"{name} request failed for {mint}: {e}")
        except Exception as e:
            logger.warning(f"Unexpected {name} error for {mint}: {e}")
        return ProviderQuote()

    async def _query(self, mint: str, providers: List[Tuple[str, ProviderFetcher]]) -> ProviderQuote:
        # gather keeps the provider order, so priority stays deterministic
        quotes = await asyncio.gather(
            *(self._safe_quote(name, fetcher, mint) for name, fetcher in providers)
        )
        return merge_quotes(list(quotes))

    async def get_token_data(self, mint: str, fallback_symbol: Optional[str] = None) -> TokenMarketData:
        """
        Get price, market cap and 24h change for a token.

        Args:
            mint: Token mint address
            fallback_symbol: Symbol to use when the mint is not in the known table

        Returns:
            TokenMarketData (all zeros when nothing could be fetched)
        """
        if not mint:
            return TokenMarketData(mint="", fetched_at=self.cache.clock())

        cached = self.cache.get(mint)
        if cached is not None:
            return cached

        symbol = symbol_for_mint(mint, fallback_symbol)
        known_supply = get_known_supply(mint, symbol)

        if known_supply:
            quote = await self._query(mint, self._price_providers())
            market_cap = quote.price * known_supply
            logger.debug(f"Known supply for {symbol}: {known_supply:,.0f}, price ${quote.price}")
        else:
            quote = await self._query(mint, self._all_providers())
            market_cap = quote.market_cap

        data = TokenMarketData(
            mint=mint,
            price=quote.price,
            market_cap=market_cap,
            price_change_24h=quote.price_change_24h,
            fetched_at=self.cache.clock(),
        )
        self.cache.set(data)

        if not data.price and not data.market_cap:
            logger.debug(f"No market data found for {symbol} ({mint})")

        return data

    async def get_sol_price(self) -> float:
        """Current SOL price in USD, 0.0 when unavailable."""
        data = await self.get_token_data(SOL_MINT, SOL_SYMBOL)
        return data.price
