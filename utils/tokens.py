"""
Solana token reference data.
Maps well-known mint addresses to symbols and holds the operational token lists
(stablecoins, spam prefixes, deny list, known supplies) used by the filters
and the price oracle.
"""
from typing import Dict, Optional

from core.models import TokenLeg

SOL_MINT = "So11111111111111111111111111111111111111112"
SOL_SYMBOL = "SOL"

# Stablecoins value at ~$1 and are never the "interesting" side of a trade
STABLECOINS = frozenset({"USDC", "USDT", "BUSD", "USD1", "DAI", "FRAX"})

# Mint prefixes used by spam token deployers
SPAM_MINT_PREFIXES = ("Xs",)

# Operationally maintained deny list, not user-configurable
HARDCODED_BLACKLIST = frozenset({
    "EJhqXKJEncSx1HJjS5ZpKdiKGGgLiRgNPvo8JZvw5Guj",
})

# Symbols for mints that often arrive without usable metadata
KNOWN_TOKENS: Dict[str, str] = {
    "Ey59PH7Z4BFU4HjyKnyMdWt5GGN76KazTAwQihoUXRnk": "LAUNCHCOIN",
    "pumpCmXqMfrsAkQ5r49WcJnRayYRqmXz6ae8H7H9Dfn": "PUMP",
    "HeLp6NuQkmYB4pYWo2zYs22mESHXPQYzXbB8n4V98jwC": "ai16z",
    "HUMA1821qVDKta3u2ovmfDQeW2fSQouSKE8fkF44wvGw": "HUMA",
    SOL_MINT: SOL_SYMBOL,
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "USDC",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "USDT",
    "USD1ttGY1N17NEEHLmELoaybftRBUSErhqYiQzvEmuB": "USD1",
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": "mSOL",
    "bSo13r4TkiE4KumL71LsHTPpL2euBYLFx6h9HP3piy1": "bSOL",
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": "BONK",
    "2FPyTwcZLUg1MDrwsyoP4D6s1tM7hAkHYRjkNb5w6Pxk": "ETH",
    "9n4nbM75f5Ui33ZbPYXn59EwSgE8CGsHtAeTH5YFeJ9E": "BTC",
    "5oVNBeEEQvYi1cX3ir8Dx5n1P7pdxydbGF2X4TxVusJm": "INF",
    "A9mUU4qviSctJVPJdBJWkb28deg915LYJKrzQ19ji3FM": "USDCet",
    "3NZ9JMVBmGAqocybic2c7LQCJScmgsAZ6vQqTDzcqmJh": "WBTC",
}

# Circulating supplies for tokens whose provider-reported market cap is unreliable
KNOWN_SUPPLIES: Dict[str, float] = {
    "SOL": 542_300_000,
    "USDC": 72_400_000_000,
    "USDT": 169_100_000_000,
    "GUN": 1_121_166_667,
    "CPOOL": 808_900_000,
    "PUMP": 1_000_000_000_000,
}

# Launchpad mints (pump.fun, letsbonk) are minted with a fixed 1B supply
LAUNCHPAD_MINT_SUFFIXES = ("pump", "bonk")
LAUNCHPAD_SUPPLY = 1_000_000_000


def get_token_symbol(token: Optional[TokenLeg]) -> str:
    """
    Resolve a display symbol for a swap leg.

    Order: leg metadata symbol, known mint table, leg name, "Unknown".
    """
    if token is None:
        return "Unknown"

    if token.symbol:
        return token.symbol

    if token.mint and token.mint in KNOWN_TOKENS:
        return KNOWN_TOKENS[token.mint]

    return token.name or "Unknown"


def symbol_for_mint(mint: str, fallback_symbol: Optional[str] = None) -> str:
    """Symbol lookup by mint with a caller-provided fallback."""
    return KNOWN_TOKENS.get(mint) or fallback_symbol or "Unknown"


def is_stablecoin(token: Optional[TokenLeg]) -> bool:
    if token is None:
        return False
    return get_token_symbol(token).upper() in STABLECOINS


def is_sol(token: Optional[TokenLeg]) -> bool:
    if token is None:
        return False
    return token.mint == SOL_MINT or get_token_symbol(token).upper() == SOL_SYMBOL


def is_spam_mint(mint: Optional[str]) -> bool:
    return bool(mint) and mint.startswith(SPAM_MINT_PREFIXES)


def is_hardcoded_blacklisted(mint: Optional[str]) -> bool:
    return bool(mint) and mint in HARDCODED_BLACKLIST


def get_known_supply(mint: str, symbol: Optional[str]) -> Optional[float]:
    """
    Return a known total/circulating supply for the token, or None.

    Symbol table first, then launchpad mint suffix heuristics.
    """
    if symbol and symbol in KNOWN_SUPPLIES:
        return KNOWN_SUPPLIES[symbol]

    if mint and mint.endswith(LAUNCHPAD_MINT_SUFFIXES):
        return LAUNCHPAD_SUPPLY

    return None
