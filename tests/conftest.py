"""Pytest configuration and fixtures."""
from typing import Dict, List, Optional, Tuple

import pytest

from core.models import FilterRecord, Swap, TokenLeg, TokenMarketData, UserFilters
from core.processed_swaps import ProcessedSwapSet
from utils.filters import FilterEngine
from utils.tokens import SOL_MINT

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
WIF_MINT = "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm"
WHALE = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


class FakeOracle:
    """In-memory stand-in for PriceOracle that records every lookup."""

    def __init__(self, data: Optional[Dict[str, TokenMarketData]] = None):
        self.data = data or {}
        self.calls: List[Tuple[str, Optional[str]]] = []

    def set(self, mint: str, price: float = 0.0, market_cap: float = 0.0, price_change_24h: float = 0.0):
        self.data[mint] = TokenMarketData(
            mint=mint, price=price, market_cap=market_cap, price_change_24h=price_change_24h
        )

    async def get_token_data(self, mint: str, fallback_symbol: Optional[str] = None) -> TokenMarketData:
        self.calls.append((mint, fallback_symbol))
        return self.data.get(mint, TokenMarketData(mint=mint))

    async def get_sol_price(self) -> float:
        data = await self.get_token_data(SOL_MINT, "SOL")
        return data.price


def leg(mint: str, amount: float = 1.0, symbol: Optional[str] = None) -> TokenLeg:
    return TokenLeg(mint=mint, amount=amount, symbol=symbol)


def make_swap(
    input_token: Optional[TokenLeg] = None,
    output_token: Optional[TokenLeg] = None,
    signature: Optional[str] = "sig-1",
    fee_payer: str = WHALE,
    timestamp: int = 1_700_000_000_000,
) -> Swap:
    return Swap(
        signature=signature,
        timestamp=timestamp,
        fee_payer=fee_payer,
        source="JUPITER",
        input_token=input_token,
        output_token=output_token,
    )


def buy_swap(signature: str = "sig-buy", sol_amount: float = 10.0, fee_payer: str = WHALE) -> Swap:
    """Whale spends SOL on WIF."""
    return make_swap(
        input_token=leg(SOL_MINT, sol_amount, "SOL"),
        output_token=leg(WIF_MINT, 50_000, "WIF"),
        signature=signature,
        fee_payer=fee_payer,
    )


def sell_swap(signature: str = "sig-sell") -> Swap:
    """Whale sells BONK for USDC."""
    return make_swap(
        input_token=leg(BONK_MINT, 1_000_000, "BONK"),
        output_token=leg(USDC_MINT, 2_500, "USDC"),
        signature=signature,
    )


def record(filter_type: str, value: str, user_id: int = 1, row_id: Optional[int] = None) -> FilterRecord:
    return FilterRecord(id=row_id, user_id=user_id, filter_type=filter_type, filter_value=value)


@pytest.fixture
def oracle() -> FakeOracle:
    fake = FakeOracle()
    fake.set(SOL_MINT, price=150.0, market_cap=80_000_000_000)
    fake.set(WIF_MINT, price=0.02, market_cap=2_000_000)
    fake.set(BONK_MINT, price=0.0000025, market_cap=150_000_000)
    return fake


@pytest.fixture
def processed() -> ProcessedSwapSet:
    return ProcessedSwapSet(max_size=1000, trim_to=500)


@pytest.fixture
def engine(oracle, processed) -> FilterEngine:
    return FilterEngine(oracle, processed, sol_fallback_price=140.0)


@pytest.fixture
def enabled_filters() -> UserFilters:
    """All Tokens mode with notifications on and no other filters."""
    return UserFilters(notifications_enabled=True)
