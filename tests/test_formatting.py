"""Tests for notification message formatting."""
import re

import pytest

from conftest import BONK_MINT, WHALE, WIF_MINT, buy_swap, leg, make_swap, sell_swap
from core.models import TokenMarketData
from utils.formatting import (
    escape_markdown, format_market_cap, format_swap_notification, format_timestamp, format_usd
)
from utils.tokens import SOL_MINT

CA_PATTERN = re.compile(r"📋 CA: `([^`]+)`")


class TestFormatMarketCap:
    """Tests for B/M/K scaling."""

    @pytest.mark.parametrize("value, expected", [
        (2_340_000_000, "$2.3B"),
        (1_000_000_000, "$1.0B"),
        (45_600_000, "$45.6M"),
        (1_000_000, "$1.0M"),
        (850_400, "$850K"),
        (999, "$1K"),
        (0, "Unknown"),
        (None, "Unknown"),
    ])
    def test_scaling(self, value, expected):
        assert format_market_cap(value) == expected


class TestHelpers:
    def test_format_usd(self):
        assert format_usd(1500.4) == "$1,500"
        assert format_usd(None) == "$0"

    def test_format_timestamp(self):
        assert format_timestamp(1_700_000_000_000) == "14/11/2023, 10:13:20 PM UTC"
        assert format_timestamp(0) == "Unknown"

    def test_escape_markdown(self):
        assert escape_markdown("DOG_WIF*") == "DOG\\_WIF\\*"


class TestFormatSwapNotification:
    """Tests for the full alert message."""

    def test_buy_message_contents(self):
        swap = buy_swap(signature="5xTxSig")
        market_data = TokenMarketData(mint=WIF_MINT, price=0.02, market_cap=2_000_000, price_change_24h=12.5)

        text = format_swap_notification(swap, market_data, 1500.0, is_buy=True)

        assert text.startswith("🟢 BUY Alert!")
        assert f"https://solscan.io/account/{WHALE}" in text
        assert f"[WIF](https://dexscreener.com/solana/{WIF_MINT})" in text
        assert "📊 Amount: 50,000.00" in text
        assert "💵 Value: $1,500" in text
        assert "🏦 Market Cap: $2.0M" in text
        assert "📈 24h: +12.50%" in text
        assert "https://solscan.io/tx/5xTxSig" in text
        assert "#WhaleAlert #WIF" in text

    def test_sell_message_uses_input_token(self):
        text = format_swap_notification(sell_swap(), None, 2500.0, is_buy=False)

        assert text.startswith("🔴 SELL Alert!")
        assert f"`{BONK_MINT}`" in text
        assert "🏦 Market Cap: Unknown" in text

    @pytest.mark.parametrize("mint", [WIF_MINT, BONK_MINT, "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFinpump"])
    def test_contract_address_round_trips(self, mint):
        swap = make_swap(leg(SOL_MINT, 5, "SOL"), leg(mint, 100, "TKN"))

        text = format_swap_notification(swap, None, 750.0, is_buy=True)

        assert CA_PATTERN.search(text).group(1) == mint

    def test_missing_fields_render_unknown(self):
        swap = make_swap(input_token=None, output_token=None, signature=None, fee_payer="", timestamp=0)

        text = format_swap_notification(swap, None, 0.0, is_buy=False)

        assert "🐋 Whale: Unknown" in text
        assert "💰 Token: Unknown" in text
        assert "📋 CA: Unknown" in text
        assert "📊 Amount: Unknown" in text
        assert "🕒 Unknown" in text
        assert "View Transaction" not in text

    def test_symbol_is_escaped(self):
        swap = make_swap(leg(SOL_MINT, 5, "SOL"), leg(WIF_MINT, 100, "DOG_WIF"))

        text = format_swap_notification(swap, None, 750.0, is_buy=True)

        assert "[DOG\\_WIF]" in text
        assert "#DOGWIF" in text
