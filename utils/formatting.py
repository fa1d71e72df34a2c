"""
Message formatting utilities for whale swap Telegram notifications.
"""
import re
from datetime import datetime, timezone
from typing import Optional

from core.models import Swap, TokenMarketData
from utils.filters import format_address, get_relevant_token
from utils.tokens import get_token_symbol

SOLSCAN_ACCOUNT_URL = "https://solscan.io/account/{}"
SOLSCAN_TX_URL = "https://solscan.io/tx/{}"
DEXSCREENER_TOKEN_URL = "https://dexscreener.com/solana/{}"

_MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")


def escape_markdown(text: str) -> str:
    """Escape characters that break legacy Telegram Markdown."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def format_market_cap(market_cap: Optional[float]) -> str:
    """
    Format market cap for display.

    Examples: $1.2B, $45.6M, $850K, Unknown (zero or missing)
    """
    if not market_cap or market_cap <= 0:
        return "Unknown"
    if market_cap >= 1_000_000_000:
        return f"${market_cap / 1_000_000_000:.1f}B"
    if market_cap >= 1_000_000:
        return f"${market_cap / 1_000_000:.1f}M"
    return f"${round(market_cap / 1000)}K"


def format_usd(value: Optional[float]) -> str:
    """Whole-dollar USD amount with thousands separators."""
    return f"${round(value or 0):,}"


def format_amount(amount: Optional[float]) -> str:
    if amount is None:
        return "Unknown"
    if abs(amount) >= 1:
        return f"{amount:,.2f}"
    return f"{amount:.6g}"


def format_timestamp(timestamp_ms: int) -> str:
    if not timestamp_ms or timestamp_ms <= 0:
        return "Unknown"
    try:
        moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return "Unknown"
    return moment.strftime("%d/%m/%Y, %I:%M:%S %p UTC")


def _hashtag(symbol: str) -> str:
    tag = re.sub(r"[^0-9A-Za-z]", "", symbol)
    return f"#{tag}" if tag else ""


def format_swap_notification(
    swap: Swap,
    market_data: Optional[TokenMarketData],
    usd_value: float,
    is_buy: bool,
) -> str:
    """
    Format a matched whale swap into a Telegram Markdown message.

    Args:
        swap: The matched swap
        market_data: Market data for the relevant token (None if not looked up)
        usd_value: Estimated USD value of the swap
        is_buy: Whether the whale bought the relevant token

    Returns:
        Formatted message string with emojis
    """
    relevant_token = swap.output_token if is_buy else swap.input_token
    if relevant_token is None:
        relevant_token = get_relevant_token(swap)

    header = "🟢 BUY Alert!" if is_buy else "🔴 SELL Alert!"

    symbol = get_token_symbol(relevant_token)
    mint = relevant_token.mint if relevant_token and relevant_token.mint else ""
    amount = relevant_token.amount if relevant_token else None

    if swap.fee_payer:
        whale_line = (
            f"🐋 Whale: [{format_address(swap.fee_payer)}]"
            f"({SOLSCAN_ACCOUNT_URL.format(swap.fee_payer)})"
        )
    else:
        whale_line = "🐋 Whale: Unknown"

    if mint:
        token_line = f"💰 Token: [{escape_markdown(symbol)}]({DEXSCREENER_TOKEN_URL.format(mint)})"
        ca_line = f"📋 CA: `{mint}`"
    else:
        token_line = f"💰 Token: {escape_markdown(symbol)}"
        ca_line = "📋 CA: Unknown"

    market_cap = market_data.market_cap if market_data else 0
    lines = [
        header,
        "",
        whale_line,
        token_line,
        ca_line,
        f"📊 Amount: {format_amount(amount)}",
        f"💵 Value: {format_usd(usd_value)}",
        f"🏦 Market Cap: {format_market_cap(market_cap)}",
    ]

    if market_data and market_data.price_change_24h:
        change = market_data.price_change_24h
        sign = "+" if change > 0 else ""
        lines.append(f"📈 24h: {sign}{change:.2f}%")

    if swap.signature:
        lines.append(f"🔗 [View Transaction]({SOLSCAN_TX_URL.format(swap.signature)})")

    lines.append(f"🕒 {format_timestamp(swap.timestamp)}")

    tags = ["#WhaleAlert", _hashtag(symbol)]
    lines.append("")
    lines.append(" ".join(tag for tag in tags if tag))

    return "\n".join(lines)
