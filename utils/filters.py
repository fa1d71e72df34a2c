"""
Filtering utilities for whale swaps.
Normalizes stored filter rows and decides whether a swap should trigger a
notification for a user.
"""
import logging
from typing import Hashable, Iterable, List, Optional

from core.models import (
    FilterRecord, FilterType, LIST_FILTER_TYPES, Swap, TokenLeg, UserFilters
)
from core.price_oracle import PriceOracle
from core.processed_swaps import ProcessedSwapSet
from utils.tokens import (
    get_token_symbol, is_hardcoded_blacklisted,
    is_sol, is_spam_mint, is_stablecoin
)

logger = logging.getLogger(__name__)

MAX_FILTER_VALUE_LENGTH = 64


class FilterInputError(ValueError):
    """Raised when user-supplied filter input is rejected. The message is user-facing."""


def _parse_bool(value: str) -> bool:
    return str(value).strip().lower() == "true"


def normalize_filters(rows: Optional[Iterable[FilterRecord]]) -> UserFilters:
    """
    Convert stored filter rows into a UserFilters configuration.

    Singleton types take the last row in iteration order; list types collect
    every row. Unknown types and unparseable numbers are skipped.

    Args:
        rows: Filter rows in insertion order (None is treated as empty)

    Returns:
        Normalized filters, defaults for anything not configured
    """
    filters = UserFilters()
    if not rows:
        return filters

    for row in rows:
        try:
            filter_type = FilterType(row.filter_type)
        except ValueError:
            continue

        value = row.filter_value
        if filter_type == FilterType.TOKEN_WHITELIST:
            filters.tokens.append(value)
        elif filter_type == FilterType.TOKEN_BLACKLIST:
            filters.blacklist.append(value)
        elif filter_type == FilterType.WHALE_BLACKLIST:
            filters.whale_blacklist.append(value)
        elif filter_type in (FilterType.MIN_PURCHASE, FilterType.MAX_MARKET_CAP):
            try:
                number = float(value)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-numeric {filter_type.value} value: {value!r}")
                continue
            if filter_type == FilterType.MIN_PURCHASE:
                filters.min_purchase = number
            else:
                filters.max_market_cap = number
        elif filter_type == FilterType.MONITOR_ALL:
            filters.monitor_all = _parse_bool(value)
        elif filter_type == FilterType.NOTIFICATIONS_ENABLED:
            filters.notifications_enabled = _parse_bool(value)

    return filters


def is_buy_transaction(swap: Swap) -> bool:
    """A swap is a BUY when the whale receives something other than SOL or a stablecoin."""
    output_token = swap.output_token
    if output_token is None:
        return False
    return not is_sol(output_token) and not is_stablecoin(output_token)


def get_relevant_token(swap: Swap) -> Optional[TokenLeg]:
    """The token the swap is "about": bought token for BUYs, sold token for SELLs."""
    return swap.output_token if is_buy_transaction(swap) else swap.input_token


def is_stablecoin_pair(swap: Swap) -> bool:
    """SOL<->stablecoin and stablecoin<->stablecoin swaps are conversions, not trades."""
    input_token, output_token = swap.input_token, swap.output_token
    if input_token is None or output_token is None:
        return False

    if is_stablecoin(output_token) and (is_sol(input_token) or is_stablecoin(input_token)):
        return True
    if is_stablecoin(input_token) and is_sol(output_token):
        return True
    return False


def has_blocked_mint(swap: Swap) -> bool:
    """Spam-prefixed or statically blacklisted mint on either leg."""
    for leg in (swap.input_token, swap.output_token):
        if leg is None:
            continue
        if is_spam_mint(leg.mint) or is_hardcoded_blacklisted(leg.mint):
            return True
    return False


def _matches_token(token: TokenLeg, values: List[str]) -> bool:
    symbol = get_token_symbol(token).lower()
    mint = token.mint.lower()
    for value in values:
        candidate = value.strip().lower()
        if candidate == symbol or (mint and candidate == mint):
            return True
    return False


def check_token_whitelist(token: TokenLeg, allowed_tokens: List[str]) -> bool:
    """Token Filter mode: only whitelisted tokens pass, an empty whitelist passes nothing."""
    if not allowed_tokens:
        return False
    return _matches_token(token, allowed_tokens)


def check_blacklist(token: TokenLeg, blacklisted_tokens: List[str]) -> bool:
    if not blacklisted_tokens:
        return True
    return not _matches_token(token, blacklisted_tokens)


def check_whale_blacklist(whale_address: str, blacklisted_whales: List[str]) -> bool:
    if not blacklisted_whales:
        return True
    address = (whale_address or "").lower()
    return not any(blocked.strip().lower() == address for blocked in blacklisted_whales)


def check_minimum_purchase(swap_value_usd: float, min_purchase: Optional[float]) -> bool:
    if not min_purchase or min_purchase <= 0:
        return True
    return swap_value_usd >= min_purchase


class FilterEngine:
    """
    Notification decision engine.

    Evaluates one swap against one user's normalized filters. Checks run from
    cheapest to most expensive, so oracle lookups only happen for swaps that
    survive every local check. A positive decision commits the swap key to
    the processed set, which suppresses later duplicates.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        processed_swaps: Optional[ProcessedSwapSet] = None,
        sol_fallback_price: float = 140.0,
    ):
        self.oracle = oracle
        self.processed_swaps = processed_swaps if processed_swaps is not None else ProcessedSwapSet()
        self.sol_fallback_price = sol_fallback_price

    async def _leg_value_usd(self, leg: Optional[TokenLeg]) -> Optional[float]:
        """USD value of one leg, or None when the leg cannot be priced."""
        if leg is None:
            return None

        if is_stablecoin(leg):
            return leg.amount

        if is_sol(leg):
            sol_price = await self.oracle.get_sol_price()
            return leg.amount * (sol_price or self.sol_fallback_price)

        if leg.mint:
            market_data = await self.oracle.get_token_data(leg.mint, get_token_symbol(leg))
            if market_data.price > 0:
                return leg.amount * market_data.price

        return None

    async def calculate_swap_value_usd(self, swap: Swap) -> float:
        """
        Estimate the USD value of a swap.

        Input leg first, output leg second. Stablecoins count at face value,
        SOL at the oracle price (with a fallback), other tokens at the oracle
        price when one exists.
        """
        for leg in (swap.input_token, swap.output_token):
            value = await self._leg_value_usd(leg)
            if value is not None:
                return value
        return 0.0

    async def check_market_cap(self, token: TokenLeg, max_market_cap: Optional[float]) -> bool:
        """Pass when the token's market cap is known and at most max_market_cap."""
        if not max_market_cap or max_market_cap <= 0:
            return True

        if not token.mint:
            return False

        market_data = await self.oracle.get_token_data(token.mint, get_token_symbol(token))
        if not market_data.is_market_cap_known:
            logger.debug(f"Unknown market cap for {get_token_symbol(token)}, blocking")
            return False

        return market_data.market_cap <= max_market_cap

    async def _evaluate(self, swap: Swap, filters: UserFilters, scope: Optional[Hashable]) -> bool:
        if not filters.notifications_enabled:
            return False

        if self.processed_swaps.contains(swap.identity_key, scope):
            return False

        if is_stablecoin_pair(swap):
            return False

        if has_blocked_mint(swap):
            return False

        relevant_token = get_relevant_token(swap)
        if relevant_token is None:
            return False

        if filters.monitor_all:
            if not check_blacklist(relevant_token, filters.blacklist):
                return False
        elif not check_token_whitelist(relevant_token, filters.tokens):
            return False

        if not check_whale_blacklist(swap.fee_payer, filters.whale_blacklist):
            return False

        if filters.min_purchase and filters.min_purchase > 0:
            swap_value = await self.calculate_swap_value_usd(swap)
            if not check_minimum_purchase(swap_value, filters.min_purchase):
                return False

        if not await self.check_market_cap(relevant_token, filters.max_market_cap):
            return False

        return True

    async def should_notify(self, swap: Swap, filters: UserFilters, user_id: Optional[Hashable] = None) -> bool:
        """
        Decide whether a swap should be sent to a user, committing it on success.

        Args:
            swap: The swap to evaluate
            filters: The user's normalized filters
            user_id: Deduplication scope (None uses the process-wide scope)

        Returns:
            True if the user should be notified
        """
        try:
            matches = await self._evaluate(swap, filters, user_id)
        except Exception as e:
            logger.error(f"Error evaluating swap {swap.identity_key}: {e}")
            return False

        if matches:
            self.processed_swaps.add(swap.identity_key, user_id)
        return matches


def parse_filter_input(filter_type: FilterType, text: str) -> str:
    """
    Validate user input for a filter and return the value to store.

    Thresholds must be positive whole numbers. Token and whale values must be
    a single non-empty token of reasonable length.

    Raises:
        FilterInputError: with a message suitable for the user
    """
    value = (text or "").strip()

    if filter_type in (FilterType.MIN_PURCHASE, FilterType.MAX_MARKET_CAP):
        cleaned = value.replace(",", "").replace("_", "").lstrip("$")
        if not cleaned.isdigit() or int(cleaned) <= 0:
            raise FilterInputError("❌ Please enter a valid positive whole number (no decimals).")
        return str(int(cleaned))

    if filter_type in LIST_FILTER_TYPES:
        if not value:
            raise FilterInputError("❌ Value cannot be empty.")
        if len(value.split()) > 1:
            raise FilterInputError("❌ Please enter a single token symbol or address.")
        if len(value) > MAX_FILTER_VALUE_LENGTH:
            raise FilterInputError(f"❌ Value is too long (max {MAX_FILTER_VALUE_LENGTH} characters).")
        return value

    raise FilterInputError(f"❌ {filter_type.value} cannot be set from text input.")


def format_address(address: str, length: int = 4) -> str:
    """
    Format a Solana address for display (AbCd...wXyZ).

    Args:
        address: Full address
        length: Number of characters to show on each side

    Returns:
        Formatted address string
    """
    if not address or len(address) <= length * 2:
        return address

    return f"{address[:length]}...{address[-length:]}"
