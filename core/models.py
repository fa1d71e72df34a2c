"""
Pydantic models for Whale Tracker Bot data structures.
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class FilterType(str, Enum):
    """Filter type enumeration (values match the persisted filter_type column)."""
    TOKEN_WHITELIST = "token_whitelist"
    TOKEN_BLACKLIST = "token_blacklist"
    WHALE_BLACKLIST = "whale_blacklist"
    MIN_PURCHASE = "min_purchase"
    MAX_MARKET_CAP = "max_market_cap"
    MONITOR_ALL = "monitor_all"
    NOTIFICATIONS_ENABLED = "notifications_enabled"


# Every row of these types contributes a value
LIST_FILTER_TYPES = (
    FilterType.TOKEN_WHITELIST,
    FilterType.TOKEN_BLACKLIST,
    FilterType.WHALE_BLACKLIST,
)

# Only the most recently inserted row of these types is authoritative
SINGLETON_FILTER_TYPES = (
    FilterType.MIN_PURCHASE,
    FilterType.MAX_MARKET_CAP,
    FilterType.MONITOR_ALL,
    FilterType.NOTIFICATIONS_ENABLED,
)


class TokenLeg(BaseModel):
    """One side of a swap."""
    mint: str = ""
    amount: float = 0.0
    symbol: Optional[str] = None
    name: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float:
        # Non-numeric amounts are treated as zero rather than rejecting the swap
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("mint", mode="before")
    @classmethod
    def _coerce_mint(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @classmethod
    def from_api(cls, data: Any) -> Optional["TokenLeg"]:
        """
        Build a leg from the ingestion payload.

        The API nests symbol/name under "metadata"; a flat "symbol" is accepted too.
        Returns None when the leg is absent or carries neither mint nor symbol.
        """
        if not isinstance(data, dict):
            return None

        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
        symbol = metadata.get("symbol") or data.get("symbol")
        name = metadata.get("name") or data.get("name")

        leg = cls(
            mint=data.get("mint") or "",
            amount=data.get("amount", 0.0),
            symbol=symbol if isinstance(symbol, str) and symbol else None,
            name=name if isinstance(name, str) and name else None,
        )
        if not leg.mint and not leg.symbol:
            return None
        return leg


class Swap(BaseModel):
    """Whale swap event produced by the ingestion API. Never mutated."""
    signature: Optional[str] = None
    timestamp: int = 0  # milliseconds
    fee_payer: str = ""
    source: str = ""
    description: str = ""
    input_token: Optional[TokenLeg] = None
    output_token: Optional[TokenLeg] = None

    model_config = {"frozen": True}

    @property
    def identity_key(self) -> str:
        """Deduplication key: signature, or timestamp|fee payer when unsigned."""
        if self.signature:
            return self.signature
        return f"{self.timestamp}|{self.fee_payer}"

    @classmethod
    def from_api(cls, data: dict) -> "Swap":
        """Parse one swap object from the ingestion API."""
        try:
            timestamp = int(data.get("timestamp") or 0)
        except (TypeError, ValueError, OverflowError):
            timestamp = 0

        return cls(
            signature=data.get("signature") or None,
            timestamp=timestamp,
            fee_payer=data.get("feePayer") or "",
            source=data.get("source") or "",
            description=data.get("description") or "",
            input_token=TokenLeg.from_api(data.get("inputToken")),
            output_token=TokenLeg.from_api(data.get("outputToken")),
        )


class FilterRecord(BaseModel):
    """Persisted filter row. filter_type is kept as raw text from the store."""
    id: Optional[int] = None
    user_id: int
    filter_type: str
    filter_value: str
    created_at: Optional[datetime] = None


class UserFilters(BaseModel):
    """Normalized per-user filter configuration."""
    tokens: List[str] = Field(default_factory=list)
    blacklist: List[str] = Field(default_factory=list)
    whale_blacklist: List[str] = Field(default_factory=list)
    min_purchase: Optional[float] = None
    max_market_cap: Optional[float] = None
    monitor_all: bool = True  # All Tokens mode by default
    notifications_enabled: bool = False  # Opt-in: users must turn alerts on


class User(BaseModel):
    """Telegram user subscribed to whale alerts."""
    telegram_id: int
    username: Optional[str] = None
    created_at: Optional[datetime] = None


class TokenMarketData(BaseModel):
    """Market data for a token as reported by the price providers."""
    mint: str
    price: float = 0.0
    market_cap: float = 0.0
    price_change_24h: float = 0.0
    fetched_at: float = 0.0  # epoch seconds

    @property
    def is_market_cap_known(self) -> bool:
        return self.market_cap > 0


class CycleStats(BaseModel):
    """Counters for one monitoring cycle."""
    swaps_fetched: int = 0
    users_processed: int = 0
    notifications_sent: int = 0
    user_errors: int = 0
    swap_errors: int = 0
    skipped: bool = False
