"""
Configuration module for Whale Tracker Bot.
Loads environment variables and provides application settings.
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram Bot Configuration
    telegram_bot_token: str

    # Swap source (ingestion API returning a JSON array of swaps)
    whale_api_url: str = "http://localhost:3000/api/swaps"
    polling_interval: int = 30
    feed_timeout: float = 10.0

    # Database Configuration
    database_path: str = "./data/whaletracker.db"

    # Price oracle
    price_cache_ttl: int = 300  # seconds
    oracle_timeout: float = 3.0  # per provider
    sol_fallback_price: float = 140.0
    jupiter_price_url: str = "https://lite-api.jup.ag/price/v3"
    birdeye_url: str = "https://public-api.birdeye.so/defi/token_overview"
    birdeye_api_key: Optional[str] = None
    dexscreener_url: str = "https://api.dexscreener.com/latest/dex/tokens"
    coingecko_url: str = "https://api.coingecko.com/api/v3/coins/solana/contract"

    # Notification deduplication
    processed_swaps_max: int = 1000
    processed_swaps_trim_to: int = 500

    # Per-user limit for whitelist / blacklist / whale blacklist entries
    max_list_filters: int = 20

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()


# Create data directory if it doesn't exist
def ensure_data_directory():
    """Ensure the data directory exists for the database."""
    settings = get_settings()
    db_path = Path(settings.database_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
