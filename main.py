"""
Whale Tracker Bot - Main Entry Point
Polls Solana whale swaps and sends filtered Telegram alerts.
"""
import asyncio
import sys

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from config import get_settings, ensure_data_directory
from core.database import Database
from core.price_oracle import MarketDataCache, PriceOracle
from core.processed_swaps import ProcessedSwapSet
from core.swap_feed import SwapFeed
from core.swap_monitor import SwapMonitor
from bot.notifier import Notifier
from bot.handlers import commands, callbacks
from utils.filters import FilterEngine
from utils.logging_config import setup_logging

settings = get_settings()

loggers = setup_logging(log_level=settings.log_level)
logger = loggers['system']


class WhaleTrackerBot:
    """Main bot application orchestrating all components."""

    def __init__(self):
        """Initialize bot components."""
        self.settings = settings

        self.bot = Bot(token=self.settings.telegram_bot_token)
        self.dp = Dispatcher(storage=MemoryStorage())
        self.db: Database = None
        self.notifier: Notifier = None

        # Process-wide state owned here and injected into the engine and oracle
        self.market_cache = MarketDataCache(ttl_seconds=self.settings.price_cache_ttl)
        self.processed_swaps = ProcessedSwapSet(
            max_size=self.settings.processed_swaps_max,
            trim_to=self.settings.processed_swaps_trim_to
        )

        self.oracle: PriceOracle = None
        self.feed: SwapFeed = None
        self.engine: FilterEngine = None
        self.monitor: SwapMonitor = None

    async def setup(self):
        """Setup all components."""
        logger.info("Setting up Whale Tracker Bot...")

        ensure_data_directory()

        self.db = Database(self.settings.database_path)
        await self.db.connect()

        self.notifier = Notifier(self.bot)

        self.oracle = PriceOracle(
            cache=self.market_cache,
            timeout=self.settings.oracle_timeout,
            jupiter_url=self.settings.jupiter_price_url,
            birdeye_url=self.settings.birdeye_url,
            birdeye_api_key=self.settings.birdeye_api_key,
            dexscreener_url=self.settings.dexscreener_url,
            coingecko_url=self.settings.coingecko_url
        )
        self.feed = SwapFeed(self.settings.whale_api_url, timeout=self.settings.feed_timeout)
        self.engine = FilterEngine(
            self.oracle,
            self.processed_swaps,
            sol_fallback_price=self.settings.sol_fallback_price
        )
        self.monitor = SwapMonitor(
            feed=self.feed,
            db=self.db,
            engine=self.engine,
            oracle=self.oracle,
            notifier=self.notifier,
            polling_interval=self.settings.polling_interval
        )

        # Setup handlers
        commands.db = self.db
        commands.notifier = self.notifier
        commands.polling_interval = self.settings.polling_interval
        commands.max_list_filters = self.settings.max_list_filters
        callbacks.db = self.db

        self.dp.include_router(commands.router)
        self.dp.include_router(callbacks.router)

        logger.info("Setup complete!")

    async def start(self):
        """Start the bot and the monitoring loop."""
        logger.info("Starting Whale Tracker Bot...")

        await self.monitor.start()

        try:
            await self.dp.start_polling(self.bot, allowed_updates=self.dp.resolve_used_update_types())
        finally:
            await self.shutdown()

    async def shutdown(self):
        """Graceful shutdown."""
        logger.info("Shutting down Whale Tracker Bot...")

        if self.monitor:
            await self.monitor.stop()
        if self.feed:
            await self.feed.close()
        if self.oracle:
            await self.oracle.close()
        if self.db:
            await self.db.close()

        await self.bot.session.close()

        logger.info("Shutdown complete")


async def main():
    """Main entry point."""
    bot = WhaleTrackerBot()

    try:
        await bot.setup()
        await bot.start()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
