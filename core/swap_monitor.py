"""
Monitoring loop that polls the swap feed and dispatches notifications.
Each cycle evaluates the latest batch against every user's filters.
"""
import asyncio
import logging
from enum import Enum
from typing import Optional

from core.database import Database
from core.models import CycleStats, Swap, User, UserFilters
from core.price_oracle import PriceOracle
from core.swap_feed import SwapFeed
from bot.notifier import Notifier
from utils.filters import FilterEngine, get_relevant_token, is_buy_transaction, normalize_filters
from utils.formatting import format_swap_notification
from utils.logging_config import log_swap_match
from utils.tokens import get_token_symbol

logger = logging.getLogger(__name__)


class MonitorState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class SwapMonitor:
    """
    Polls for whale swaps on a fixed interval.

    A tick that fires while the previous cycle is still running is skipped,
    so cycles never overlap.
    """

    def __init__(
        self,
        feed: SwapFeed,
        db: Database,
        engine: FilterEngine,
        oracle: PriceOracle,
        notifier: Notifier,
        polling_interval: float = 30,
    ):
        self.feed = feed
        self.db = db
        self.engine = engine
        self.oracle = oracle
        self.notifier = notifier
        self.polling_interval = polling_interval

        self.state = MonitorState.IDLE
        self.last_stats: Optional[CycleStats] = None
        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_cycle(self) -> CycleStats:
        """
        Run one monitoring cycle.

        Returns:
            Counters for this cycle (skipped=True if a cycle was already running)
        """
        if self.state == MonitorState.RUNNING:
            logger.warning("Previous monitoring cycle still running, skipping")
            return CycleStats(skipped=True)

        self.state = MonitorState.RUNNING
        stats = CycleStats()
        try:
            await self._run_cycle(stats)
        except Exception as e:
            # Background ticks never await this task, so failures are logged here
            logger.error(f"Monitoring cycle failed: {e}", exc_info=True)
        finally:
            self.state = MonitorState.IDLE
            self.last_stats = stats

        if stats.swaps_fetched:
            logger.info(
                f"Cycle complete: {stats.swaps_fetched} swaps, {stats.users_processed} users, "
                f"{stats.notifications_sent} sent, {stats.user_errors} user errors, "
                f"{stats.swap_errors} swap errors"
            )
        return stats

    async def _run_cycle(self, stats: CycleStats):
        logger.debug("Checking for new swaps...")
        swaps = await self.feed.fetch_latest()
        stats.swaps_fetched = len(swaps)

        if not swaps:
            logger.debug("No swaps in batch")
            return

        try:
            users = await self.db.get_all_users()
        except Exception as e:
            logger.error(f"Error loading users: {e}")
            return

        logger.debug(f"Evaluating {len(swaps)} swaps for {len(users)} users")

        for user in users:
            try:
                rows = await self.db.get_user_filters(user.telegram_id)
                filters = normalize_filters(rows)
            except Exception as e:
                logger.error(f"Error loading filters for user {user.telegram_id}: {e}")
                stats.user_errors += 1
                continue

            await self._process_user(user, filters, swaps, stats)
            stats.users_processed += 1

    async def _process_user(self, user: User, filters: UserFilters, swaps: list, stats: CycleStats):
        if not filters.notifications_enabled or self.notifier.is_blocked(user.telegram_id):
            return

        matched = 0
        for swap in swaps:
            try:
                if not await self.engine.should_notify(swap, filters, user.telegram_id):
                    continue
                matched += 1
                if await self._notify(user.telegram_id, swap):
                    stats.notifications_sent += 1
            except Exception as e:
                logger.error(f"Error processing swap {swap.identity_key} for user {user.telegram_id}: {e}")
                stats.swap_errors += 1

        if matched:
            logger.info(f"Sent {matched} notifications to user {user.telegram_id}")

    async def _notify(self, user_id: int, swap: Swap) -> bool:
        is_buy = is_buy_transaction(swap)
        relevant_token = get_relevant_token(swap)
        symbol = get_token_symbol(relevant_token)

        usd_value = await self.engine.calculate_swap_value_usd(swap)
        market_data = None
        if relevant_token is not None and relevant_token.mint:
            market_data = await self.oracle.get_token_data(relevant_token.mint, symbol)

        log_swap_match(user_id, swap.identity_key, symbol, usd_value, is_buy)

        text = format_swap_notification(swap, market_data, usd_value, is_buy)
        return await self.notifier.notify_swap(user_id, text, swap.signature)

    def tick(self) -> bool:
        """
        Launch a cycle in the background unless one is in flight.

        Returns:
            True if a new cycle was started
        """
        if self._cycle_task is not None and not self._cycle_task.done():
            logger.warning("Previous monitoring cycle still running, skipping tick")
            return False

        self._cycle_task = asyncio.create_task(self.run_cycle())
        return True

    async def _loop(self):
        while self._running:
            self.tick()
            await asyncio.sleep(self.polling_interval)

    async def start(self):
        """Start polling in the background."""
        if self._running:
            return

        logger.info(f"🐋 Starting whale monitoring every {self.polling_interval} seconds...")
        self._running = True
        self._loop_task = asyncio.create_task(self._loop())

    async def stop(self):
        """Stop polling and cancel any in-flight cycle."""
        self._running = False

        for task in (self._loop_task, self._cycle_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._loop_task = None
        self._cycle_task = None
        self.state = MonitorState.IDLE
        logger.info("Whale monitoring stopped")
