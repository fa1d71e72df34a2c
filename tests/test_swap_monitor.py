"""Tests for the monitoring loop / dispatcher."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeOracle, buy_swap, record, sell_swap
from core.models import User
from core.processed_swaps import ProcessedSwapSet
from core.swap_monitor import MonitorState, SwapMonitor
from utils.filters import FilterEngine
from utils.tokens import SOL_MINT

ENABLED = [record("notifications_enabled", "true")]


def make_monitor(swaps, users, filters_by_user, oracle=None):
    feed = MagicMock()
    feed.fetch_latest = AsyncMock(return_value=swaps)

    db = MagicMock()
    db.get_all_users = AsyncMock(return_value=[User(telegram_id=uid) for uid in users])

    async def get_user_filters(user_id):
        value = filters_by_user.get(user_id, [])
        if isinstance(value, Exception):
            raise value
        return value

    db.get_user_filters = AsyncMock(side_effect=get_user_filters)

    notifier = MagicMock()
    notifier.is_blocked = MagicMock(return_value=False)
    notifier.notify_swap = AsyncMock(return_value=True)

    oracle = oracle or FakeOracle()
    oracle.set(SOL_MINT, price=150.0)
    engine = FilterEngine(oracle, ProcessedSwapSet())

    return SwapMonitor(feed, db, engine, oracle, notifier, polling_interval=30)


class TestRunCycle:
    """Tests for a single monitoring cycle."""

    @pytest.mark.asyncio
    async def test_empty_batch_has_no_side_effects(self):
        monitor = make_monitor([], [1], {1: ENABLED})

        stats = await monitor.run_cycle()

        assert stats.swaps_fetched == 0
        monitor.db.get_all_users.assert_not_awaited()
        assert monitor.state == MonitorState.IDLE

    @pytest.mark.asyncio
    async def test_matches_are_sent_in_batch_order(self):
        monitor = make_monitor([buy_swap("a"), sell_swap("b")], [1], {1: ENABLED})

        stats = await monitor.run_cycle()

        assert stats.notifications_sent == 2
        signatures = [call.args[2] for call in monitor.notifier.notify_swap.await_args_list]
        assert signatures == ["a", "b"]

    @pytest.mark.asyncio
    async def test_filters_loaded_once_per_user(self):
        monitor = make_monitor([buy_swap("a"), buy_swap("b"), buy_swap("c")], [1, 2], {1: ENABLED, 2: ENABLED})

        await monitor.run_cycle()

        assert monitor.db.get_user_filters.await_count == 2

    @pytest.mark.asyncio
    async def test_second_cycle_does_not_resend(self):
        monitor = make_monitor([buy_swap("a")], [1], {1: ENABLED})

        first = await monitor.run_cycle()
        second = await monitor.run_cycle()

        assert first.notifications_sent == 1
        assert second.notifications_sent == 0

    @pytest.mark.asyncio
    async def test_disabled_user_gets_nothing(self):
        monitor = make_monitor([buy_swap("a")], [1, 2], {1: [], 2: ENABLED})

        stats = await monitor.run_cycle()

        assert stats.notifications_sent == 1
        assert monitor.notifier.notify_swap.await_args.args[0] == 2

    @pytest.mark.asyncio
    async def test_user_failure_does_not_abort_batch(self):
        monitor = make_monitor([buy_swap("a")], [1, 2], {1: RuntimeError("db locked"), 2: ENABLED})

        stats = await monitor.run_cycle()

        assert stats.user_errors == 1
        assert stats.notifications_sent == 1
        assert monitor.state == MonitorState.IDLE

    @pytest.mark.asyncio
    async def test_swap_failure_does_not_abort_user(self):
        monitor = make_monitor([buy_swap("a"), buy_swap("b")], [1], {1: ENABLED})
        monitor.notifier.notify_swap = AsyncMock(side_effect=[RuntimeError("send failed"), True])

        stats = await monitor.run_cycle()

        assert stats.swap_errors == 1
        assert stats.notifications_sent == 1

    @pytest.mark.asyncio
    async def test_last_stats_recorded(self):
        monitor = make_monitor([buy_swap("a")], [1], {1: ENABLED})

        stats = await monitor.run_cycle()

        assert monitor.last_stats is stats

    @pytest.mark.asyncio
    async def test_unexpected_feed_error_is_contained(self):
        monitor = make_monitor([], [1], {1: ENABLED})
        monitor.feed.fetch_latest = AsyncMock(side_effect=OverflowError("cannot convert float infinity"))

        stats = await monitor.run_cycle()

        assert stats.notifications_sent == 0
        assert monitor.last_stats is stats
        assert monitor.state == MonitorState.IDLE

    @pytest.mark.asyncio
    async def test_overlapping_cycle_is_skipped(self):
        monitor = make_monitor([buy_swap("a")], [1], {1: ENABLED})
        monitor.state = MonitorState.RUNNING

        stats = await monitor.run_cycle()

        assert stats.skipped is True
        monitor.feed.fetch_latest.assert_not_awaited()


class TestScheduling:
    """Tests for tick / start / stop."""

    @pytest.mark.asyncio
    async def test_tick_skips_while_cycle_in_flight(self):
        release = asyncio.Event()
        monitor = make_monitor([], [], {})

        async def slow_fetch():
            await release.wait()
            return []

        monitor.feed.fetch_latest = AsyncMock(side_effect=slow_fetch)

        assert monitor.tick() is True
        await asyncio.sleep(0)
        assert monitor.tick() is False

        release.set()
        await asyncio.sleep(0.01)
        assert monitor.tick() is True
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        monitor = make_monitor([], [], {})

        await monitor.start()
        assert monitor.is_running
        await asyncio.sleep(0.01)

        await monitor.stop()
        assert not monitor.is_running
        assert monitor.state == MonitorState.IDLE
        monitor.feed.fetch_latest.assert_awaited()
