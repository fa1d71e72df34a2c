"""Tests for filter input validation and the chat command helpers."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.exceptions import TelegramForbiddenError

from bot.handlers import commands
from bot.keyboards import FilterCallback, MenuAction, MenuCallback, get_filter_list_keyboard
from bot.notifier import Notifier
from conftest import record
from core.models import FilterType
from utils.filters import FilterInputError, parse_filter_input

USER = 7


@pytest.fixture
def mock_db(monkeypatch):
    db = MagicMock()
    db.create_user = AsyncMock(return_value=True)
    db.count_filters = AsyncMock(return_value=0)
    db.add_filter = AsyncMock(return_value=True)
    db.set_filter_value = AsyncMock(return_value=True)
    monkeypatch.setattr(commands, "db", db)
    monkeypatch.setattr(commands, "max_list_filters", 20)
    return db


class TestParseFilterInput:
    """Tests for user input validation."""

    @pytest.mark.parametrize("text, expected", [
        ("1000", "1000"),
        ("  250000 ", "250000"),
        ("1,000,000", "1000000"),
        ("$5000", "5000"),
    ])
    def test_valid_thresholds(self, text, expected):
        assert parse_filter_input(FilterType.MIN_PURCHASE, text) == expected

    @pytest.mark.parametrize("text", ["0", "-5", "12.5", "abc", "", "1e6"])
    def test_invalid_thresholds(self, text):
        with pytest.raises(FilterInputError, match="positive whole number"):
            parse_filter_input(FilterType.MAX_MARKET_CAP, text)

    def test_token_value_is_stripped(self):
        assert parse_filter_input(FilterType.TOKEN_WHITELIST, "  PUMP ") == "PUMP"

    @pytest.mark.parametrize("text", ["", "   ", "PUMP BONK", "x" * 65])
    def test_invalid_list_values(self, text):
        with pytest.raises(FilterInputError):
            parse_filter_input(FilterType.WHALE_BLACKLIST, text)

    def test_toggles_are_not_text_input(self):
        with pytest.raises(FilterInputError):
            parse_filter_input(FilterType.MONITOR_ALL, "true")


class TestSaveFilterInput:
    """Tests for storing user input and auto-disabling notifications."""

    @pytest.mark.asyncio
    async def test_list_value_is_appended_and_notifications_disabled(self, mock_db):
        reply = await commands.save_filter_input(USER, FilterType.TOKEN_WHITELIST, "PUMP")

        mock_db.add_filter.assert_awaited_once_with(USER, FilterType.TOKEN_WHITELIST, "PUMP")
        mock_db.set_filter_value.assert_awaited_once_with(USER, FilterType.NOTIFICATIONS_ENABLED, "false")
        assert "turned OFF" in reply

    @pytest.mark.asyncio
    async def test_threshold_replaces_previous_value(self, mock_db):
        await commands.save_filter_input(USER, FilterType.MIN_PURCHASE, "5000")

        mock_db.add_filter.assert_not_awaited()
        assert mock_db.set_filter_value.await_args_list[0].args == (USER, FilterType.MIN_PURCHASE, "5000")

    @pytest.mark.asyncio
    async def test_list_cap_enforced(self, mock_db):
        mock_db.count_filters.return_value = 20

        with pytest.raises(FilterInputError, match="Maximum 20"):
            await commands.save_filter_input(USER, FilterType.TOKEN_BLACKLIST, "WIF")

        mock_db.add_filter.assert_not_awaited()
        mock_db.set_filter_value.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_input_touches_nothing(self, mock_db):
        with pytest.raises(FilterInputError):
            await commands.save_filter_input(USER, FilterType.MIN_PURCHASE, "12.5")

        mock_db.set_filter_value.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_failure_is_reported(self, mock_db):
        mock_db.add_filter.return_value = False

        with pytest.raises(FilterInputError, match="Error adding filter"):
            await commands.save_filter_input(USER, FilterType.TOKEN_WHITELIST, "PUMP")


class TestFilterListing:
    """Tests for the /filters text and delete keyboard."""

    def test_groups_by_type(self):
        rows = [
            record("token_whitelist", "PUMP"),
            record("min_purchase", "5000"),
            record("notifications_enabled", "true"),
            record("token_whitelist", "BONK"),
        ]

        text = commands.build_filters_text(rows)

        assert "✅ Token Whitelist:\n  • PUMP\n  • BONK" in text
        assert "💰 Minimum Purchase:\n  • $5,000" in text
        assert "notifications_enabled" not in text

    def test_no_editable_filters(self):
        text = commands.build_filters_text([record("notifications_enabled", "true")])
        assert text.startswith("❌ You have no active filters")

    def test_delete_buttons_index_within_type(self):
        rows = [
            record("token_whitelist", "PUMP"),
            record("token_blacklist", "WIF"),
            record("token_whitelist", "VeryLongTokenName"),
        ]

        keyboard = get_filter_list_keyboard(rows)
        buttons = [row[0] for row in keyboard.inline_keyboard]

        assert buttons[0].callback_data == FilterCallback(filter_type=FilterType.TOKEN_WHITELIST, index=0).pack()
        assert buttons[1].callback_data == FilterCallback(filter_type=FilterType.TOKEN_WHITELIST, index=1).pack()
        assert buttons[1].text == "❌ VeryLong..."
        assert buttons[2].callback_data == FilterCallback(filter_type=FilterType.TOKEN_BLACKLIST, index=0).pack()
        assert buttons[3].callback_data == MenuCallback(action=MenuAction.BACK_TO_MENU).pack()

    def test_callback_data_round_trips(self):
        packed = FilterCallback(filter_type=FilterType.WHALE_BLACKLIST, index=3).pack()
        unpacked = FilterCallback.unpack(packed)

        assert unpacked.filter_type == FilterType.WHALE_BLACKLIST
        assert unpacked.index == 3


class TestReturningUsers:
    """Tests for /start and /menu resuming alerts for a chat that blocked the bot."""

    @pytest.fixture
    def blocked_notifier(self, monkeypatch):
        bot = MagicMock()
        bot.send_message = AsyncMock(
            side_effect=TelegramForbiddenError(method=MagicMock(), message="bot was blocked by the user")
        )
        notifier = Notifier(bot, rate_limit_delay=0)
        monkeypatch.setattr(commands, "notifier", notifier)
        return notifier

    @staticmethod
    def make_message():
        message = MagicMock()
        message.from_user.id = USER
        message.from_user.username = "whale_watcher"
        message.answer = AsyncMock()
        return message

    @pytest.mark.asyncio
    async def test_start_unblocks_chat(self, mock_db, blocked_notifier):
        await blocked_notifier.notify_swap(USER, "alert")
        assert blocked_notifier.is_blocked(USER)

        await commands.cmd_start(self.make_message(), AsyncMock())

        mock_db.create_user.assert_awaited_once_with(USER, "whale_watcher")
        assert not blocked_notifier.is_blocked(USER)

    @pytest.mark.asyncio
    async def test_menu_unblocks_chat(self, mock_db, blocked_notifier):
        mock_db.get_user_filters = AsyncMock(return_value=[])
        await blocked_notifier.notify_swap(USER, "alert")

        message = self.make_message()
        await commands.cmd_menu(message, AsyncMock())

        assert not blocked_notifier.is_blocked(USER)
        message.answer.assert_awaited_once()
