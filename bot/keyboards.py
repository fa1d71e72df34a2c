"""
Telegram inline keyboards for Whale Tracker Bot.
Callback payloads are typed CallbackData classes so handlers dispatch on enums
instead of parsing raw strings.
"""
from enum import Enum
from typing import List

from aiogram.filters.callback_data import CallbackData
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from core.models import FilterRecord, FilterType, UserFilters


class MenuAction(str, Enum):
    """Actions reachable from the main menu."""
    TOGGLE_MONITOR_MODE = "toggle_monitor_mode"
    TOGGLE_NOTIFICATIONS = "toggle_notifications"
    ADD_TOKEN = "add_token"
    ADD_MIN_PURCHASE = "add_min_purchase"
    ADD_MAX_MARKET_CAP = "add_max_market_cap"
    ADD_BLACKLIST = "add_blacklist"
    ADD_WHALE_BLACKLIST = "add_whale_blacklist"
    VIEW_FILTERS = "view_filters"
    CLEAR_ALL = "clear_all_filters"
    CONFIRM_CLEAR_ALL = "confirm_clear_all"
    BACK_TO_MENU = "back_to_menu"


class MenuCallback(CallbackData, prefix="menu"):
    action: MenuAction


class FilterCallback(CallbackData, prefix="del"):
    """Delete the index-th row of a filter type (index within that type)."""
    filter_type: FilterType
    index: int


# Menu action -> filter type the user is asked to enter
ADD_ACTIONS = {
    MenuAction.ADD_TOKEN: FilterType.TOKEN_WHITELIST,
    MenuAction.ADD_MIN_PURCHASE: FilterType.MIN_PURCHASE,
    MenuAction.ADD_MAX_MARKET_CAP: FilterType.MAX_MARKET_CAP,
    MenuAction.ADD_BLACKLIST: FilterType.TOKEN_BLACKLIST,
    MenuAction.ADD_WHALE_BLACKLIST: FilterType.WHALE_BLACKLIST,
}

# Display order and titles of user-editable filter groups
FILTER_GROUPS = [
    (FilterType.TOKEN_WHITELIST, "✅ Token Whitelist"),
    (FilterType.MIN_PURCHASE, "💰 Minimum Purchase"),
    (FilterType.MAX_MARKET_CAP, "📊 Maximum Market Cap"),
    (FilterType.TOKEN_BLACKLIST, "🚫 Token Blacklist"),
    (FilterType.WHALE_BLACKLIST, "🐋 Whale Blacklist"),
]


def _menu_button(text: str, action: MenuAction) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=MenuCallback(action=action).pack())


def get_main_menu_keyboard(filters: UserFilters) -> InlineKeyboardMarkup:
    """Get the main menu keyboard reflecting the user's current mode and status."""
    builder = InlineKeyboardBuilder()

    mode_text = "⚪ Switch to Token Filter" if filters.monitor_all else "🔵 Switch to All Tokens"
    toggle_text = "🔕 Turn OFF" if filters.notifications_enabled else "🔔 Turn ON"

    builder.row(_menu_button(mode_text, MenuAction.TOGGLE_MONITOR_MODE))
    builder.row(_menu_button(toggle_text, MenuAction.TOGGLE_NOTIFICATIONS))
    builder.row(_menu_button("➕ Add Token Whitelist", MenuAction.ADD_TOKEN))
    builder.row(_menu_button("💰 Set Min Purchase", MenuAction.ADD_MIN_PURCHASE))
    builder.row(_menu_button("📊 Set Max Market Cap", MenuAction.ADD_MAX_MARKET_CAP))
    builder.row(_menu_button("🚫 Add Token Blacklist", MenuAction.ADD_BLACKLIST))
    builder.row(_menu_button("🐋 Add Whale Blacklist", MenuAction.ADD_WHALE_BLACKLIST))
    builder.row(
        _menu_button("🔍 View Filters", MenuAction.VIEW_FILTERS),
        _menu_button("🗑️ Clear All", MenuAction.CLEAR_ALL),
    )

    return builder.as_markup()


def get_filter_list_keyboard(rows: List[FilterRecord]) -> InlineKeyboardMarkup:
    """One delete button per user-editable filter row, then a back button."""
    builder = InlineKeyboardBuilder()

    for filter_type, _title in FILTER_GROUPS:
        type_rows = [row for row in rows if row.filter_type == filter_type.value]
        for index, row in enumerate(type_rows):
            value = row.filter_value
            short_value = value[:8] + "..." if len(value) > 8 else value
            builder.row(
                InlineKeyboardButton(
                    text=f"❌ {short_value}",
                    callback_data=FilterCallback(filter_type=filter_type, index=index).pack()
                )
            )

    builder.row(_menu_button("🔙 Back to Menu", MenuAction.BACK_TO_MENU))

    return builder.as_markup()


def get_confirm_clear_keyboard() -> InlineKeyboardMarkup:
    """Get confirmation keyboard for clearing every filter."""
    builder = InlineKeyboardBuilder()

    builder.row(
        _menu_button("✅ Yes, Clear All", MenuAction.CONFIRM_CLEAR_ALL),
        _menu_button("❌ Cancel", MenuAction.BACK_TO_MENU),
    )

    return builder.as_markup()


def get_back_to_menu_keyboard() -> InlineKeyboardMarkup:
    """Get simple back to menu keyboard."""
    builder = InlineKeyboardBuilder()
    builder.row(_menu_button("🔙 Back to Menu", MenuAction.BACK_TO_MENU))
    return builder.as_markup()
