"""
Command handlers for Whale Tracker Bot.
Handles /start, /menu, /filters, /help, /cancel and filter value input.
"""
import logging
from typing import List

from aiogram import Router, F
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import Message

from bot.keyboards import FILTER_GROUPS, get_filter_list_keyboard, get_main_menu_keyboard
from bot.notifier import Notifier
from core.database import Database
from core.models import FilterRecord, FilterType, LIST_FILTER_TYPES, UserFilters
from utils.filters import FilterInputError, normalize_filters, parse_filter_input

logger = logging.getLogger(__name__)

router = Router()

# Global references (will be set by main.py)
db: Database = None
notifier: Notifier = None
polling_interval: int = 30
max_list_filters: int = 20

AUTO_DISABLED_NOTICE = (
    "⚠️ Notifications have been automatically turned OFF due to filter changes. "
    "Use /menu to turn them back ON when you're done configuring."
)

INPUT_PROMPTS = {
    FilterType.TOKEN_WHITELIST: "Enter a token symbol or mint address to whitelist:",
    FilterType.MIN_PURCHASE: "Enter the minimum purchase amount in USD (whole number):",
    FilterType.MAX_MARKET_CAP: "Enter the maximum market cap in USD (whole number):",
    FilterType.TOKEN_BLACKLIST: "Enter a token symbol or mint address to blacklist:",
    FilterType.WHALE_BLACKLIST: "Enter a whale wallet address to blacklist:",
}


class AddFilterStates(StatesGroup):
    """States for adding a filter value."""
    waiting_for_value = State()


def build_menu_text(filters: UserFilters) -> str:
    mode = "All Tokens" if filters.monitor_all else "Token Filter"
    status = "ON 🔔" if filters.notifications_enabled else "OFF 🔕"
    return (
        "🐋 *Whale Tracker Settings*\n\n"
        "*Current Status:*\n"
        f"• Monitor Mode: {mode}\n"
        f"• Notifications: {status}\n\n"
        "*How it works:*\n"
        "• *All Tokens + ON*: alerts for every whale swap (use the blacklist to exclude tokens)\n"
        "• *Token Filter + ON*: alerts only for whitelisted tokens\n"
        "• *OFF*: no notifications\n\n"
        "Min purchase, max market cap and the whale blacklist apply in both modes.\n\n"
        "Choose an option below:"
    )


def build_filters_text(rows: List[FilterRecord]) -> str:
    """Plain-text listing of user-editable filters grouped by type."""
    lines = ["🔍 Your Active Filters:", ""]
    shown = 0

    for filter_type, title in FILTER_GROUPS:
        values = [row.filter_value for row in rows if row.filter_type == filter_type.value]
        if not values:
            continue
        lines.append(f"{title}:")
        for value in values:
            if filter_type in (FilterType.MIN_PURCHASE, FilterType.MAX_MARKET_CAP) and value.isdigit():
                value = f"${int(value):,}"
            lines.append(f"  • {value}")
        lines.append("")
        shown += len(values)

    if shown == 0:
        return "❌ You have no active filters. Use /menu to set up filters."

    lines.append("💡 Tap ❌ to delete individual filters")
    return "\n".join(lines)


async def load_user_filters(user_id: int) -> UserFilters:
    return normalize_filters(await db.get_user_filters(user_id))


async def disable_notifications(user_id: int) -> bool:
    """Turn alerts off after a filter change so the user can finish configuring."""
    return await db.set_filter_value(user_id, FilterType.NOTIFICATIONS_ENABLED, "false")


async def save_filter_input(user_id: int, filter_type: FilterType, text: str) -> str:
    """
    Validate and store a filter value entered by the user.

    List filters are appended (up to max_list_filters entries); thresholds
    replace the previous value. Notifications are switched off afterwards.

    Returns:
        Confirmation text for the user

    Raises:
        FilterInputError: if the input is rejected
    """
    value = parse_filter_input(filter_type, text)

    if filter_type in LIST_FILTER_TYPES:
        existing = await db.count_filters(user_id, filter_type)
        if existing >= max_list_filters:
            raise FilterInputError(
                f"❌ Maximum {max_list_filters} items allowed for this filter type. Clear some first."
            )
        saved = await db.add_filter(user_id, filter_type, value)
    else:
        saved = await db.set_filter_value(user_id, filter_type, value)

    if not saved:
        raise FilterInputError("❌ Error adding filter. Please try again.")

    await disable_notifications(user_id)
    logger.info(f"User {user_id} set {filter_type.value}={value}")

    return f"✅ Filter added: {value}\n\n{AUTO_DISABLED_NOTICE}"


async def send_main_menu(message: Message, user_id: int):
    filters = await load_user_filters(user_id)
    await message.answer(
        build_menu_text(filters),
        reply_markup=get_main_menu_keyboard(filters),
        parse_mode="Markdown"
    )


async def register_user(message: Message):
    """Store the user and resume alerts if they had blocked the bot before."""
    user_id = message.from_user.id
    await db.create_user(user_id, message.from_user.username)

    if notifier is not None and notifier.is_blocked(user_id):
        notifier.unblock(user_id)
        logger.info(f"User {user_id} is reachable again, alerts resumed")


@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext):
    """Handle /start command."""
    await state.clear()

    await register_user(message)

    welcome_text = """
🐋 Welcome to Whale Tracker Bot!

I monitor Solana whale swaps and send personalized alerts.

⚠️ The bot starts OFF by default.
Use /menu to:
• Turn notifications ON 🔔
• Choose All Tokens or Token Filter mode
• Configure your filters

Get started with /menu!
"""

    await message.answer(welcome_text)


@router.message(Command("menu"))
async def cmd_menu(message: Message, state: FSMContext):
    """Show the settings menu."""
    await state.clear()
    await register_user(message)
    await send_main_menu(message, message.from_user.id)


@router.message(Command("filters"))
async def cmd_filters(message: Message):
    """List the user's filters with delete buttons."""
    rows = await db.get_user_filters(message.from_user.id)
    await message.answer(build_filters_text(rows), reply_markup=get_filter_list_keyboard(rows))


@router.message(Command("help"))
async def cmd_help(message: Message):
    """Handle /help command."""
    help_text = f"""
🐋 Whale Tracker Bot Help

Commands:
/start - Initialize your account
/menu - Configure filters and settings
/filters - View your current filters
/cancel - Cancel the current input
/help - Show this help message

Filter Types:
• Token Whitelist - Track specific tokens only (Token Filter mode)
• Token Blacklist - Ignore specific tokens (All Tokens mode)
• Whale Blacklist - Ignore specific whale wallets
• Minimum Purchase - USD threshold for alerts
• Maximum Market Cap - Skip tokens above this market cap

The bot checks for whale swaps every {polling_interval} seconds and sends alerts when a swap matches your filters.
"""

    await message.answer(help_text)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    """Cancel current operation."""
    await state.clear()
    await message.answer("❌ Operation cancelled. Use /menu to continue.")


@router.message(AddFilterStates.waiting_for_value, F.text, ~F.text.startswith("/"))
async def process_filter_value(message: Message, state: FSMContext):
    """Process a filter value typed after choosing an add action."""
    data = await state.get_data()
    await state.clear()

    try:
        filter_type = FilterType(data.get("filter_type"))
    except ValueError:
        await message.answer("❌ Nothing to add. Use /menu to choose a filter.")
        return

    try:
        reply = await save_filter_input(message.from_user.id, filter_type, message.text)
    except FilterInputError as e:
        await message.answer(str(e))
        return

    await message.answer(reply)
