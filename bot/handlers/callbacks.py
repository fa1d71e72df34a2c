"""
Callback query handlers for inline keyboard interactions.
"""
import logging

from aiogram import Router, F
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery

from bot.handlers.commands import (
    AUTO_DISABLED_NOTICE, INPUT_PROMPTS, AddFilterStates, build_filters_text,
    build_menu_text, disable_notifications, load_user_filters
)
from bot.keyboards import (
    ADD_ACTIONS, FilterCallback, MenuAction, MenuCallback, get_back_to_menu_keyboard,
    get_confirm_clear_keyboard, get_filter_list_keyboard, get_main_menu_keyboard
)
from core.database import Database
from core.models import FilterType

logger = logging.getLogger(__name__)

router = Router()

# Global reference (will be set by main.py)
db: Database = None


async def show_main_menu(callback: CallbackQuery):
    filters = await load_user_filters(callback.from_user.id)
    await callback.message.edit_text(
        build_menu_text(filters),
        reply_markup=get_main_menu_keyboard(filters),
        parse_mode="Markdown"
    )


async def show_filters(callback: CallbackQuery, notice: str = ""):
    rows = await db.get_user_filters(callback.from_user.id)
    text = build_filters_text(rows)
    if notice:
        text = f"{notice}\n\n{text}"
    await callback.message.edit_text(text, reply_markup=get_filter_list_keyboard(rows))


@router.callback_query(MenuCallback.filter(F.action == MenuAction.BACK_TO_MENU))
async def callback_back_to_menu(callback: CallbackQuery, state: FSMContext):
    """Show main menu."""
    await state.clear()
    await show_main_menu(callback)
    await callback.answer()


@router.callback_query(MenuCallback.filter(F.action == MenuAction.TOGGLE_MONITOR_MODE))
async def callback_toggle_monitor_mode(callback: CallbackQuery):
    """Switch between All Tokens and Token Filter mode."""
    user_id = callback.from_user.id
    filters = await load_user_filters(user_id)
    monitor_all = not filters.monitor_all

    await db.set_filter_value(user_id, FilterType.MONITOR_ALL, str(monitor_all).lower())

    mode = "All Tokens" if monitor_all else "Token Filter"
    logger.info(f"User {user_id} switched monitor mode to {mode}")
    await show_main_menu(callback)
    await callback.answer(f"✅ Monitor mode: {mode}")


@router.callback_query(MenuCallback.filter(F.action == MenuAction.TOGGLE_NOTIFICATIONS))
async def callback_toggle_notifications(callback: CallbackQuery):
    """Turn swap alerts on or off."""
    user_id = callback.from_user.id
    filters = await load_user_filters(user_id)
    enabled = not filters.notifications_enabled

    await db.set_filter_value(user_id, FilterType.NOTIFICATIONS_ENABLED, str(enabled).lower())

    logger.info(f"User {user_id} {'enabled' if enabled else 'disabled'} notifications")
    await show_main_menu(callback)
    await callback.answer(f"{'🔔' if enabled else '🔕'} Notifications {'enabled' if enabled else 'disabled'}!")


@router.callback_query(MenuCallback.filter(F.action.in_(set(ADD_ACTIONS))))
async def callback_add_filter(callback: CallbackQuery, callback_data: MenuCallback, state: FSMContext):
    """Ask the user for a filter value."""
    filter_type = ADD_ACTIONS[callback_data.action]

    await state.set_state(AddFilterStates.waiting_for_value)
    await state.update_data(filter_type=filter_type.value)

    await callback.message.answer(f"{INPUT_PROMPTS[filter_type]}\n\nType /cancel to abort.")
    await callback.answer()


@router.callback_query(MenuCallback.filter(F.action == MenuAction.VIEW_FILTERS))
async def callback_view_filters(callback: CallbackQuery):
    await show_filters(callback)
    await callback.answer()


@router.callback_query(MenuCallback.filter(F.action == MenuAction.CLEAR_ALL))
async def callback_clear_all(callback: CallbackQuery):
    """Ask for confirmation before clearing every filter."""
    await callback.message.edit_text(
        "🗑️ Clear all filters?\n\nThis removes every filter and turns notifications OFF.",
        reply_markup=get_confirm_clear_keyboard()
    )
    await callback.answer()


@router.callback_query(MenuCallback.filter(F.action == MenuAction.CONFIRM_CLEAR_ALL))
async def callback_confirm_clear_all(callback: CallbackQuery):
    user_id = callback.from_user.id

    await db.clear_filters(user_id)
    await disable_notifications(user_id)

    logger.info(f"User {user_id} cleared all filters")
    await callback.message.edit_text(
        "✅ All filters cleared!\n\n"
        "⚠️ Notifications have been automatically turned OFF. "
        "Use /menu to turn them back ON when you're ready.",
        reply_markup=get_back_to_menu_keyboard()
    )
    await callback.answer()


@router.callback_query(FilterCallback.filter())
async def callback_delete_filter(callback: CallbackQuery, callback_data: FilterCallback):
    """Delete one filter row, identified by its position within its type."""
    user_id = callback.from_user.id
    filter_type = callback_data.filter_type

    rows = await db.get_user_filters(user_id)
    type_rows = [row for row in rows if row.filter_type == filter_type.value]

    if not 0 <= callback_data.index < len(type_rows):
        await callback.answer("❌ Filter not found. Please try again.", show_alert=True)
        return

    value = type_rows[callback_data.index].filter_value
    removed = await db.remove_filter(user_id, filter_type, value)
    if not removed:
        await callback.answer("❌ Error removing filter. Please try again.", show_alert=True)
        return

    await disable_notifications(user_id)

    logger.info(f"User {user_id} removed {filter_type.value}={value}")
    await show_filters(callback, notice=f"✅ Filter removed: {value}\n\n{AUTO_DISABLED_NOTICE}")
    await callback.answer()
