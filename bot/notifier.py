"""
Notification delivery for whale swap alerts.
Handles rate limiting, Telegram flood control and blocked chats.
"""
import asyncio
import logging
from typing import Dict, Optional, Set

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError, TelegramRetryAfter

from utils.logging_config import log_notification

logger = logging.getLogger(__name__)


class Notifier:
    """
    Sends formatted messages to Telegram users.
    Manages rate limiting and error handling.
    """

    def __init__(self, bot: Bot, rate_limit_delay: float = 0.05):
        """Initialize notifier with bot instance."""
        self.bot = bot
        self._rate_limit_delay = rate_limit_delay  # 50ms between messages by default
        self._blocked_users: Set[int] = set()
        self._sent_counts: Dict[int, int] = {}

    def is_blocked(self, user_id: int) -> bool:
        return user_id in self._blocked_users

    def unblock(self, user_id: int):
        """Forget a blocked chat (the user talked to the bot again)."""
        self._blocked_users.discard(user_id)

    def sent_count(self, user_id: int) -> int:
        return self._sent_counts.get(user_id, 0)

    async def notify_swap(self, user_id: int, text: str, signature: Optional[str] = None) -> bool:
        """
        Send a swap alert to a user.

        Returns:
            True if the message was delivered
        """
        if user_id in self._blocked_users:
            return False

        try:
            delivered = await self._send_message(user_id, text)
        except Exception as e:
            logger.error(f"Error sending swap notification to {user_id}: {e}")
            delivered = False

        if delivered:
            self._sent_counts[user_id] = self._sent_counts.get(user_id, 0) + 1
        log_notification(user_id, signature or "-", delivered)
        return delivered

    async def _send(self, chat_id: int, text: str, parse_mode: Optional[str]):
        await self.bot.send_message(
            chat_id=chat_id,
            text=text,
            parse_mode=parse_mode,
            disable_web_page_preview=True
        )

    async def _send_with_fallback(self, chat_id: int, text: str):
        """Send as Markdown, resending as plain text if Telegram rejects the entities."""
        try:
            await self._send(chat_id, text, "Markdown")
        except TelegramBadRequest as e:
            logger.warning(f"Markdown rejected for chat {chat_id}, resending as plain text: {e}")
            await self._send(chat_id, text, None)

    async def _send_message(self, chat_id: int, text: str) -> bool:
        """
        Send message with rate limiting and error handling.

        Args:
            chat_id: Telegram chat ID
            text: Markdown message text

        Returns:
            True if delivered, False if the chat blocked the bot
        """
        await asyncio.sleep(self._rate_limit_delay)

        try:
            await self._send_with_fallback(chat_id, text)

        except TelegramRetryAfter as e:
            logger.warning(f"Rate limit hit for chat {chat_id}, waiting {e.retry_after}s")
            await asyncio.sleep(e.retry_after)
            # Retry once
            await self._send_with_fallback(chat_id, text)

        except TelegramForbiddenError:
            logger.warning(f"Bot blocked by chat {chat_id}, skipping future alerts")
            self._blocked_users.add(chat_id)
            return False

        return True
