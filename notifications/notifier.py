"""
User-facing notification channel.

Every booking outcome is reported through a Notifier: one confirmation per
success, one error per failure. The loading indicator driven by
RequestTelemetry is shown and hidden through the same channel.
"""

import logging
from typing import Optional

from aiogram import Bot
from aiogram.enums import ChatAction
from aiogram.exceptions import TelegramAPIError

logger = logging.getLogger(__name__)


class Notifier:
    """Base notification channel."""

    async def success(self, message: str) -> None:
        raise NotImplementedError

    async def error(self, message: str) -> None:
        raise NotImplementedError

    async def show_loading(self) -> None:
        raise NotImplementedError

    async def hide_loading(self) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Notifier that writes outcomes to the application log."""

    def __init__(self, name: str = "notifications"):
        self._logger = logging.getLogger(name)
        self.loading = False

    async def success(self, message: str) -> None:
        self._logger.info(f"✅ {message}")

    async def error(self, message: str) -> None:
        self._logger.warning(f"❌ {message}")

    async def show_loading(self) -> None:
        self.loading = True
        self._logger.debug("Loading...")

    async def hide_loading(self) -> None:
        self.loading = False


class TelegramNotifier(Notifier):
    """
    Notifier that delivers outcomes to a Telegram chat.

    Delivery failures are logged and never propagate into the booking flow.
    """

    def __init__(self, bot: Bot, chat_id: int):
        self.bot = bot
        self.chat_id = chat_id

    async def _send(self, text: str) -> None:
        try:
            await self.bot.send_message(self.chat_id, text)
        except TelegramAPIError as e:
            logger.error(f"Failed to deliver notification to {self.chat_id}: {e}")

    async def success(self, message: str) -> None:
        await self._send(f"✅ {message}")

    async def error(self, message: str) -> None:
        await self._send(f"❌ {message}")

    async def show_loading(self) -> None:
        try:
            await self.bot.send_chat_action(
                chat_id=self.chat_id, action=ChatAction.TYPING
            )
        except TelegramAPIError as e:
            logger.debug(f"Chat action failed for {self.chat_id}: {e}")

    async def hide_loading(self) -> None:
        # Telegram chat actions expire on their own
        return None


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Get or create the notifier configured in settings."""
    global _notifier
    if _notifier is None:
        from config import settings

        if settings.bot_token and settings.notify_chat_id is not None:
            _notifier = TelegramNotifier(Bot(token=settings.bot_token), settings.notify_chat_id)
        else:
            _notifier = LoggingNotifier()
    return _notifier
