"""User-facing notification channels."""

from .notifier import LoggingNotifier, Notifier, TelegramNotifier, get_notifier

__all__ = ["Notifier", "LoggingNotifier", "TelegramNotifier", "get_notifier"]
