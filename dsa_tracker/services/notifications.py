"""
User-facing notifications

The tracker reports the outcome of each user-triggered action through a
Notifier. Front ends supply their own (toasts, chat messages); the default
writes to the log.
"""

import logging
from typing import Protocol

logger = logging.getLogger("dsa_tracker.notifications")


class Notifier(Protocol):
    """Receives short human-readable outcome messages"""

    def success(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes messages to the log"""

    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.warning(message)
