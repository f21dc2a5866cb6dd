"""
User-facing notifications.

Controllers raise; the UI boundary runs an action through
``Notifier.guard`` so a ``RideHailError`` becomes an error notification
instead of escaping into the view.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from ridehail.domain.errors import ErrorKind, RideHailError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Level(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str
    kind: Optional[ErrorKind] = None


_RETRY_HINT = {
    ErrorKind.NETWORK: " Please check your connection and try again.",
    ErrorKind.SERVER: " Please try again.",
}


class Notifier:
    def __init__(self):
        self.history: list[Notification] = []

    def success(self, message: str) -> Notification:
        note = Notification(Level.SUCCESS, message)
        self.history.append(note)
        logger.info(message)
        return note

    def error(self, error: RideHailError) -> Notification:
        note = Notification(
            Level.ERROR, error.message + _RETRY_HINT.get(error.kind, ""), error.kind
        )
        self.history.append(note)
        logger.warning("%s: %s", error.kind.value, error.message)
        return note

    async def guard(
        self, action: Awaitable[T], success_message: Optional[str] = None
    ) -> Optional[T]:
        """Await *action*; on ``RideHailError`` notify and return ``None``."""
        try:
            result = await action
        except RideHailError as exc:
            self.error(exc)
            return None
        if success_message:
            self.success(success_message)
        return result
