"""Transient user-facing notices."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, List, Optional

from ..utils.logging import get_logger


class NoticeLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    message: str
    level: NoticeLevel = NoticeLevel.INFO
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """Shows short notices to the user.

    Notices are logged, kept in a bounded history and forwarded to an
    optional host callback (a toast, a status bar, a terminal line).
    """

    def __init__(self, callback: Optional[Callable[[Notice], None]] = None, history_size: int = 50):
        self.callback = callback
        self.history: Deque[Notice] = deque(maxlen=history_size)
        self.logger = get_logger(self.__class__.__name__)

    def info(self, message: str) -> Notice:
        return self._emit(Notice(message=message, level=NoticeLevel.INFO))

    def error(self, message: str) -> Notice:
        return self._emit(Notice(message=message, level=NoticeLevel.ERROR))

    def messages(self, level: Optional[NoticeLevel] = None) -> List[str]:
        return [n.message for n in self.history if level is None or n.level == level]

    def _emit(self, notice: Notice) -> Notice:
        self.history.append(notice)

        if notice.level == NoticeLevel.ERROR:
            self.logger.warning("Notice", message=notice.message)
        else:
            self.logger.info("Notice", message=notice.message)

        if self.callback is not None:
            try:
                self.callback(notice)
            except Exception as e:
                self.logger.error("Notice callback failed", error=str(e))

        return notice
