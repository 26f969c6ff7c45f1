from datetime import datetime, timezone
from typing import Callable, List, Optional
import enum
import logging

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ToastLevel(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Toast(BaseModel):
    level: ToastLevel
    message: str
    created_at: datetime


_LOG_LEVELS = {
    ToastLevel.SUCCESS: logging.INFO,
    ToastLevel.INFO: logging.INFO,
    ToastLevel.WARNING: logging.WARNING,
    ToastLevel.ERROR: logging.ERROR,
}


class Notifier:
    """Collects user-facing, non-blocking notices (the widget's toasts)."""

    def __init__(self, on_toast: Optional[Callable[[Toast], None]] = None, history_size: int = 100):
        self.on_toast = on_toast
        self.history_size = history_size
        self.history: List[Toast] = []

    def notify(self, level: ToastLevel, message: str) -> Toast:
        toast = Toast(level=level, message=message, created_at=datetime.now(timezone.utc))
        self.history.append(toast)
        if len(self.history) > self.history_size:
            del self.history[0]
        logger.log(_LOG_LEVELS[level], f"[toast:{level.value}] {message}")
        if self.on_toast is not None:
            self.on_toast(toast)
        return toast

    def success(self, message: str) -> Toast:
        return self.notify(ToastLevel.SUCCESS, message)

    def error(self, message: str) -> Toast:
        return self.notify(ToastLevel.ERROR, message)

    def warning(self, message: str) -> Toast:
        return self.notify(ToastLevel.WARNING, message)

    def info(self, message: str) -> Toast:
        return self.notify(ToastLevel.INFO, message)

    def messages(self, level: Optional[ToastLevel] = None) -> List[str]:
        return [t.message for t in self.history if level is None or t.level == level]
