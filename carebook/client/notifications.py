import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    title: str
    message: str
    error_kind: Optional[str] = None


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None:
        ...


class LoggingNotifier(Notifier):
    """Default sink when no presentation layer is attached."""

    def notify(self, notification: Notification) -> None:
        if notification.kind == NotificationKind.ERROR:
            logger.warning(f"{notification.title}: {notification.message}")
        else:
            logger.info(f"{notification.title}: {notification.message}")
