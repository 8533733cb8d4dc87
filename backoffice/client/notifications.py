"""Transient notifications (toasts) raised by console actions."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    """One message shown to the user."""

    level: NotificationLevel
    message: str
    # Field-level messages shown inline next to a form instead of as a toast
    field_errors: dict[str, str] = field(default_factory=dict)
    details: list[str] = field(default_factory=list)

    @property
    def inline(self) -> bool:
        return bool(self.field_errors)


class Notifier:
    """
    Collects notifications and forwards them to an optional sink.

    The console renders whatever reaches the sink; ``history`` keeps
    every notification for inspection.
    """

    def __init__(self, sink: Callable[[Notification], None] | None = None) -> None:
        self._sink = sink
        self.history: list[Notification] = []

    def notify(
        self,
        level: NotificationLevel,
        message: str,
        *,
        field_errors: dict[str, str] | None = None,
        details: list[str] | None = None,
    ) -> Notification:
        notification = Notification(
            level=level,
            message=message,
            field_errors=dict(field_errors or {}),
            details=list(details or []),
        )
        self.history.append(notification)
        logger.debug("notification", level=level.value, message=message)
        if self._sink is not None:
            self._sink(notification)
        return notification

    def success(self, message: str, **kwargs) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message, **kwargs)

    def info(self, message: str, **kwargs) -> Notification:
        return self.notify(NotificationLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> Notification:
        return self.notify(NotificationLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs) -> Notification:
        return self.notify(NotificationLevel.ERROR, message, **kwargs)

    @property
    def last(self) -> Notification | None:
        return self.history[-1] if self.history else None
