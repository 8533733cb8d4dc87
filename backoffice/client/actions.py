"""Runs console actions and turns their outcome into notifications."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from backoffice.client.notifications import Notifier
from backoffice.core.exceptions import BackofficeError, ValidationError
from backoffice.schemas.student import ImportResult

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ActionRunner:
    """
    Wraps gateway calls made on behalf of the user.

    An action is marked in progress while it runs, then reports success or
    failure through the notifier. Gateway errors never escape: the caller
    gets ``None`` and keeps whatever it was displaying.
    """

    def __init__(self, notifier: Notifier) -> None:
        self.notifier = notifier
        self._running: set[str] = set()

    def is_running(self, label: str) -> bool:
        return label in self._running

    async def run(
        self,
        label: str,
        action: Callable[[], Awaitable[T]],
        *,
        success_message: str | Callable[[T], str] | None = None,
    ) -> T | None:
        self._running.add(label)
        try:
            result = await action()
        except ValidationError as exc:
            self.notifier.error(exc.message, field_errors=exc.field_errors)
            return None
        except BackofficeError as exc:
            logger.info("action_failed", action=label, error=type(exc).__name__, message=exc.message)
            self.notifier.error(exc.message)
            return None
        finally:
            self._running.discard(label)

        message = success_message(result) if callable(success_message) else success_message
        if message:
            self.notifier.success(message)
        return result

    async def run_import(
        self,
        action: Callable[[], Awaitable[ImportResult]],
    ) -> ImportResult | None:
        """Run a bulk import and report inserted and rejected rows together."""
        result = await self.run("import", action)
        if result is None:
            return None

        summary = f"{result.inserted} of {result.total} rows imported"
        if result.errors:
            details = [f"Row {error.row_number}: {error.message}" for error in result.errors]
            self.notifier.warning(f"{summary}, {result.skipped} rejected", details=details)
        else:
            self.notifier.success(summary)
        return result
