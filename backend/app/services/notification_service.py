"""
Attendee notifications.

The registration core never awaits a notification. The dispatcher schedules
each delivery as its own asyncio task and keeps a reference until it
finishes; a failed delivery is logged, counted and dropped. Registration
state is already committed by the time anything is dispatched, so a
notification failure can never roll it back.
"""

import asyncio
from functools import lru_cache
from typing import Awaitable

from app.services.interfaces.notifier import NotificationSender
from app.core.logging import get_logger
from app.core.metrics import record_notification_failure

logger = get_logger(__name__)


class LogNotificationSender(NotificationSender):
    """
    Emits one structured log line per notification.

    Email and push delivery belong to a separate service that consumes
    these events.
    """

    async def notify_registration_confirmed(self, attendee_id: int, event_id: int):
        logger.info("notification_registration_confirmed", attendee_id=attendee_id, event_id=event_id)

    async def notify_reminder_due(self, attendee_id: int, event_id: int, event_title: str):
        logger.info(
            "notification_reminder_due",
            attendee_id=attendee_id,
            event_id=event_id,
            message=f'Reminder: The event "{event_title}" starts soon!',
        )


class NotificationDispatcher:
    """Fire-and-forget front for a NotificationSender."""

    def __init__(self, sender: NotificationSender):
        self.sender = sender
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def registration_confirmed(self, attendee_id: int, event_id: int) -> None:
        self._dispatch(
            "registration_confirmed",
            self.sender.notify_registration_confirmed(attendee_id, event_id),
            attendee_id=attendee_id,
            event_id=event_id,
        )

    def _dispatch(self, kind: str, delivery: Awaitable, **context) -> None:
        task = asyncio.create_task(self._deliver(kind, delivery, context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, kind: str, delivery: Awaitable, context: dict) -> None:
        try:
            await delivery
        except Exception as e:
            record_notification_failure(kind)
            logger.warning("notification_failed", kind=kind, error=str(e), **context)

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown and tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


@lru_cache()
def get_notification_sender() -> NotificationSender:
    return LogNotificationSender()


@lru_cache()
def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(get_notification_sender())
