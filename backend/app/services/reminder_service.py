"""
Event reminders and the background sweep that fires them.

The sweep is independent of the registration core: it never touches the
registrations table and runs in its own short transactions.

Idempotency:
  A due reminder is claimed with a conditional update
  (UPDATE ... SET is_triggered = true WHERE id = :id AND is_triggered = false).
  Only the sweep whose update affected the row sends the notification, so
  several application instances can sweep concurrently without sending
  duplicates.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.event import Event
from app.models.reminder import EventReminder
from app.schemas.reminder import ReminderCreate
from app.services.event_service import SqlEventCatalog, as_utc
from app.services.interfaces.notifier import NotificationSender
from app.core.logging import get_logger
from app.core.metrics import record_notification_failure, reminders_triggered, reminder_sweep_errors

logger = get_logger(__name__)


async def create_reminder(db: AsyncSession, data: ReminderCreate) -> EventReminder:
    # Raises EventNotFound for unknown events
    await SqlEventCatalog().get_event_capacity(db, data.event_id)

    reminder = EventReminder(
        attendee_id=data.attendee_id,
        event_id=data.event_id,
        remind_at=as_utc(data.remind_at),
        is_triggered=False,
    )
    db.add(reminder)
    await db.flush()
    await db.refresh(reminder)

    logger.info(
        "reminder_created",
        reminder_id=reminder.id,
        attendee_id=reminder.attendee_id,
        event_id=reminder.event_id,
    )
    return reminder


async def list_pending_reminders(db: AsyncSession, attendee_id: int) -> list[EventReminder]:
    result = await db.execute(
        select(EventReminder)
        .where(
            EventReminder.attendee_id == attendee_id,
            EventReminder.is_triggered.is_(False),
        )
        .order_by(EventReminder.remind_at.asc(), EventReminder.id.asc())
    )
    return list(result.scalars().all())


async def sweep_due_reminders(
    session_factory: async_sessionmaker[AsyncSession],
    sender: NotificationSender,
    now: Optional[datetime] = None,
) -> int:
    """
    Claim and dispatch every untriggered reminder due at `now`.
    Returns the number of reminders this sweep claimed.
    """
    now = as_utc(now or datetime.now(timezone.utc))

    async with session_factory() as session:
        result = await session.execute(
            select(EventReminder.id, EventReminder.attendee_id, EventReminder.event_id, Event.title)
            .join(Event, Event.id == EventReminder.event_id)
            .where(
                EventReminder.is_triggered.is_(False),
                EventReminder.remind_at <= now,
            )
            .order_by(EventReminder.remind_at.asc(), EventReminder.id.asc())
        )
        due = result.all()

    claimed = 0
    for reminder in due:
        async with session_factory() as session:
            async with session.begin():
                claim = await session.execute(
                    update(EventReminder)
                    .where(
                        EventReminder.id == reminder.id,
                        EventReminder.is_triggered.is_(False),
                    )
                    .values(is_triggered=True)
                )
        if claim.rowcount == 0:
            continue  # another sweeper got it

        claimed += 1
        reminders_triggered.inc()
        try:
            await sender.notify_reminder_due(reminder.attendee_id, reminder.event_id, reminder.title)
        except Exception as e:
            record_notification_failure("reminder_due")
            logger.warning(
                "notification_failed",
                kind="reminder_due",
                reminder_id=reminder.id,
                error=str(e),
            )

    return claimed


class ReminderSweeper:
    """Runs sweep_due_reminders on a fixed interval as a background task."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        sender: NotificationSender,
        interval_seconds: float,
    ):
        self.session_factory = session_factory
        self.sender = sender
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="reminder-sweeper")
        logger.info("reminder_sweeper_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("reminder_sweeper_stopped")

    async def run_once(self) -> int:
        try:
            claimed = await sweep_due_reminders(self.session_factory, self.sender)
        except Exception as e:
            reminder_sweep_errors.inc()
            logger.error("reminder_sweep_failed", error=str(e))
            return 0

        if claimed:
            logger.info("reminders_triggered", count=claimed)
        return claimed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
