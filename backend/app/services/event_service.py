"""
Event catalog service: CRUD for events plus the SQL-backed EventCatalog
the registration core reads capacity through.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from app.models.event import Event
from app.schemas.event import EventCreate
from app.services.interfaces.catalog import EventCatalog
from app.core.exceptions import EventNotFound
from app.core.logging import get_logger

logger = get_logger(__name__)


def as_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlEventCatalog(EventCatalog):
    """Reads capacity from the events table on the caller's session."""

    async def get_event_capacity(self, session: AsyncSession, event_id: int) -> Optional[int]:
        result = await session.execute(
            select(Event.id, Event.capacity).where(Event.id == event_id)
        )
        row = result.one_or_none()
        if row is None:
            raise EventNotFound(event_id)
        return row.capacity


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    """Create a new catalog event. A null capacity means unlimited seats."""
    event_date = as_utc(event_data.date)
    if event_date <= datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event date must be in the future",
        )

    event = Event(
        title=event_data.title,
        description=event_data.description,
        date=event_date,
        location=event_data.location,
        capacity=event_data.capacity,
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, title=event.title, capacity=event.capacity)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise EventNotFound(event_id)
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
) -> tuple[list[Event], int]:
    """
    List events with pagination.
    Uses the ix_events_date index for date filtering and ordering.
    """
    query = select(Event)

    if upcoming_only:
        query = query.where(Event.date >= datetime.now(timezone.utc))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total
