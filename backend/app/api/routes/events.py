"""
Event catalog endpoints with Redis caching on read operations.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.api.deps import get_coordinator
from app.schemas.event import EventCreate, EventResponse, EventListResponse
from app.schemas.registration import EventRegistrationSummary, ErrorResponse
from app.services.event_service import create_event, get_event, list_events
from app.services.registration_service import RegistrationCoordinator
from app.services.cache_service import (
    get_cached_events,
    set_cached_events,
    invalidate_event_cache,
    get_cached_summary,
    set_cached_summary,
    get_summary_generation,
)
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a catalog event. Omit `capacity` for unlimited seats."""
    event = await create_event(db, event_data)
    await invalidate_event_cache()
    return event


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """
    List events with pagination.
    Results are cached in Redis and invalidated when events are created.
    """
    cached = await get_cached_events(page, page_size, upcoming_only)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    events, total = await list_events(db, page, page_size, upcoming_only)

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump() for e in events],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_events(page, page_size, upcoming_only, response_data)

    return EventListResponse(**response_data)


@router.get("/{event_id}", response_model=EventResponse, responses={404: {"model": ErrorResponse}})
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await get_event(db, event_id)


@router.get(
    "/{event_id}/summary",
    response_model=EventRegistrationSummary,
    responses={404: {"model": ErrorResponse}},
)
async def get_event_summary(
    event_id: int,
    coordinator: RegistrationCoordinator = Depends(get_coordinator),
):
    """
    Capacity and live registration counts for an event.
    Cached until the next register/cancel for the event.
    """
    # Read before the counts so a concurrent commit bumps past it
    generation = await get_summary_generation(event_id)
    if generation is not None:
        cached = await get_cached_summary(event_id, generation)
        if cached:
            cached["cached"] = True
            return EventRegistrationSummary(**cached)

    summary = await coordinator.event_summary(event_id)
    response = EventRegistrationSummary(
        event_id=summary.event_id,
        capacity=summary.capacity,
        registered_count=summary.registered_count,
        waitlisted_count=summary.waitlisted_count,
        seats_remaining=summary.seats_remaining,
    )
    if generation is not None:
        await set_cached_summary(event_id, generation, response.model_dump())
    return response
