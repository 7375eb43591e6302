"""
Registration endpoints: register, unregister, and registration lookups.

Rejections (already active, not registered, unknown event, transient store
failure) are raised as RegistrationError subclasses and rendered as
{"error": ...} by the application's exception handler.
"""

from fastapi import APIRouter, Depends, status

from app.api.deps import get_coordinator
from app.schemas.registration import (
    RegisterEventRequest,
    RegisterEventResponse,
    UnregisterEventResponse,
    RegistrationResponse,
    ErrorResponse,
)
from app.services.registration_service import RegistrationCoordinator
from app.services.cache_service import invalidate_event_summary
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Registrations"])

REGISTERED_MESSAGE = "Successfully registered"
WAITLISTED_MESSAGE = "Added to waitlist"


@router.post(
    "/register-event",
    response_model=RegisterEventResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse, "description": "Already registered or waitlisted"},
        404: {"model": ErrorResponse, "description": "Event not found"},
        503: {"model": ErrorResponse, "description": "Transient store failure"},
    },
)
async def register_event(
    request: RegisterEventRequest,
    coordinator: RegistrationCoordinator = Depends(get_coordinator),
):
    """
    Register an attendee for an event.

    Admits the attendee while the event has seats left, otherwise places
    them on the waitlist. A confirmation notification is sent on admission.
    """
    result = await coordinator.register(request.attendee_id, request.event_id)
    await invalidate_event_summary(request.event_id)
    return RegisterEventResponse(
        status=result.status.value,
        message=REGISTERED_MESSAGE if result.admitted else WAITLISTED_MESSAGE,
        registration_id=result.registration_id,
    )


@router.delete(
    "/unregister-event/{attendee_id}/{event_id}",
    response_model=UnregisterEventResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Not registered for this event"},
        503: {"model": ErrorResponse, "description": "Transient store failure"},
    },
)
async def unregister_event(
    attendee_id: int,
    event_id: int,
    coordinator: RegistrationCoordinator = Depends(get_coordinator),
):
    """Cancel a registration; a freed seat goes to the oldest waitlisted attendee."""
    result = await coordinator.cancel(attendee_id, event_id)
    await invalidate_event_summary(event_id)
    return UnregisterEventResponse(
        message="Successfully unregistered",
        promoted_registration_id=result.promoted_registration_id,
    )


@router.get("/registrations/user/{attendee_id}", response_model=list[RegistrationResponse])
async def list_attendee_registrations(
    attendee_id: int,
    coordinator: RegistrationCoordinator = Depends(get_coordinator),
):
    """All active registrations and waitlist slots held by an attendee."""
    return await coordinator.list_attendee_registrations(attendee_id)


@router.get(
    "/registrations/{attendee_id}/{event_id}",
    response_model=RegistrationResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_registration(
    attendee_id: int,
    event_id: int,
    coordinator: RegistrationCoordinator = Depends(get_coordinator),
):
    """Registration status, with queue position for waitlisted attendees."""
    registration, position = await coordinator.get_registration(attendee_id, event_id)
    response = RegistrationResponse.model_validate(registration)
    response.waitlist_position = position
    return response
