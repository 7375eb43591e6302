from app.schemas.event import EventCreate, EventResponse, EventListResponse
from app.schemas.registration import (
    RegisterEventRequest,
    RegisterEventResponse,
    UnregisterEventResponse,
    RegistrationResponse,
    EventRegistrationSummary,
    ErrorResponse,
)
from app.schemas.reminder import ReminderCreate, ReminderResponse

__all__ = [
    "EventCreate", "EventResponse", "EventListResponse",
    "RegisterEventRequest", "RegisterEventResponse", "UnregisterEventResponse",
    "RegistrationResponse", "EventRegistrationSummary", "ErrorResponse",
    "ReminderCreate", "ReminderResponse",
]
