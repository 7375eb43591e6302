"""
Pydantic schemas for registration request/response validation.

Request bodies accept both the camelCase names used by the web client
(`attendeeId`, `eventId`) and snake_case.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class RegisterEventRequest(BaseModel):
    attendee_id: int = Field(..., alias="attendeeId", gt=0)
    event_id: int = Field(..., alias="eventId", gt=0)

    model_config = {"populate_by_name": True}


class RegisterEventResponse(BaseModel):
    success: bool = True
    status: Literal["registered", "waitlisted"]
    message: str
    registration_id: int


class UnregisterEventResponse(BaseModel):
    success: bool = True
    message: str
    promoted_registration_id: Optional[int] = None


class RegistrationResponse(BaseModel):
    id: int
    attendee_id: int
    event_id: int
    status: str
    created_at: datetime
    waitlist_position: Optional[int] = None

    model_config = {"from_attributes": True}


class EventRegistrationSummary(BaseModel):
    event_id: int
    capacity: Optional[int]
    registered_count: int
    waitlisted_count: int
    seats_remaining: Optional[int]
    cached: bool = False


class ErrorResponse(BaseModel):
    error: str
