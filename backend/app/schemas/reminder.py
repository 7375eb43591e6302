"""
Pydantic schemas for event reminders.
"""

from datetime import datetime
from pydantic import BaseModel, Field


class ReminderCreate(BaseModel):
    attendee_id: int = Field(..., alias="attendeeId", gt=0)
    event_id: int = Field(..., alias="eventId", gt=0)
    remind_at: datetime = Field(..., alias="remindAt")

    model_config = {"populate_by_name": True}


class ReminderResponse(BaseModel):
    id: int
    attendee_id: int
    event_id: int
    remind_at: datetime
    is_triggered: bool

    model_config = {"from_attributes": True}
