from app.models.event import Event
from app.models.registration import Registration, RegistrationStatus, ACTIVE_STATUSES
from app.models.reminder import EventReminder

__all__ = ["Event", "Registration", "RegistrationStatus", "ACTIVE_STATUSES", "EventReminder"]
