"""
Domain exception hierarchy for the registration core.

Each error carries the HTTP status and the public message rendered by the
API layer, so services never import FastAPI to signal a rejection.
"""

from typing import Optional

from fastapi import status


class RegistrationError(Exception):
    """Base exception for all registration-core errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


# --- User-correctable rejections ---
class AlreadyActive(RegistrationError):
    """Attendee already holds a registered seat or a waitlist slot."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Already registered or waitlisted for this event"


class NotRegistered(RegistrationError):
    """No active registration exists for the attendee/event pair."""

    status_code = status.HTTP_404_NOT_FOUND
    message = "Not registered for this event"


class EventNotFound(RegistrationError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__(f"Event {event_id} not found")


# --- Infrastructure ---
class TransientStoreFailure(RegistrationError):
    """Store conflict, timeout or connection loss that outlived all retries."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Service temporarily unavailable, please retry"


class NotificationFailure(RegistrationError):
    """A notification could not be delivered. Logged, never surfaced."""

    message = "Notification delivery failed"
