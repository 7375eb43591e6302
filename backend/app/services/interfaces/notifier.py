"""
Notification sender interface.
Delivery is best-effort: callers dispatch without awaiting the outcome and
failures never affect the registration that triggered them.
"""

from abc import ABC, abstractmethod


class NotificationSender(ABC):
    """
    Interface for attendee notifications.

    Implementations:
    - LogNotificationSender: structured log line per notification
    """

    @abstractmethod
    async def notify_registration_confirmed(self, attendee_id: int, event_id: int):
        """
        Tell an attendee they hold a confirmed seat.

        Sent on direct admission and on promotion from the waitlist.
        """
        pass

    @abstractmethod
    async def notify_reminder_due(self, attendee_id: int, event_id: int, event_title: str):
        """Tell an attendee that an event they asked to be reminded about is coming up."""
        pass
