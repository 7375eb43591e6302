"""
Service interfaces for dependency inversion.
Allows swapping collaborator implementations without changing the
registration logic.
"""

from .catalog import EventCatalog
from .notifier import NotificationSender

__all__ = ['EventCatalog', 'NotificationSender']
