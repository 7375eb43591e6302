"""
Event catalog interface.
The registration core only needs to know whether an event exists and how
many seats it has.
"""

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession


class EventCatalog(ABC):
    """
    Read-only view of the event catalog.

    Implementations read through the caller's session so the capacity is
    observed inside the same transaction as the registration write.
    """

    @abstractmethod
    async def get_event_capacity(self, session: AsyncSession, event_id: int) -> Optional[int]:
        """
        Look up an event's capacity.

        Returns:
            The seat ceiling, or None when the event is unbounded

        Raises:
            EventNotFound: the event does not exist
        """
        pass
